# Copyright (c) 2026 The bootimgtool authors
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

"""Synthetic boot images laid out with plain struct calls."""
import hashlib
import struct

V0_HEADER_SIZE = 1632
V1_HEADER_SIZE = 1648
V2_HEADER_SIZE = 1660
V3_HEADER_SIZE = 1580
V4_HEADER_SIZE = 1584
VENDOR_V3_HEADER_SIZE = 2112
VENDOR_V4_HEADER_SIZE = 2128

KERNEL_ADDR = 0x10008000
RAMDISK_ADDR = 0x11000000
SECOND_ADDR = 0x10f00000
TAGS_ADDR = 0x10000100
DTB_ADDR = 0x11f00000


def align(value, page):
    return (value + page - 1) // page * page


def pad(data, page):
    return data + b'\x00' * (align(len(data), page) - len(data))


def payload(tag, size):
    """size bytes of repeated tag, free of any known magic."""
    return (tag * (size // len(tag) + 1))[:size]


def boot_id(parts, sha256=False):
    digest = hashlib.sha256() if sha256 else hashlib.sha1()
    for part in parts:
        if part:
            digest.update(part)
            digest.update(struct.pack('<I', len(part)))
    return digest.digest().ljust(32, b'\x00')


def boot_image(version=0, page_size=2048, kernel=b'', ramdisk=b'', second=b'',
               extra=b'', recovery_dtbo=b'', dtb=b'', os_version=0, name=b'',
               cmdline=b'', extra_cmdline=b'', sha256=False, tail=b''):
    """AOSP boot image, header versions 0 to 2."""
    header_size = {0: V0_HEADER_SIZE, 1: V1_HEADER_SIZE, 2: V2_HEADER_SIZE}[version]
    body = b''
    pos = align(header_size, page_size)
    for part in (kernel, ramdisk, second, extra):
        body += pad(part, page_size)
    recovery_dtbo_offset = 0
    if recovery_dtbo:
        recovery_dtbo_offset = pos + len(body)
        body += pad(recovery_dtbo, page_size)
    body += pad(dtb, page_size)

    digest = boot_id((kernel, ramdisk, second, extra, recovery_dtbo, dtb), sha256)
    hdr = struct.pack(
        '<8s10I16s512s32s1024s', b'ANDROID!',
        len(kernel), KERNEL_ADDR, len(ramdisk), RAMDISK_ADDR,
        len(second), SECOND_ADDR, TAGS_ADDR, page_size,
        len(extra) if version == 0 else version, os_version,
        name, cmdline, digest, extra_cmdline)
    if version >= 1:
        hdr += struct.pack('<IQI', len(recovery_dtbo), recovery_dtbo_offset, header_size)
    if version >= 2:
        hdr += struct.pack('<IQ', len(dtb), DTB_ADDR)
    assert len(hdr) == header_size
    return pad(hdr, page_size) + body + tail


def pxa_image(page_size=2048, kernel=b'', ramdisk=b'', extra=b'', name=b'',
              cmdline=b'', unknown=0x12345678):
    hdr = struct.pack(
        '<8s10I24s512s32s1024s', b'ANDROID!',
        len(kernel), KERNEL_ADDR, len(ramdisk), RAMDISK_ADDR, 0, SECOND_ADDR,
        len(extra), unknown, TAGS_ADDR, page_size,
        name, cmdline, boot_id((kernel, ramdisk, extra)), b'')
    body = pad(kernel, page_size) + pad(ramdisk, page_size) + pad(extra, page_size)
    return pad(hdr, page_size) + body


def boot_image_v3(version=3, kernel=b'', ramdisk=b'', os_version=0, cmdline=b'',
                  signature_size=0):
    header_size = V4_HEADER_SIZE if version >= 4 else V3_HEADER_SIZE
    hdr = struct.pack(
        '<8s4I16sI1536s', b'ANDROID!', len(kernel), len(ramdisk),
        os_version, header_size, b'', version, cmdline)
    if version >= 4:
        hdr += struct.pack('<I', signature_size)
    return pad(hdr, 4096) + pad(kernel, 4096) + pad(ramdisk, 4096)


def vendor_entry(size, offset, rtype, name=b'', board_id=b''):
    return struct.pack('<3I32s64s', size, offset, rtype, name, board_id)


def vendor_boot_image(version=3, page_size=4096, ramdisk=b'', dtb=b'', table=b'',
                      entry_num=0, entry_size=108, bootconfig=b'', name=b'',
                      cmdline=b''):
    header_size = VENDOR_V4_HEADER_SIZE if version >= 4 else VENDOR_V3_HEADER_SIZE
    hdr = struct.pack(
        '<8s5I2048sI16s2IQ', b'VNDRBOOT', version, page_size,
        KERNEL_ADDR, RAMDISK_ADDR, len(ramdisk), cmdline, TAGS_ADDR, name,
        header_size, len(dtb), DTB_ADDR)
    body = pad(ramdisk, page_size) + pad(dtb, page_size)
    if version >= 4:
        hdr += struct.pack('<4I', len(table), entry_num, entry_size, len(bootconfig))
        body += pad(table, page_size) + pad(bootconfig, page_size)
    return pad(hdr, page_size) + body


def fdt(body_size=64):
    """Minimal flattened device tree: header, one empty root node, FDT_END."""
    structure = struct.pack('>II', 1, 0) + struct.pack('>II', 2, 9)
    strings = b''
    off_dt_struct = 40
    off_dt_strings = off_dt_struct + len(structure)
    totalsize = off_dt_strings + len(strings) + body_size
    header = struct.pack(
        '>10I', 0xd00dfeed, totalsize, off_dt_struct, off_dt_strings, 40 + 0,
        17, 16, 0, len(strings), len(structure))
    return header + structure + strings + b'\x00' * body_size
