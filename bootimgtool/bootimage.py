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

import collections
import enum
import logging
import struct

from .dtb import split_kernel_dtb
from .errors import InvalidFormat, TruncatedData, UnsupportedVersion
from .formats import classify_lg
from .headers import (
    BOOT_MAGIC, SHA1_SIZE, VENDOR_BOOT_MAGIC, align, decode_os_version,
    is_power_of_two, select_boot_header, select_vendor_header)
from .vendor import parse_vendor_ramdisk_table
from .wrappers import (
    BLOB_MAGIC, CHROMEOS_HEADER_SIZE, CHROMEOS_MAGIC, DHTB_MAGIC,
    LG_BUMP_MAGIC, SEANDROID_MAGIC, WRAPPER_SIZE, find_avb,
    is_avb1_signature, split_mtk_header)

log = logging.getLogger(__name__)


class ImageFlags(enum.Flag):
    NONE = 0
    CHROMEOS = enum.auto()
    DHTB = enum.auto()
    BLOB = enum.auto()
    SEANDROID = enum.auto()
    LG_BUMP = enum.auto()
    MTK_KERNEL = enum.auto()
    MTK_RAMDISK = enum.auto()
    SHA256 = enum.auto()
    AVB = enum.auto()
    AVB1_SIGNED = enum.auto()


def flag_names(flags):
    return [flag.name.lower() for flag in ImageFlags
            if flag and flag in flags]


# Components in the order they are stored
AOSP_COMPONENTS = ('kernel', 'ramdisk', 'second', 'extra', 'recovery_dtbo', 'dtb')
VENDOR_COMPONENTS = ('ramdisk', 'dtb', 'vendor_ramdisk_table', 'bootconfig')

Region = collections.namedtuple('Region', 'name offset size')

_SCAN_MAGICS = (CHROMEOS_MAGIC, DHTB_MAGIC, BLOB_MAGIC, BOOT_MAGIC, VENDOR_BOOT_MAGIC)

_U32 = struct.Struct('<I')

_FIELDS = (
    'data header header_offset flags '
    'kernel kernel_dtb ramdisk second extra recovery_dtbo recovery_dtbo_offset '
    'dtb vendor_ramdisk_table bootconfig vendor_ramdisk_entries '
    'kernel_format ramdisk_format extra_format '
    'mtk_kernel_header mtk_ramdisk_header '
    'regions payload_size tail avb_footer vbmeta_header')


class BootImage(collections.namedtuple('BootImage', _FIELDS)):
    """A parsed boot or vendor boot image.

    Component fields hold the extracted bytes, or None when the component is
    absent. kernel excludes any MTK header and appended DTB (kernel_dtb);
    regions and raw_component() give the bytes exactly as stored.
    recovery_dtbo_offset and payload_size are relative to header_offset.
    """
    __slots__ = ()

    COMPONENTS = (
        'kernel', 'kernel_dtb', 'ramdisk', 'second', 'extra', 'recovery_dtbo',
        'dtb', 'vendor_ramdisk_table', 'bootconfig')

    @classmethod
    def parse(cls, data):
        return _ImageParser(data).parse()

    @classmethod
    def load(cls, path):
        with open(path, 'rb') as f:
            return cls.parse(f.read())

    @property
    def is_vendor(self):
        return self.header.IS_VENDOR

    @property
    def header_version(self):
        return self.header.effective_header_version()

    @property
    def page_size(self):
        return self.header.effective_page_size()

    @property
    def os_version(self):
        return self.header.os_version if self.header.has_os_version else 0

    @property
    def name(self):
        return self.header.name_text

    @property
    def cmdline(self):
        return self.header.cmdline_texts[0]

    @property
    def extra_cmdline(self):
        texts = self.header.cmdline_texts
        return texts[1] if len(texts) > 1 else ''

    @property
    def uses_sha256(self):
        return ImageFlags.SHA256 in self.flags

    def os_version_parts(self):
        return decode_os_version(self.os_version)

    def size(self, name):
        data = getattr(self, name)
        return len(data) if data is not None else 0

    def region(self, name):
        for region in self.regions:
            if region.name == name:
                return region
        return None

    def raw_component(self, name):
        region = self.region(name)
        if region is None:
            return None
        return self.data[region.offset:region.offset + region.size]

    def get_payload(self):
        """Header space plus every page aligned component, the signed region."""
        return self.data[self.header_offset:self.header_offset + self.payload_size]

    def get_tail(self):
        return self.tail


class _ImageParser(object):
    def __init__(self, data):
        self.data = bytes(data)
        self.fields = dict.fromkeys(BootImage._fields)
        self.flags = ImageFlags.NONE

    def parse(self):
        offset = 0
        while True:
            offset, magic = self._next_magic(offset)
            if magic is None:
                raise InvalidFormat('no boot image found')
            if magic == CHROMEOS_MAGIC:
                log.debug('ChromeOS preamble at %d', offset)
                self.flags |= ImageFlags.CHROMEOS
                offset += CHROMEOS_HEADER_SIZE
                continue
            if magic == DHTB_MAGIC:
                log.debug('DHTB header at %d', offset)
                self.flags |= ImageFlags.DHTB | ImageFlags.SEANDROID
                offset += WRAPPER_SIZE
                continue
            if magic == BLOB_MAGIC:
                log.debug('Tegra blob header at %d', offset)
                self.flags |= ImageFlags.BLOB
                offset += WRAPPER_SIZE
                continue
            if magic == BOOT_MAGIC:
                found = self._parse_boot(offset)
            else:
                found = self._parse_vendor(offset)
            if found:
                return self._build()
            offset += 1

    def _next_magic(self, start):
        best, best_magic = -1, None
        for magic in _SCAN_MAGICS:
            pos = self.data.find(magic, start)
            if pos >= 0 and (best < 0 or pos < best):
                best, best_magic = pos, magic
        return best, best_magic

    def _fits(self, offset, size):
        return len(self.data) - offset >= size

    def _usable_page_size(self, hdr, offset):
        page = hdr.effective_page_size()
        if not is_power_of_two(page):
            log.debug('%s at %d has page size %d, skipping it',
                      type(hdr).__name__, offset, page)
            return False
        return True

    def _parse_boot(self, offset):
        # page_size and header_version words must be readable to pick a layout
        if not self._fits(offset, 44):
            return False
        cls = select_boot_header(self.data, offset)
        if not self._fits(offset, cls.STRUCT.size):
            log.debug('%s at %d runs past the end of the image', cls.__name__, offset)
            return False
        hdr = cls.unpack_from(self.data, offset)
        log.debug('%s at %d', cls.__name__, offset)
        if not self._usable_page_size(hdr, offset):
            return False
        if hdr.has_id and any(hdr.id[SHA1_SIZE:]):
            self.flags |= ImageFlags.SHA256
        self._extract(hdr, offset, AOSP_COMPONENTS)
        return True

    def _parse_vendor(self, offset):
        if not self._fits(offset, 12):
            return False
        version, = _U32.unpack_from(self.data, offset + 8)
        if version < 3:
            raise UnsupportedVersion(
                'vendor boot header version {} is not supported'.format(version))
        cls = select_vendor_header(version)
        if not self._fits(offset, cls.STRUCT.size):
            log.debug('%s at %d runs past the end of the image', cls.__name__, offset)
            return False
        hdr = cls.unpack_from(self.data, offset)
        log.debug('%s at %d', cls.__name__, offset)
        if not self._usable_page_size(hdr, offset):
            return False
        self._extract(hdr, offset, VENDOR_COMPONENTS)
        return True

    def _region(self, name, offset, size):
        if offset + size > len(self.data):
            raise TruncatedData('{} needs {} bytes at offset {}, only {} left'.format(
                name, size, offset, max(len(self.data) - offset, 0)))
        return Region(name, offset, size)

    def _extract(self, hdr, offset, order):
        page = hdr.effective_page_size()
        pos = hdr.header_space()
        regions = []
        recovery_dtbo_offset = 0
        for name in order:
            size = hdr.component_size(name)
            if not size:
                continue
            if name == 'recovery_dtbo':
                # Stored at its own offset rather than after the previous component
                recovery_dtbo_offset = hdr.recovery_dtbo_offset
                pos = recovery_dtbo_offset
            regions.append(self._region(name, offset + pos, size))
            pos = align(pos + size, page)

        f = self.fields
        f['header'] = hdr
        f['header_offset'] = offset
        f['regions'] = tuple(regions)
        f['payload_size'] = pos
        f['recovery_dtbo_offset'] = recovery_dtbo_offset
        for region in regions:
            f[region.name] = self.data[region.offset:region.offset + region.size]
        f['tail'] = self.data[offset + pos:]

    def _build(self):
        f = self.fields
        hdr = f['header']

        f['mtk_kernel_header'], f['kernel'] = split_mtk_header(f['kernel'])
        if f['mtk_kernel_header'] is not None:
            self.flags |= ImageFlags.MTK_KERNEL
        f['mtk_ramdisk_header'], f['ramdisk'] = split_mtk_header(f['ramdisk'])
        if f['mtk_ramdisk_header'] is not None:
            self.flags |= ImageFlags.MTK_RAMDISK

        if f['kernel']:
            f['kernel'], f['kernel_dtb'] = split_kernel_dtb(f['kernel'])
            if f['kernel_dtb'] is not None:
                log.debug('kernel has an appended DTB at %d', len(f['kernel']))
        for name in ('kernel', 'ramdisk'):
            # An MTK header with nothing behind it leaves an empty component
            if f[name] == b'':
                f[name] = None

        f['kernel_format'] = classify_lg(f['kernel'] or b'')
        f['ramdisk_format'] = classify_lg(f['ramdisk'] or b'')
        f['extra_format'] = classify_lg(f['extra'] or b'')

        if f['vendor_ramdisk_table'] is not None:
            f['vendor_ramdisk_entries'] = parse_vendor_ramdisk_table(
                f['vendor_ramdisk_table'],
                hdr.vendor_ramdisk_table_entry_num,
                hdr.vendor_ramdisk_table_entry_size,
                f['ramdisk'])
        else:
            f['vendor_ramdisk_entries'] = ()

        tail = f['tail']
        if tail.startswith(SEANDROID_MAGIC):
            self.flags |= ImageFlags.SEANDROID
        elif tail.startswith(LG_BUMP_MAGIC):
            self.flags |= ImageFlags.LG_BUMP
        elif is_avb1_signature(tail):
            self.flags |= ImageFlags.AVB1_SIGNED

        avb = find_avb(self.data)
        if avb is not None:
            self.flags |= ImageFlags.AVB
            f['avb_footer'], f['vbmeta_header'] = avb

        f['data'] = self.data
        f['flags'] = self.flags
        return BootImage(**f)
