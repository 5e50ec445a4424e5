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

import enum
import struct


class Format(enum.IntEnum):
    UNKNOWN = 0
    CHROMEOS = 1
    AOSP = 2
    AOSP_VENDOR = 3
    GZIP = 4
    ZOPFLI = 5
    LZOP = 6
    XZ = 7
    LZMA = 8
    BZIP2 = 9
    LZ4 = 10
    LZ4_LEGACY = 11
    LZ4_LG = 12
    ZSTD = 13
    MTK = 14
    DTB = 15
    DHTB = 16
    BLOB = 17
    ZIMAGE = 18


ZIMAGE_MAGIC_OFFSET = 0x24

# Checked in order, first match wins
MAGICS = (
    (Format.CHROMEOS, (b'CHROMEOS',)),
    (Format.AOSP, (b'ANDROID!',)),
    (Format.AOSP_VENDOR, (b'VNDRBOOT',)),
    (Format.GZIP, (b'\x1f\x8b\x08', b'\x1f\x9e\x08')),
    (Format.LZOP, (b'\x89LZO\x00\r\n\x1a\n',)),
    (Format.XZ, (b'\xfd7zXZ\x00',)),
    (Format.LZMA, ()),  # see _is_lzma
    (Format.BZIP2, (b'BZh',)),
    (Format.LZ4, (b'\x04\x22\x4d\x18', b'\x03\x21\x4c\x18')),
    (Format.LZ4_LEGACY, (b'\x02\x21\x4c\x18',)),
    (Format.ZSTD, (b'\x28\xb5\x2f\xfd',)),
    (Format.MTK, (b'\x88\x16\x88\x58',)),
    (Format.DTB, (b'\xd0\x0d\xfe\xed',)),
    (Format.DHTB, (b'DHTB\x01\x00\x00\x00',)),
    (Format.BLOB, (b'-SIGNED-BY-SIGNBLOB-',)),
)

ZIMAGE_MAGIC = b'\x18\x28\x6f\x01'

NAMES = {
    Format.GZIP: 'gzip',
    Format.ZOPFLI: 'zopfli',
    Format.LZOP: 'lzop',
    Format.XZ: 'xz',
    Format.LZMA: 'lzma',
    Format.BZIP2: 'bzip2',
    Format.LZ4: 'lz4',
    Format.LZ4_LEGACY: 'lz4_legacy',
    Format.LZ4_LG: 'lz4_lg',
    Format.ZSTD: 'zstd',
    Format.DTB: 'dtb',
    Format.ZIMAGE: 'zimage',
}

EXTENSIONS = {
    Format.GZIP: '.gz',
    Format.ZOPFLI: '.gz',
    Format.LZOP: '.lzo',
    Format.XZ: '.xz',
    Format.LZMA: '.lzma',
    Format.BZIP2: '.bz2',
    Format.LZ4: '.lz4',
    Format.LZ4_LEGACY: '.lz4',
    Format.LZ4_LG: '.lz4',
    Format.ZSTD: '.zst',
}

COMPRESSED = frozenset((
    Format.GZIP, Format.ZOPFLI, Format.LZOP, Format.XZ, Format.LZMA,
    Format.BZIP2, Format.LZ4, Format.LZ4_LEGACY, Format.LZ4_LG, Format.ZSTD))

_U32 = struct.Struct('<I')


def _is_lzma(buf):
    return (len(buf) > 13 and buf.startswith(b'\x5d\x00\x00') and
            buf[12] in (0xff, 0x00))


def classify(buf):
    for fmt, magics in MAGICS:
        if fmt == Format.LZMA:
            if _is_lzma(buf):
                return fmt
        elif any(buf.startswith(m) for m in magics):
            return fmt
    if buf[ZIMAGE_MAGIC_OFFSET:ZIMAGE_MAGIC_OFFSET + 4] == ZIMAGE_MAGIC:
        return Format.ZIMAGE
    return Format.UNKNOWN


def classify_lg(buf):
    """Like classify(), but tells LG's lz4 variant apart from plain legacy lz4.

    LG appends the uncompressed size after the last block, which shows up
    as a block size overrunning the buffer.
    """
    fmt = classify(buf)
    if fmt != Format.LZ4_LEGACY:
        return fmt
    off = 4
    while off + 4 <= len(buf):
        block_size, = _U32.unpack_from(buf, off)
        off += 4
        if off + block_size > len(buf):
            return Format.LZ4_LG
        off += block_size
    return fmt


def is_compressed(fmt):
    return fmt in COMPRESSED


def format_name(fmt):
    return NAMES.get(fmt, 'raw')


def format_extension(fmt):
    return EXTENSIONS.get(fmt, '')


def parse_format_name(name):
    for fmt, fmt_name in NAMES.items():
        if fmt_name == name and fmt in COMPRESSED:
            return fmt
    raise ValueError('unknown compression format {}'.format(name))
