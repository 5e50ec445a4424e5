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

import bz2
import logging
import lzma
import struct
import zlib

import lz4.block
import lz4.frame
import zstandard

from .errors import UnsupportedFormat
from .formats import Format, classify_lg, format_name

log = logging.getLogger(__name__)

LZ4_LEGACY_MAGIC = b'\x02\x21\x4c\x18'
LZ4_LEGACY_BLOCK_SIZE = 0x800000  # 8MiB of input per block

ZSTD_LEVEL = 19

_U32 = struct.Struct('<I')


def _gzip_compress(buf):
    # wbits 16+ selects the gzip container, mtime stays 0
    obj = zlib.compressobj(9, zlib.DEFLATED, 16 + zlib.MAX_WBITS)
    return obj.compress(buf) + obj.flush()


def _gzip_decompress(buf):
    out = []
    while buf:
        obj = zlib.decompressobj(16 + zlib.MAX_WBITS)
        out.append(obj.decompress(buf))
        out.append(obj.flush())
        buf = obj.unused_data
        # Multi-member streams continue, anything else is padding
        if not buf.startswith((b'\x1f\x8b', b'\x1f\x9e')):
            break
    return b''.join(out)


def _xz_compress(buf):
    return lzma.compress(buf, format=lzma.FORMAT_XZ, check=lzma.CHECK_CRC32, preset=9)


def _xz_decompress(buf):
    return lzma.LZMADecompressor(format=lzma.FORMAT_XZ).decompress(buf)


def _lzma_compress(buf):
    return lzma.compress(buf, format=lzma.FORMAT_ALONE, preset=9)


def _lzma_decompress(buf):
    return lzma.LZMADecompressor(format=lzma.FORMAT_ALONE).decompress(buf)


def _bzip2_compress(buf):
    return bz2.compress(buf, 9)


def _bzip2_decompress(buf):
    return bz2.BZ2Decompressor().decompress(buf)


def _lz4_compress(buf):
    return lz4.frame.compress(buf, compression_level=lz4.frame.COMPRESSIONLEVEL_MAX)


def _lz4_decompress(buf):
    return lz4.frame.decompress(buf)


def _lz4_legacy_compress(buf, lg=False):
    out = [LZ4_LEGACY_MAGIC]
    for start in range(0, len(buf), LZ4_LEGACY_BLOCK_SIZE):
        block = lz4.block.compress(
            buf[start:start + LZ4_LEGACY_BLOCK_SIZE],
            mode='high_compression', compression=12, store_size=False)
        out.append(_U32.pack(len(block)))
        out.append(block)
    if lg:
        out.append(_U32.pack(len(buf)))
    return b''.join(out)


def _lz4_legacy_decompress(buf):
    out = []
    off = len(LZ4_LEGACY_MAGIC)
    while off + 4 <= len(buf):
        block_size, = _U32.unpack_from(buf, off)
        off += 4
        if buf[off - 4:off] == LZ4_LEGACY_MAGIC:
            # Concatenated legacy streams
            continue
        if off + block_size > len(buf):
            # LG trailer (uncompressed size) or padding
            break
        out.append(lz4.block.decompress(
            buf[off:off + block_size], uncompressed_size=LZ4_LEGACY_BLOCK_SIZE))
        off += block_size
    return b''.join(out)


def _zstd_compress(buf):
    return zstandard.ZstdCompressor(level=ZSTD_LEVEL).compress(buf)


def _zstd_decompress(buf):
    # The frame may not record its content size, which rules out
    # ZstdDecompressor.decompress()
    return zstandard.ZstdDecompressor().decompressobj().decompress(buf)


COMPRESSORS = {
    Format.GZIP: _gzip_compress,
    # No zopfli encoder, plain deflate produces a compatible stream
    Format.ZOPFLI: _gzip_compress,
    Format.XZ: _xz_compress,
    Format.LZMA: _lzma_compress,
    Format.BZIP2: _bzip2_compress,
    Format.LZ4: _lz4_compress,
    Format.LZ4_LEGACY: _lz4_legacy_compress,
    Format.LZ4_LG: lambda buf: _lz4_legacy_compress(buf, lg=True),
    Format.ZSTD: _zstd_compress,
}

DECOMPRESSORS = {
    Format.GZIP: _gzip_decompress,
    Format.ZOPFLI: _gzip_decompress,
    Format.XZ: _xz_decompress,
    Format.LZMA: _lzma_decompress,
    Format.BZIP2: _bzip2_decompress,
    Format.LZ4: _lz4_decompress,
    Format.LZ4_LEGACY: _lz4_legacy_decompress,
    Format.LZ4_LG: _lz4_legacy_decompress,
    Format.ZSTD: _zstd_decompress,
}


def can_compress(fmt):
    return fmt in COMPRESSORS


def can_decompress(fmt):
    return fmt in DECOMPRESSORS


def compress(buf, fmt):
    try:
        compressor = COMPRESSORS[fmt]
    except KeyError:
        raise UnsupportedFormat('cannot compress to {}'.format(format_name(fmt)))
    log.debug('compressing %d bytes as %s', len(buf), format_name(fmt))
    return compressor(buf)


def decompress(buf):
    fmt = classify_lg(buf)
    try:
        decompressor = DECOMPRESSORS[fmt]
    except KeyError:
        raise UnsupportedFormat('cannot decompress {} data'.format(format_name(fmt)))
    log.debug('decompressing %d bytes of %s', len(buf), format_name(fmt))
    return decompressor(buf)
