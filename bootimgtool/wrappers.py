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
import struct

from .headers import decode_asciiz

CHROMEOS_MAGIC = b'CHROMEOS'
CHROMEOS_HEADER_SIZE = 0x10000  # kernel signing preamble

DHTB_MAGIC = b'DHTB\x01\x00\x00\x00'
BLOB_MAGIC = b'-SIGNED-BY-SIGNBLOB-'
WRAPPER_SIZE = 512  # DHTB and BLOB prefixes

SEANDROID_MAGIC = b'SEANDROIDENFORCE'
LG_BUMP_MAGIC = b'\x41\xa9\xe4\x67\x74\x4d\x1d\x1b\xa4\x29\xf2\xec\xea\x65\x52\x79'
DHTB_SEANDROID_TRAILER = b'\xff\xff\xff\xff'


class DhtbHeader(collections.namedtuple('DhtbHeader', 'magic checksum size padding')):
    __slots__ = ()

    # magic, sha256 of the payload (zero padded), payload size, padding
    STRUCT = struct.Struct('<8s40sI460s')

    @classmethod
    def unpack_from(cls, data, offset=0):
        return cls._make(cls.STRUCT.unpack_from(data, offset))

    def pack(self):
        return self.STRUCT.pack(*self)


class MtkHeader(collections.namedtuple('MtkHeader', 'magic size name padding')):
    """512 byte header MediaTek bootloaders expect in front of kernel and ramdisk."""
    __slots__ = ()

    MAGIC = b'\x88\x16\x88\x58'
    # magic, size of the data that follows, name, padding
    STRUCT = struct.Struct('<4sI32s472s')

    @classmethod
    def unpack_from(cls, data, offset=0):
        return cls._make(cls.STRUCT.unpack_from(data, offset))

    @property
    def name_text(self):
        return decode_asciiz(self.name)

    def pack(self):
        return self.STRUCT.pack(*self)


def split_mtk_header(data):
    """Returns (MtkHeader or None, payload)."""
    if (data is None or len(data) < MtkHeader.STRUCT.size or
            not data.startswith(MtkHeader.MAGIC)):
        return None, data
    return MtkHeader.unpack_from(data), data[MtkHeader.STRUCT.size:]


# AVB structures are big-endian

class AvbFooter(collections.namedtuple('AvbFooter',
        'magic version_major version_minor original_image_size '
        'vbmeta_offset vbmeta_size reserved')):
    __slots__ = ()

    MAGIC = b'AVBf'
    STRUCT = struct.Struct(
        '>4s'  # magic
        'II'  # version major, minor
        'Q'  # original image size
        'Q'  # vbmeta offset
        'Q'  # vbmeta size
        '28s'  # reserved
        )

    @classmethod
    def unpack_from(cls, data, offset=0):
        return cls._make(cls.STRUCT.unpack_from(data, offset))


class VbmetaHeader(collections.namedtuple('VbmetaHeader',
        'magic required_libavb_version_major required_libavb_version_minor '
        'authentication_data_block_size auxiliary_data_block_size '
        'algorithm_type hash_offset hash_size signature_offset signature_size '
        'public_key_offset public_key_size public_key_metadata_offset '
        'public_key_metadata_size descriptors_offset descriptors_size '
        'rollback_index flags rollback_index_location release_string reserved')):
    __slots__ = ()

    MAGIC = b'AVB0'
    STRUCT = struct.Struct(
        '>4s'  # magic
        'II'  # required libavb version major, minor
        'QQ'  # authentication, auxiliary data block sizes
        'I'  # algorithm type
        'QQ'  # hash offset, size
        'QQ'  # signature offset, size
        'QQ'  # public key offset, size
        'QQ'  # public key metadata offset, size
        'QQ'  # descriptors offset, size
        'Q'  # rollback index
        'I'  # flags
        'I'  # rollback index location
        '48s'  # release string
        '80s'  # reserved
        )

    @classmethod
    def unpack_from(cls, data, offset=0):
        return cls._make(cls.STRUCT.unpack_from(data, offset))

    @property
    def release(self):
        return decode_asciiz(self.release_string)


def find_avb(data):
    """Returns (AvbFooter, VbmetaHeader) for an image ending in an AVB footer, else None."""
    size = AvbFooter.STRUCT.size
    if len(data) < size or not data.startswith(AvbFooter.MAGIC, len(data) - size):
        return None
    footer = AvbFooter.unpack_from(data, len(data) - size)
    offset = footer.vbmeta_offset
    if (offset + VbmetaHeader.STRUCT.size > len(data) or
            not data.startswith(VbmetaHeader.MAGIC, offset)):
        return None
    return footer, VbmetaHeader.unpack_from(data, offset)


def is_avb1_signature(tail):
    # AVB 1.0 signatures are a DER SEQUENCE with a two byte length
    if len(tail) < 4 or not tail.startswith(b'\x30\x82'):
        return False
    length, = struct.unpack_from('>H', tail, 2)
    return 4 + length <= len(tail)
