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

import hashlib
import struct

from .wrappers import DHTB_MAGIC, WRAPPER_SIZE, DhtbHeader

# Order in which components feed the id digest
DIGEST_ORDER = ('kernel', 'ramdisk', 'second', 'extra', 'recovery_dtbo', 'dtb')

ID_SIZE = 32

_U32 = struct.Struct('<I')


def compute_id(chunks, sha256=False):
    """Digest for the header id field, zero padded to 32 bytes.

    chunks maps component name to the exact bytes stored for it; absent
    (None or empty) components are left out entirely.
    """
    digest = hashlib.sha256() if sha256 else hashlib.sha1()
    for name in DIGEST_ORDER:
        data = chunks.get(name)
        if not data:
            continue
        digest.update(data)
        digest.update(_U32.pack(len(data)))
    return digest.digest().ljust(ID_SIZE, b'\x00')


def verify_id(image):
    if not image.header.has_id:
        return False
    chunks = dict((name, image.raw_component(name)) for name in DIGEST_ORDER)
    return compute_id(chunks, image.uses_sha256) == image.header.id


def dhtb_header(payload):
    """DHTB prefix for the bytes following it."""
    checksum = hashlib.sha256(payload).digest()
    return DhtbHeader(DHTB_MAGIC, checksum, len(payload), b'').pack()


def verify_dhtb(image):
    data = image.data
    if not data.startswith(DHTB_MAGIC) or len(data) < WRAPPER_SIZE:
        return False
    hdr = DhtbHeader.unpack_from(data)
    if WRAPPER_SIZE + hdr.size > len(data):
        return False
    payload = data[WRAPPER_SIZE:WRAPPER_SIZE + hdr.size]
    return hashlib.sha256(payload).digest() == hdr.checksum[:32]
