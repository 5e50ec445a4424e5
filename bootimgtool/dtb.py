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

import struct

DTB_MAGIC = b'\xd0\x0d\xfe\xed'
FDT_BEGIN_NODE = 1

# FDT header words are big-endian: magic, totalsize, off_dt_struct
_FDT_PREFIX = struct.Struct('>III')
_FDT_TAG = struct.Struct('>I')


def find_dtb_offset(kernel, start=0):
    """First raw occurrence of the DTB magic, or -1. No validation."""
    return kernel.find(DTB_MAGIC, start)


def _is_fdt(kernel, offset):
    remaining = len(kernel) - offset
    if remaining < _FDT_PREFIX.size:
        return False
    _, totalsize, off_dt_struct = _FDT_PREFIX.unpack_from(kernel, offset)
    if totalsize > remaining or off_dt_struct > remaining:
        return False
    if off_dt_struct + _FDT_TAG.size > remaining:
        return False
    tag, = _FDT_TAG.unpack_from(kernel, offset + off_dt_struct)
    return tag == FDT_BEGIN_NODE


def find_fdt_offset(kernel, start=0):
    """First DTB magic that heads a plausible FDT, or -1.

    totalsize and the structure block offset must fit in the rest of the
    buffer and the structure block must open with FDT_BEGIN_NODE.
    """
    offset = kernel.find(DTB_MAGIC, start)
    while offset >= 0:
        if _is_fdt(kernel, offset):
            return offset
        offset = kernel.find(DTB_MAGIC, offset + 1)
    return -1


def split_kernel_dtb(kernel, validate=False):
    """Split an appended DTB off a kernel.

    Returns (kernel, dtb); dtb is None when nothing was found. A match at
    offset 0 means the buffer is a bare DTB, not a kernel, and is not split.
    """
    offset = find_fdt_offset(kernel) if validate else find_dtb_offset(kernel)
    if offset > 0:
        return kernel[:offset], kernel[offset:]
    return kernel, None
