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

from bootimgtool.dtb import (
    DTB_MAGIC, find_dtb_offset, find_fdt_offset, split_kernel_dtb)

from imgutil import fdt, payload


def kernel_with_fdt_at(offset):
    return payload(b'kernel-', offset) + fdt()


def test_valid_fdt_both_variants_agree():
    kernel = kernel_with_fdt_at(900)
    assert find_dtb_offset(kernel) == 900
    assert find_fdt_offset(kernel) == 900


def test_spurious_magic_only_fools_permissive_search():
    kernel = bytearray(kernel_with_fdt_at(900))
    kernel[50:54] = DTB_MAGIC
    kernel = bytes(kernel)
    assert find_dtb_offset(kernel) == 50
    assert find_fdt_offset(kernel) == 900


def test_spurious_magic_without_fdt():
    kernel = bytearray(payload(b'kernel-', 400))
    kernel[50:54] = DTB_MAGIC
    kernel = bytes(kernel)
    assert find_dtb_offset(kernel) == 50
    assert find_fdt_offset(kernel) == -1


def test_truncated_fdt_rejected():
    blob = fdt()
    kernel = payload(b'kernel-', 100) + blob[:len(blob) - 10]
    assert find_fdt_offset(kernel) == -1


def test_split_kernel_dtb():
    kernel = kernel_with_fdt_at(900)
    head, dtb = split_kernel_dtb(kernel)
    assert len(head) == 900
    assert dtb == fdt()
    head, dtb = split_kernel_dtb(kernel, validate=True)
    assert len(head) == 900


def test_split_ignores_magic_at_start():
    blob = fdt()
    assert split_kernel_dtb(blob) == (blob, None)
    assert split_kernel_dtb(payload(b'kernel-', 100)) == (payload(b'kernel-', 100), None)
