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

import logging
import os

from .bootimage import ImageFlags
from .compress import can_decompress, decompress
from .dtb import split_kernel_dtb
from .formats import classify, format_name, is_compressed
from .sidecar import HEADER_FILE, header_props, write_header_file
from .vendor import fragment_bytes

log = logging.getLogger(__name__)

# Components with a file of the same name
FILE_COMPONENTS = (
    'kernel', 'kernel_dtb', 'ramdisk', 'second', 'extra', 'recovery_dtbo',
    'dtb', 'bootconfig')
VENDOR_RAMDISK_DIR = 'vendor_ramdisk'

CHROMEOS_EXIT_CODE = 2


def fragment_file_name(entry):
    return '{}.cpio'.format(entry.name or 'ramdisk')


def _read(path):
    with open(path, 'rb') as f:
        return f.read()


def _write(path, data):
    with open(path, 'wb') as f:
        f.write(data)


def _decompressed(name, data, fmt):
    if not is_compressed(fmt):
        return data
    if not can_decompress(fmt):
        log.warning('no %s decoder, writing %s as is', format_name(fmt), name)
        return data
    return decompress(data)


def unpack_image(image, out_dir='.', skip_decompress=False):
    """Writes the header sidecar and every present component into out_dir.

    Returns the process exit code: 2 for ChromeOS images, whose payload
    needs re-signing, 0 otherwise.
    """
    if not os.path.isdir(out_dir):
        os.makedirs(out_dir)
    write_header_file(os.path.join(out_dir, HEADER_FILE), header_props(image))

    formats = {
        'kernel': image.kernel_format,
        'ramdisk': image.ramdisk_format,
        'extra': image.extra_format,
    }
    for name in FILE_COMPONENTS:
        data = getattr(image, name)
        if data is None:
            continue
        if name == 'ramdisk' and image.vendor_ramdisk_entries:
            unpack_vendor_ramdisks(image, os.path.join(out_dir, VENDOR_RAMDISK_DIR),
                                   skip_decompress)
            continue
        if name in formats and not skip_decompress:
            data = _decompressed(name, data, formats[name])
        _write(os.path.join(out_dir, name), data)

    if ImageFlags.CHROMEOS in image.flags:
        return CHROMEOS_EXIT_CODE
    return 0


def unpack_vendor_ramdisks(image, out_dir, skip_decompress=False):
    if not os.path.isdir(out_dir):
        os.makedirs(out_dir)
    for i, entry in enumerate(image.vendor_ramdisk_entries):
        data = fragment_bytes(entry, image.ramdisk)
        if data is None:
            log.warning('skipping vendor ramdisk %d (%s), it lies outside the ramdisk',
                        i, entry.name)
            continue
        if not skip_decompress:
            data = _decompressed(entry.name, data, entry.format)
        _write(os.path.join(out_dir, fragment_file_name(entry)), data)


def load_components(image, src_dir='.'):
    """Replacement components for repacking image from the files in src_dir.

    Returns (components, vendor_ramdisks) as taken by Repacker. A missing
    file means the component is absent, except that a vendor ramdisk with
    a table is rebuilt from vendor_ramdisk/ when there is no ramdisk file.
    """
    components = {}
    for name in FILE_COMPONENTS:
        path = os.path.join(src_dir, name)
        components[name] = _read(path) if os.path.exists(path) else None

    vendor_ramdisks = {}
    fragment_dir = os.path.join(src_dir, VENDOR_RAMDISK_DIR)
    if (image.vendor_ramdisk_entries and components['ramdisk'] is None and
            os.path.isdir(fragment_dir)):
        del components['ramdisk']
        for i, entry in enumerate(image.vendor_ramdisk_entries):
            path = os.path.join(fragment_dir, fragment_file_name(entry))
            if os.path.exists(path):
                vendor_ramdisks[i] = _read(path)
    return components, vendor_ramdisks


def split_kernel_file(path, out_dir='.', skip_decompress=False):
    """Splits a kernel file with an appended DTB into kernel and kernel_dtb.

    Returns False when no valid DTB is found.
    """
    kernel, dtb = split_kernel_dtb(_read(path), validate=True)
    if dtb is None:
        return False
    if not skip_decompress:
        kernel = _decompressed('kernel', kernel, classify(kernel))
    _write(os.path.join(out_dir, 'kernel'), kernel)
    _write(os.path.join(out_dir, 'kernel_dtb'), dtb)
    return True
