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

import argparse
import binascii
import logging
import os
import sys

from .bootimage import BootImage, ImageFlags, flag_names
from .compress import compress, decompress
from .errors import BootImageError
from .formats import classify, format_extension, format_name, parse_format_name
from .integrity import verify_dhtb, verify_id
from .repack import repack_file
from .sidecar import HEADER_FILE, read_header_file
from .unpack import load_components, split_kernel_file, unpack_image
from .vendor import ramdisk_type_name


def print_image_info(image):
    hdr = image.header
    print('Boot Image' if not image.is_vendor else 'Vendor Boot Image')
    print('==========')
    print('layout = {}, header offset = {}'.format(type(hdr).__name__, image.header_offset))
    print('header_version = {}'.format(image.header_version))
    print('page_size = {}'.format(image.page_size))
    if image.os_version:
        version, patch_level = image.os_version_parts()
        print('os_version = {}.{}.{}'.format(*version))
        print('os_patch_level = {}-{:02}'.format(*patch_level))
    if hdr.NAME_FIELD is not None:
        print('name = {}'.format(image.name))
    print('cmdline = {}'.format(image.cmdline))
    if image.extra_cmdline:
        print('extra_cmdline = {}'.format(image.extra_cmdline))
    if hdr.has_id:
        print('id = {}'.format(binascii.hexlify(hdr.id).decode('ascii')))
    print('flags = {}'.format(', '.join(flag_names(image.flags)) or 'none'))
    print('components:')
    formats = {
        'kernel': image.kernel_format,
        'ramdisk': image.ramdisk_format,
        'extra': image.extra_format,
    }
    for name in BootImage.COMPONENTS:
        if getattr(image, name) is None:
            continue
        line = '  {} = {} bytes'.format(name, image.size(name))
        if name in formats:
            line += ' ({})'.format(format_name(formats[name]))
        if name == 'recovery_dtbo':
            line += ' @ {}'.format(image.recovery_dtbo_offset)
        print(line)
    if image.vendor_ramdisk_entries:
        print('vendor ramdisks:')
        for i, entry in enumerate(image.vendor_ramdisk_entries):
            print('  {}. {} type={} offset={} size={} ({})'.format(
                i, entry.name or '<unnamed>', ramdisk_type_name(entry.type),
                entry.offset, entry.size, format_name(entry.format)))
    for label, mtk in (('kernel', image.mtk_kernel_header),
                       ('ramdisk', image.mtk_ramdisk_header)):
        if mtk is not None:
            print('mtk {} header: name = {}, size = {}'.format(label, mtk.name_text, mtk.size))
    if image.avb_footer is not None:
        footer, vbmeta = image.avb_footer, image.vbmeta_header
        print('avb footer: version {}.{}, original size = {}, vbmeta @ {} ({} bytes)'.format(
            footer.version_major, footer.version_minor, footer.original_image_size,
            footer.vbmeta_offset, footer.vbmeta_size))
        print('vbmeta: algorithm = {}, flags = {:x}, release = {}'.format(
            vbmeta.algorithm_type, vbmeta.flags, vbmeta.release))
    print('tail = {} bytes'.format(len(image.tail)))
    print('')


def _load(file):
    with file as f:
        return BootImage.parse(f.read())


def cmd_info(args):
    print_image_info(_load(args.image))
    return 0


def cmd_unpack(args):
    image = _load(args.image)
    print_image_info(image)
    return unpack_image(image, args.dir, skip_decompress=args.no_decompress)


def cmd_repack(args):
    template = _load(args.image)
    components, vendor_ramdisks = load_components(template, args.dir)
    header_path = os.path.join(args.dir, HEADER_FILE)
    props = read_header_file(header_path) if os.path.exists(header_path) else {}
    size = repack_file(template, args.out, components, vendor_ramdisks, props,
                       skip_compress=args.no_compress)
    print('wrote {} ({} bytes)'.format(args.out, size))
    return 0


def cmd_split(args):
    path = args.kernel
    if not os.path.isfile(path):
        raise SystemExit('no such file: {}'.format(path))
    if not split_kernel_file(path, args.dir, skip_decompress=args.no_decompress):
        print('no DTB found in {}'.format(path))
        return 1
    return 0


def cmd_verify(args):
    image = _load(args.image)
    ok = True
    if image.header.has_id:
        id_ok = verify_id(image)
        print('id: {}'.format('valid' if id_ok else 'MISMATCH'))
        ok = ok and id_ok
    if ImageFlags.DHTB in image.flags:
        dhtb_ok = verify_dhtb(image)
        print('dhtb checksum: {}'.format('valid' if dhtb_ok else 'MISMATCH'))
        ok = ok and dhtb_ok
    print('avb1 signature: {}'.format(
        'present' if ImageFlags.AVB1_SIGNED in image.flags else 'none'))
    return 0 if ok else 1


def cmd_compress(args):
    fmt = parse_format_name(args.format)
    with args.infile as f:
        path = f.name
        data = f.read()
    out = args.outfile or path + format_extension(fmt)
    with open(out, 'wb') as f:
        f.write(compress(data, fmt))
    return 0


def cmd_decompress(args):
    with args.infile as f:
        path = f.name
        data = f.read()
    out = args.outfile
    if not out:
        ext = format_extension(classify(data))
        if not ext or not path.endswith(ext):
            raise SystemExit('cannot derive an output name for {}'.format(path))
        out = path[:-len(ext)]
    with open(out, 'wb') as f:
        f.write(decompress(data))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='bootimgtool', description='Android boot image unpacker and repacker')
    parser.add_argument('-v', '--verbose', action='store_true')
    subparsers = parser.add_subparsers(dest='command')
    subparsers.required = True

    p = subparsers.add_parser('info', help='print the image header')
    p.add_argument('image', type=argparse.FileType('rb'))
    p.set_defaults(func=cmd_info)

    p = subparsers.add_parser('unpack', help='extract components into a directory')
    p.add_argument('-n', '--no-decompress', action='store_true')
    p.add_argument('-d', '--dir', default='.')
    p.add_argument('image', type=argparse.FileType('rb'))
    p.set_defaults(func=cmd_unpack)

    p = subparsers.add_parser('repack', help='rebuild an image from a directory')
    p.add_argument('-n', '--no-compress', action='store_true')
    p.add_argument('-d', '--dir', default='.')
    p.add_argument('image', type=argparse.FileType('rb'))
    p.add_argument('out', nargs='?', default='new-boot.img')
    p.set_defaults(func=cmd_repack)

    p = subparsers.add_parser('split', help='split an appended DTB off a kernel')
    p.add_argument('-n', '--no-decompress', action='store_true')
    p.add_argument('-d', '--dir', default='.')
    p.add_argument('kernel')
    p.set_defaults(func=cmd_split)

    p = subparsers.add_parser('verify', help='check the id digest and DHTB checksum')
    p.add_argument('image', type=argparse.FileType('rb'))
    p.set_defaults(func=cmd_verify)

    p = subparsers.add_parser('compress', help='compress a file')
    p.add_argument('-f', '--format', default='gzip')
    p.add_argument('infile', type=argparse.FileType('rb'))
    p.add_argument('outfile', nargs='?')
    p.set_defaults(func=cmd_compress)

    p = subparsers.add_parser('decompress', help='decompress a file')
    p.add_argument('infile', type=argparse.FileType('rb'))
    p.add_argument('outfile', nargs='?')
    p.set_defaults(func=cmd_decompress)

    args = parser.parse_args(argv)
    logging.basicConfig(
        format='%(levelname)s: %(name)s: %(message)s',
        level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        return args.func(args)
    except BootImageError as e:
        raise SystemExit('{}: {}'.format(type(e).__name__, e))


if __name__ == '__main__':
    sys.exit(main())
