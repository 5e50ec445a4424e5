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

"""The "header" sidecar: editable key=value copy of the image's text fields."""
import collections
import logging

from .headers import decode_os_version

log = logging.getLogger(__name__)

HEADER_FILE = 'header'
KNOWN_KEYS = ('name', 'cmdline', 'os_version', 'os_patch_level')


def header_props(image):
    hdr = image.header
    props = collections.OrderedDict()
    if hdr.NAME_FIELD is not None:
        props['name'] = image.name
    props['cmdline'] = image.cmdline + image.extra_cmdline
    if image.os_version:
        version, patch_level = decode_os_version(image.os_version)
        props['os_version'] = '{}.{}.{}'.format(*version)
        props['os_patch_level'] = '{}-{:02}'.format(*patch_level)
    return props


def read_header_file(path):
    props = collections.OrderedDict()
    with open(path, 'r', encoding='latin-1') as f:
        for line in f:
            line = line.rstrip('\r\n')
            key, sep, value = line.partition('=')
            if not sep:
                continue
            props[key.strip()] = value
    return props


def write_header_file(path, props):
    with open(path, 'w', encoding='latin-1') as f:
        for key, value in props.items():
            f.write('{}={}\n'.format(key, value))


def parse_os_version(value):
    parts = value.strip().split('.')
    if not 1 <= len(parts) <= 3:
        raise ValueError('bad os_version {!r}'.format(value))
    numbers = [int(p) for p in parts]
    return tuple(numbers + [0] * (3 - len(numbers)))


def parse_os_patch_level(value):
    parts = value.strip().split('-')
    if len(parts) != 2:
        raise ValueError('bad os_patch_level {!r}'.format(value))
    year, month = int(parts[0]), int(parts[1])
    if not 2000 <= year < 2128 or not 0 <= month < 16:
        raise ValueError('os_patch_level {!r} out of range'.format(value))
    return year, month


def apply_header_props(hdr, props):
    """Returns hdr with the sidecar overrides in props applied.

    Unknown keys are ignored, malformed version values are logged and skipped.
    """
    if 'name' in props:
        hdr = hdr.with_name(props['name'])
    if 'cmdline' in props:
        hdr = hdr.with_cmdline(props['cmdline'])
    if 'os_version' in props:
        try:
            hdr = hdr.with_os_version(version=parse_os_version(props['os_version']))
        except ValueError as e:
            log.warning('ignoring os_version: %s', e)
    if 'os_patch_level' in props:
        try:
            hdr = hdr.with_os_version(
                patch_level=parse_os_patch_level(props['os_patch_level']))
        except ValueError as e:
            log.warning('ignoring os_patch_level: %s', e)
    return hdr
