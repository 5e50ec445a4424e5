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

from .errors import TruncatedData

BOOT_MAGIC = b'ANDROID!'
VENDOR_BOOT_MAGIC = b'VNDRBOOT'

V3_PAGE_SIZE = 4096
V3_HEADER_SPACE = 4096

# page_size values at or above this belong to the PXA layout, whose field at
# the same offset is unrelated
PXA_PAGE_SIZE_LIMIT = 0x02000000

SHA1_SIZE = 20


def is_power_of_two(value):
    return value > 0 and not value & (value - 1)


def align(value, page):
    if not is_power_of_two(page):
        raise ValueError('alignment {} is not a power of two'.format(page))
    return (value + page - 1) & ~(page - 1)


def decode_asciiz(s):
    return s.split(b'\x00', 1)[0].decode('latin-1')


def decode_os_version(value):
    """Split a packed os_version into ((major, minor, patch), (year, month))."""
    version = value >> 11
    patch_level = value & 0x7ff
    return ((version >> 14 & 0x7f, version >> 7 & 0x7f, version & 0x7f),
            (2000 + (patch_level >> 4), patch_level & 0xf))


def encode_os_version(value, version=None, patch_level=None):
    if version is not None:
        major, minor, patch = version
        packed = (major & 0x7f) << 14 | (minor & 0x7f) << 7 | (patch & 0x7f)
        value = packed << 11 | (value & 0x7ff)
    if patch_level is not None:
        year, month = patch_level
        value = (value & ~0x7ff) | ((year - 2000) & 0x7f) << 4 | (month & 0xf)
    return value


def _names(layout):
    return ' '.join(name for name, _ in layout)


def _struct(layout):
    return struct.Struct('<' + ''.join(fmt for _, fmt in layout))


# magic, kernel size/addr, ramdisk size/addr, second size/addr
_COMMON_LAYOUT = (
    ('magic', '8s'),
    ('kernel_size', 'I'),
    ('kernel_addr', 'I'),
    ('ramdisk_size', 'I'),
    ('ramdisk_addr', 'I'),
    ('second_size', 'I'),
    ('second_addr', 'I'),
)


def _aosp_layout(version_slot):
    return _COMMON_LAYOUT + (
        ('tags_addr', 'I'),
        ('page_size', 'I'),
        (version_slot, 'I'),
        ('os_version', 'I'),
        ('name', '16s'),
        ('cmdline', '512s'),
        ('id', '32s'),
        ('extra_cmdline', '1024s'),
    )


V0_LAYOUT = _aosp_layout('extra_size')

V1_LAYOUT = _aosp_layout('header_version') + (
    ('recovery_dtbo_size', 'I'),
    ('recovery_dtbo_offset', 'Q'),
    ('header_size', 'I'),
)

V2_LAYOUT = V1_LAYOUT + (
    ('dtb_size', 'I'),
    ('dtb_addr', 'Q'),
)

PXA_LAYOUT = _COMMON_LAYOUT + (
    ('extra_size', 'I'),
    ('unknown', 'I'),
    ('tags_addr', 'I'),
    ('page_size', 'I'),
    ('name', '24s'),
    ('cmdline', '512s'),
    ('id', '32s'),
    ('extra_cmdline', '1024s'),
)

V3_LAYOUT = (
    ('magic', '8s'),
    ('kernel_size', 'I'),
    ('ramdisk_size', 'I'),
    ('os_version', 'I'),
    ('header_size', 'I'),
    ('reserved', '16s'),
    ('header_version', 'I'),
    ('cmdline', '1536s'),
)

V4_LAYOUT = V3_LAYOUT + (
    ('signature_size', 'I'),
)

VENDOR_V3_LAYOUT = (
    ('magic', '8s'),
    ('header_version', 'I'),
    ('page_size', 'I'),
    ('kernel_addr', 'I'),
    ('ramdisk_addr', 'I'),
    ('ramdisk_size', 'I'),
    ('cmdline', '2048s'),
    ('tags_addr', 'I'),
    ('name', '16s'),
    ('header_size', 'I'),
    ('dtb_size', 'I'),
    ('dtb_addr', 'Q'),
)

VENDOR_V4_LAYOUT = VENDOR_V3_LAYOUT + (
    ('vendor_ramdisk_table_size', 'I'),
    ('vendor_ramdisk_table_entry_num', 'I'),
    ('vendor_ramdisk_table_entry_size', 'I'),
    ('bootconfig_size', 'I'),
)


class _Header(object):
    """Behaviour shared by every header layout.

    Subclasses mix this into a namedtuple generated from their LAYOUT, so an
    instance is immutable and edits go through _replace().
    """
    __slots__ = ()

    LAYOUT = ()
    STRUCT = None
    MAGIC = BOOT_MAGIC
    IS_VENDOR = False
    # component name -> size field, in on-disk order
    SIZE_FIELDS = ()
    NAME_FIELD = None
    CMDLINE_FIELDS = ('cmdline',)

    @classmethod
    def unpack_from(cls, data, offset=0):
        if len(data) - offset < cls.STRUCT.size:
            raise TruncatedData('{} needs {} bytes at offset {}, got {}'.format(
                cls.__name__, cls.STRUCT.size, offset, len(data) - offset))
        return cls._make(cls.STRUCT.unpack_from(data, offset))

    @classmethod
    def new(cls, **fields):
        values = dict((name, b'' if fmt.endswith('s') else 0)
                      for name, fmt in cls.LAYOUT)
        values['magic'] = cls.MAGIC
        values.update(fields)
        return cls(**values)

    @classmethod
    def field_size(cls, name):
        fmt = dict(cls.LAYOUT)[name]
        return struct.calcsize('<' + fmt)

    def pack(self):
        return self.STRUCT.pack(*self)

    @property
    def struct_size(self):
        return self.STRUCT.size

    def effective_header_version(self):
        return self.header_version

    def effective_page_size(self):
        return self.page_size

    def header_space(self):
        return align(self.struct_size, self.effective_page_size())

    def components(self):
        return tuple(name for name, _ in self.SIZE_FIELDS)

    def component_size(self, name):
        field = dict(self.SIZE_FIELDS).get(name)
        return getattr(self, field) if field else 0

    def with_component_sizes(self, sizes):
        return self._replace(**dict(
            (field, sizes.get(name, 0)) for name, field in self.SIZE_FIELDS))

    @property
    def has_id(self):
        return 'id' in self._fields

    @property
    def has_os_version(self):
        return 'os_version' in self._fields

    @property
    def name_text(self):
        if self.NAME_FIELD is None:
            return ''
        return decode_asciiz(getattr(self, self.NAME_FIELD))

    @property
    def cmdline_texts(self):
        return tuple(decode_asciiz(getattr(self, f)) for f in self.CMDLINE_FIELDS)

    def with_name(self, name):
        if self.NAME_FIELD is None:
            return self
        size = self.field_size(self.NAME_FIELD)
        return self._replace(**{self.NAME_FIELD: name.encode('latin-1')[:size]})

    def with_cmdline(self, cmdline):
        data = cmdline.encode('latin-1')
        fields = {}
        for name in self.CMDLINE_FIELDS:
            size = self.field_size(name)
            fields[name] = data[:size]
            data = data[size:]
        return self._replace(**fields)

    def with_os_version(self, version=None, patch_level=None):
        if not self.has_os_version:
            return self
        return self._replace(os_version=encode_os_version(
            self.os_version, version, patch_level))


class _LegacyHeader(_Header):
    __slots__ = ()
    NAME_FIELD = 'name'
    CMDLINE_FIELDS = ('cmdline', 'extra_cmdline')


class BootHeaderV0(_LegacyHeader, collections.namedtuple('BootHeaderV0', _names(V0_LAYOUT))):
    __slots__ = ()
    LAYOUT = V0_LAYOUT
    STRUCT = _struct(V0_LAYOUT)
    SIZE_FIELDS = (
        ('kernel', 'kernel_size'),
        ('ramdisk', 'ramdisk_size'),
        ('second', 'second_size'),
        ('extra', 'extra_size'),
    )

    def effective_header_version(self):
        return 0


class BootHeaderV1(_LegacyHeader, collections.namedtuple('BootHeaderV1', _names(V1_LAYOUT))):
    __slots__ = ()
    LAYOUT = V1_LAYOUT
    STRUCT = _struct(V1_LAYOUT)
    SIZE_FIELDS = (
        ('kernel', 'kernel_size'),
        ('ramdisk', 'ramdisk_size'),
        ('second', 'second_size'),
        ('recovery_dtbo', 'recovery_dtbo_size'),
    )


class BootHeaderV2(_LegacyHeader, collections.namedtuple('BootHeaderV2', _names(V2_LAYOUT))):
    __slots__ = ()
    LAYOUT = V2_LAYOUT
    STRUCT = _struct(V2_LAYOUT)
    SIZE_FIELDS = BootHeaderV1.SIZE_FIELDS + (
        ('dtb', 'dtb_size'),
    )


class BootHeaderPxa(_LegacyHeader, collections.namedtuple('BootHeaderPxa', _names(PXA_LAYOUT))):
    __slots__ = ()
    LAYOUT = PXA_LAYOUT
    STRUCT = _struct(PXA_LAYOUT)
    SIZE_FIELDS = BootHeaderV0.SIZE_FIELDS

    def effective_header_version(self):
        return 0


class _V3Header(_Header):
    __slots__ = ()
    SIZE_FIELDS = (
        ('kernel', 'kernel_size'),
        ('ramdisk', 'ramdisk_size'),
    )

    def effective_page_size(self):
        return V3_PAGE_SIZE

    def header_space(self):
        return V3_HEADER_SPACE


class BootHeaderV3(_V3Header, collections.namedtuple('BootHeaderV3', _names(V3_LAYOUT))):
    __slots__ = ()
    LAYOUT = V3_LAYOUT
    STRUCT = _struct(V3_LAYOUT)


class BootHeaderV4(_V3Header, collections.namedtuple('BootHeaderV4', _names(V4_LAYOUT))):
    __slots__ = ()
    LAYOUT = V4_LAYOUT
    STRUCT = _struct(V4_LAYOUT)


class _VendorHeader(_Header):
    __slots__ = ()
    MAGIC = VENDOR_BOOT_MAGIC
    IS_VENDOR = True
    NAME_FIELD = 'name'


class VendorHeaderV3(_VendorHeader, collections.namedtuple('VendorHeaderV3', _names(VENDOR_V3_LAYOUT))):
    __slots__ = ()
    LAYOUT = VENDOR_V3_LAYOUT
    STRUCT = _struct(VENDOR_V3_LAYOUT)
    SIZE_FIELDS = (
        ('ramdisk', 'ramdisk_size'),
        ('dtb', 'dtb_size'),
    )


class VendorHeaderV4(_VendorHeader, collections.namedtuple('VendorHeaderV4', _names(VENDOR_V4_LAYOUT))):
    __slots__ = ()
    LAYOUT = VENDOR_V4_LAYOUT
    STRUCT = _struct(VENDOR_V4_LAYOUT)
    SIZE_FIELDS = VendorHeaderV3.SIZE_FIELDS + (
        ('vendor_ramdisk_table', 'vendor_ramdisk_table_size'),
        ('bootconfig', 'bootconfig_size'),
    )


BOOT_HEADERS = {
    1: BootHeaderV1,
    2: BootHeaderV2,
    3: BootHeaderV3,
    4: BootHeaderV4,
}

_U32 = struct.Struct('<I')


def select_boot_header(data, offset):
    """Pick the layout of the ANDROID! header at offset.

    The word at offset 36 is page_size everywhere except on PXA images;
    the word at 40 is header_version, or extra_size on v0 images.
    """
    if len(data) - offset < 44:
        raise TruncatedData('boot header at offset {} is cut short'.format(offset))
    page_size, = _U32.unpack_from(data, offset + 36)
    if page_size >= PXA_PAGE_SIZE_LIMIT:
        return BootHeaderPxa
    version, = _U32.unpack_from(data, offset + 40)
    return BOOT_HEADERS.get(version, BootHeaderV0)


def select_vendor_header(version):
    return VendorHeaderV4 if version >= 4 else VendorHeaderV3
