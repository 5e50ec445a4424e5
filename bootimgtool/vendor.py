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
import enum
import logging
import struct

from .formats import Format, classify
from .headers import decode_asciiz

log = logging.getLogger(__name__)

VENDOR_RAMDISK_NAME_SIZE = 32
VENDOR_RAMDISK_TABLE_ENTRY_BOARD_ID_SIZE = 16


class RamdiskType(enum.IntEnum):
    NONE = 0
    PLATFORM = 1
    RECOVERY = 2
    DLKM = 3


def ramdisk_type_name(value):
    try:
        return RamdiskType(value).name.lower()
    except ValueError:
        return 'unknown({})'.format(value)


# size, offset, type, name, board id
ENTRY_FMT = struct.Struct('<III{}s{}s'.format(
    VENDOR_RAMDISK_NAME_SIZE, VENDOR_RAMDISK_TABLE_ENTRY_BOARD_ID_SIZE * 4))

VendorRamdiskEntry = collections.namedtuple(
    'VendorRamdiskEntry', 'name type offset size format board_id')


def fragment_bytes(entry, ramdisk):
    if not in_range(entry, ramdisk):
        return None
    return ramdisk[entry.offset:entry.offset + entry.size]


def in_range(entry, ramdisk):
    return ramdisk is not None and entry.offset + entry.size <= len(ramdisk)


def parse_vendor_ramdisk_table(table, entry_num, entry_size, ramdisk):
    if not table or not entry_num or not entry_size:
        return ()
    entries = []
    for i in range(entry_num):
        start = i * entry_size
        if start + ENTRY_FMT.size > len(table):
            log.warning('vendor ramdisk table ends after %d of %d entries', i, entry_num)
            break
        size, offset, rtype, name, board_id = ENTRY_FMT.unpack_from(table, start)
        entry = VendorRamdiskEntry(
            decode_asciiz(name), rtype, offset, size, Format.UNKNOWN, board_id)
        if in_range(entry, ramdisk):
            entry = entry._replace(format=classify(fragment_bytes(entry, ramdisk)))
        else:
            log.warning('vendor ramdisk %d (%s) at %d+%d lies outside the %d byte ramdisk',
                        i, entry.name, offset, size, len(ramdisk or b''))
        entries.append(entry)
    return tuple(entries)


def build_vendor_ramdisk_table(entries, entry_size):
    if entry_size < ENTRY_FMT.size:
        raise ValueError('vendor ramdisk table entry size {} is below {}'.format(
            entry_size, ENTRY_FMT.size))
    table = []
    for entry in entries:
        record = ENTRY_FMT.pack(entry.size, entry.offset, entry.type,
                                entry.name.encode('latin-1'), entry.board_id)
        table.append(record.ljust(entry_size, b'\x00'))
    return b''.join(table)
