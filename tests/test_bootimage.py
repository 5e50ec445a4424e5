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

import pytest

from bootimgtool import BootImage, ImageFlags
from bootimgtool.errors import InvalidFormat, TruncatedData, UnsupportedVersion
from bootimgtool.formats import Format
from bootimgtool.headers import BootHeaderPxa, BootHeaderV4
from bootimgtool.integrity import verify_dhtb, verify_id
from bootimgtool.wrappers import LG_BUMP_MAGIC, SEANDROID_MAGIC

from imgutil import (
    boot_image, boot_image_v3, fdt, pad, payload, pxa_image, vendor_boot_image)

KERNEL = payload(b'kernel-', 1000)
RAMDISK = payload(b'ramdisk-', 2000)
DTB = payload(b'dtb-', 500)


def offsets(image):
    return dict((r.name, (r.offset, r.size)) for r in image.regions)


def test_v2_scenario():
    data = boot_image(version=2, page_size=4096, kernel=KERNEL, ramdisk=RAMDISK, dtb=DTB)
    image = BootImage.parse(data)
    assert image.header_version == 2
    assert image.page_size == 4096
    assert offsets(image) == {
        'kernel': (4096, 1000),
        'ramdisk': (8192, 2000),
        'dtb': (12288, 500),
    }
    assert image.kernel == KERNEL
    assert image.ramdisk == RAMDISK
    assert image.dtb == DTB
    assert image.second is None
    assert image.extra is None
    assert image.recovery_dtbo is None
    assert image.kernel_dtb is None
    assert image.tail == b''
    assert image.flags == ImageFlags.NONE


@pytest.mark.parametrize('page_size', [2048, 4096])
def test_v0_components(page_size):
    second = payload(b'second-', 300)
    extra = payload(b'extra-', 5000)
    data = boot_image(version=0, page_size=page_size, kernel=KERNEL,
                      ramdisk=RAMDISK, second=second, extra=extra,
                      name=b'board', cmdline=b'console=ttyS0')
    image = BootImage.parse(data)
    p = page_size
    assert image.header_version == 0
    assert offsets(image) == {
        'kernel': (p, 1000),
        'ramdisk': (2 * p, 2000),
        'second': (3 * p, 300),
        'extra': (4 * p, 5000),
    }
    assert image.extra == extra
    assert image.name == 'board'
    assert image.cmdline == 'console=ttyS0'
    assert image.extra_cmdline == ''
    assert image.payload_size == len(data)


def test_v1_recovery_dtbo_at_its_offset():
    dtbo = payload(b'dtbo-', 700)
    data = boot_image(version=1, kernel=KERNEL, ramdisk=RAMDISK, recovery_dtbo=dtbo)
    image = BootImage.parse(data)
    assert image.header_version == 1
    assert image.recovery_dtbo == dtbo
    assert image.recovery_dtbo_offset == 2048 * 3
    assert offsets(image)['recovery_dtbo'] == (6144, 700)


@pytest.mark.parametrize('version', [3, 4])
def test_v3_v4_components(version):
    data = boot_image_v3(version=version, kernel=KERNEL, ramdisk=RAMDISK,
                         cmdline=b'a' * 600, signature_size=16)
    image = BootImage.parse(data)
    assert image.header_version == version
    assert image.page_size == 4096
    assert offsets(image) == {'kernel': (4096, 1000), 'ramdisk': (8192, 2000)}
    assert image.cmdline == 'a' * 600
    assert image.name == ''
    if version == 4:
        assert isinstance(image.header, BootHeaderV4)
        assert image.header.signature_size == 16


def test_pxa_reports_version_zero():
    extra = payload(b'extra-', 100)
    data = pxa_image(kernel=KERNEL, ramdisk=RAMDISK, extra=extra,
                     name=b'n' * 20, cmdline=b'pxa')
    image = BootImage.parse(data)
    assert isinstance(image.header, BootHeaderPxa)
    assert image.header_version == 0
    assert image.extra == extra
    assert image.name == 'n' * 20
    assert image.os_version == 0
    assert verify_id(image)


def test_zero_sized_components_are_absent():
    data = boot_image(version=2, kernel=KERNEL)
    image = BootImage.parse(data)
    for name in ('ramdisk', 'second', 'recovery_dtbo', 'dtb'):
        assert getattr(image, name) is None
        assert image.size(name) == 0
    assert image.size('kernel') == 1000


def test_magic_found_after_leading_garbage():
    data = b'\x00' * 100 + boot_image(version=0, kernel=KERNEL)
    image = BootImage.parse(data)
    assert image.header_offset == 100
    assert image.kernel == KERNEL


def test_no_magic():
    with pytest.raises(InvalidFormat):
        BootImage.parse(b'\x00' * 8192)


def test_zero_page_size_is_not_an_image():
    data = bytearray(boot_image(version=0, kernel=KERNEL, ramdisk=RAMDISK))
    struct.pack_into('<I', data, 36, 0)
    with pytest.raises(InvalidFormat):
        BootImage.parse(bytes(data))


def test_vendor_zero_page_size_is_not_an_image():
    data = bytearray(vendor_boot_image(version=3, ramdisk=RAMDISK, dtb=DTB))
    struct.pack_into('<I', data, 12, 0)
    with pytest.raises(InvalidFormat):
        BootImage.parse(bytes(data))


def test_stray_magic_with_bad_page_size_skipped():
    data = boot_image(version=2, kernel=KERNEL, ramdisk=RAMDISK, dtb=DTB)
    stray = b'ANDROID!' + b'\x00' * 28 + struct.pack('<I', 3000)
    image = BootImage.parse(stray + data)
    assert image.header_offset == len(stray)
    assert image.header_version == 2
    assert image.kernel == KERNEL
    assert image.ramdisk == RAMDISK
    assert image.dtb == DTB


def test_component_past_end_of_buffer():
    data = boot_image(version=0, kernel=KERNEL, ramdisk=RAMDISK)
    with pytest.raises(TruncatedData):
        BootImage.parse(data[:2048 * 2 + 100])


@pytest.mark.parametrize('version', [0, 1, 2])
def test_vendor_below_v3_rejected(version):
    data = b'VNDRBOOT' + struct.pack('<I', version) + b'\x00' * 4096
    with pytest.raises(UnsupportedVersion):
        BootImage.parse(data)


def test_vendor_v3():
    data = vendor_boot_image(version=3, page_size=2048, ramdisk=RAMDISK, dtb=DTB,
                             name=b'vendor', cmdline=b'androidboot.x=1')
    image = BootImage.parse(data)
    assert image.is_vendor
    assert image.header_version == 3
    assert offsets(image) == {'ramdisk': (4096, 2000), 'dtb': (6144, 500)}
    assert image.name == 'vendor'
    assert image.cmdline == 'androidboot.x=1'
    assert image.kernel is None


def test_dhtb_wrapped():
    inner = boot_image(version=0, kernel=KERNEL, ramdisk=RAMDISK) + SEANDROID_MAGIC
    inner += b'\xff\xff\xff\xff'
    prefix = struct.pack('<8s40sI', b'DHTB\x01\x00\x00\x00',
                         hashlib.sha256(inner).digest(), len(inner))
    data = prefix.ljust(512, b'\x00') + inner
    image = BootImage.parse(data)
    assert ImageFlags.DHTB in image.flags
    assert ImageFlags.SEANDROID in image.flags
    assert image.header_offset == 512
    assert offsets(image)['kernel'] == (512 + 2048, 1000)
    assert verify_dhtb(image)
    assert verify_id(image)


def test_chromeos_preamble_skipped():
    data = b'CHROMEOS'.ljust(0x10000, b'\x00') + boot_image(version=0, kernel=KERNEL)
    image = BootImage.parse(data)
    assert image.flags == ImageFlags.CHROMEOS
    assert image.header_offset == 0x10000


def test_blob_wrapped():
    data = b'-SIGNED-BY-SIGNBLOB-'.ljust(512, b'\x00') + boot_image(version=0, kernel=KERNEL)
    image = BootImage.parse(data)
    assert ImageFlags.BLOB in image.flags
    assert image.header_offset == 512


def test_tail_markers():
    base = dict(version=0, kernel=KERNEL)
    image = BootImage.parse(boot_image(tail=SEANDROID_MAGIC, **base))
    assert image.flags == ImageFlags.SEANDROID
    assert image.get_tail() == SEANDROID_MAGIC
    image = BootImage.parse(boot_image(tail=LG_BUMP_MAGIC, **base))
    assert image.flags == ImageFlags.LG_BUMP
    signature = b'\x30\x82\x00\x04' + b'\x00' * 4
    image = BootImage.parse(boot_image(tail=signature, **base))
    assert image.flags == ImageFlags.AVB1_SIGNED


def test_sha256_detected_from_id():
    data = boot_image(version=2, kernel=KERNEL, sha256=True)
    image = BootImage.parse(data)
    assert image.uses_sha256
    assert verify_id(image)
    assert not image.get_tail()


def test_verify_id_detects_changed_payload():
    data = bytearray(boot_image(version=0, kernel=KERNEL))
    data[2048] ^= 0xff
    assert not verify_id(BootImage.parse(bytes(data)))


def test_kernel_dtb_split():
    kernel = payload(b'kernel-', 900) + fdt()
    data = boot_image(version=0, kernel=kernel)
    image = BootImage.parse(data)
    assert image.kernel == kernel[:900]
    assert image.kernel_dtb == fdt()
    assert image.raw_component('kernel') == kernel


def test_mtk_headers():
    def mtk(name, body):
        return struct.pack('<4sI32s472s', b'\x88\x16\x88\x58', len(body), name, b'') + body
    data = boot_image(version=0, kernel=mtk(b'KERNEL', KERNEL),
                      ramdisk=mtk(b'ROOTFS', RAMDISK))
    image = BootImage.parse(data)
    assert ImageFlags.MTK_KERNEL in image.flags
    assert ImageFlags.MTK_RAMDISK in image.flags
    assert image.kernel == KERNEL
    assert image.ramdisk == RAMDISK
    assert image.mtk_kernel_header.name_text == 'KERNEL'
    assert image.mtk_ramdisk_header.size == len(RAMDISK)


def test_component_formats():
    import gzip
    ramdisk = gzip.compress(RAMDISK)
    image = BootImage.parse(boot_image(version=0, kernel=KERNEL, ramdisk=ramdisk))
    assert image.ramdisk_format == Format.GZIP
    assert image.kernel_format == Format.UNKNOWN
    assert image.extra_format == Format.UNKNOWN


def test_payload_and_tail():
    tail = b'trailing signature block'
    data = boot_image(version=0, kernel=KERNEL, tail=tail)
    image = BootImage.parse(data)
    assert image.get_payload() == data[:-len(tail)]
    assert image.get_tail() == tail
    assert len(image.get_payload()) == 2 * 2048


def test_avb_footer_detected():
    body = boot_image(version=2, kernel=KERNEL)
    vbmeta_offset = len(body)
    vbmeta = struct.pack('>4sII', b'AVB0', 1, 0).ljust(256, b'\x00')
    footer = struct.pack('>4sIIQQQ28s', b'AVBf', 1, 0, len(body), vbmeta_offset, 256, b'')
    data = body + pad(vbmeta, 4096) + b'\x00' * (4096 - 64) + footer
    image = BootImage.parse(data)
    assert ImageFlags.AVB in image.flags
    assert image.avb_footer.vbmeta_offset == vbmeta_offset
    assert image.vbmeta_header.required_libavb_version_major == 1


def test_parsed_image_is_immutable():
    image = BootImage.parse(boot_image(version=0, kernel=KERNEL))
    with pytest.raises(AttributeError):
        image.kernel = b''
