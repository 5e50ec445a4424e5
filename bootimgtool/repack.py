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

import io
import logging

from .bootimage import ImageFlags
from .compress import can_compress, compress
from .formats import classify, format_name, is_compressed
from .headers import align
from .integrity import compute_id, dhtb_header
from .sidecar import apply_header_props
from .vendor import build_vendor_ramdisk_table, fragment_bytes
from .wrappers import (
    DHTB_SEANDROID_TRAILER, LG_BUMP_MAGIC, SEANDROID_MAGIC, WRAPPER_SIZE)

log = logging.getLogger(__name__)


class Repacker(object):
    """Lays a template image out again around replacement components.

    components maps component names to replacement bytes; None marks the
    component absent and a missing key keeps the template's data.
    vendor_ramdisks maps vendor ramdisk table indexes to replacement
    fragments. header_props holds sidecar overrides (name, cmdline,
    os_version, os_patch_level).
    """

    def __init__(self, template, components=None, vendor_ramdisks=None,
                 header_props=None, skip_compress=False):
        self.template = template
        self.components = dict(components or {})
        self.vendor_ramdisks = dict(vendor_ramdisks or {})
        self.header_props = dict(header_props or {})
        self.skip_compress = skip_compress
        self._table = None

        supported = set(template.header.components())
        if 'kernel' in supported:
            supported.add('kernel_dtb')
        for name in self.components:
            if name not in supported and self.components[name] is not None:
                log.warning('%s has no place in a %s, ignoring it',
                            name, type(template.header).__name__)

    def _get(self, name):
        if name in self.components:
            return self.components[name]
        return getattr(self.template, name)

    def _recompress(self, name, data, fmt):
        if (data and not self.skip_compress and is_compressed(fmt) and
                not is_compressed(classify(data))):
            if not can_compress(fmt):
                log.warning('no %s encoder, storing %s uncompressed',
                            format_name(fmt), name)
                return data
            log.debug('compressing %s as %s', name, format_name(fmt))
            return compress(data, fmt)
        return data

    def _with_mtk_header(self, hdr, data):
        if hdr is None or data is None:
            return data
        return hdr._replace(size=len(data)).pack() + data

    def _kernel(self):
        t = self.template
        kernel = self._recompress('kernel', self._get('kernel'), t.kernel_format)
        dtb = self._get('kernel_dtb')
        if dtb:
            kernel = (kernel or b'') + dtb
        if ImageFlags.MTK_KERNEL in t.flags:
            kernel = self._with_mtk_header(t.mtk_kernel_header, kernel)
        return kernel

    def _ramdisk(self):
        t = self.template
        if ('ramdisk' not in self.components and self.vendor_ramdisks and
                t.vendor_ramdisk_entries):
            return self._vendor_ramdisk()
        ramdisk = self._recompress('ramdisk', self._get('ramdisk'), t.ramdisk_format)
        if ImageFlags.MTK_RAMDISK in t.flags:
            ramdisk = self._with_mtk_header(t.mtk_ramdisk_header, ramdisk)
        return ramdisk

    def _vendor_ramdisk(self):
        t = self.template
        fragments = []
        entries = []
        offset = 0
        for i, entry in enumerate(t.vendor_ramdisk_entries):
            data = self.vendor_ramdisks.get(i)
            if data is None:
                data = fragment_bytes(entry, t.ramdisk) or b''
            else:
                data = self._recompress(
                    'vendor ramdisk {}'.format(entry.name), data, entry.format)
            entries.append(entry._replace(offset=offset, size=len(data)))
            fragments.append(data)
            offset += len(data)
        self._table = build_vendor_ramdisk_table(
            entries, t.header.vendor_ramdisk_table_entry_size)
        return b''.join(fragments)

    def _component(self, name):
        if name == 'kernel':
            return self._kernel()
        if name == 'ramdisk':
            return self._ramdisk()
        if name == 'extra':
            return self._recompress('extra', self._get('extra'), self.template.extra_format)
        if name == 'vendor_ramdisk_table' and self._table is not None:
            return self._table
        return self._get(name)

    def _pad(self, out, start, page):
        pos = out.tell() - start
        out.write(b'\x00' * (align(pos, page) - pos))

    def write(self, out):
        """Writes the image to out, a seekable stream that can be read back."""
        t = self.template
        hdr = t.header
        page = hdr.effective_page_size()

        if ImageFlags.DHTB in t.flags:
            out.write(b'\x00' * WRAPPER_SIZE)
        elif ImageFlags.BLOB in t.flags:
            out.write(t.data[t.header_offset - WRAPPER_SIZE:t.header_offset])

        header_start = out.tell()
        out.write(b'\x00' * hdr.header_space())

        chunks = {}
        recovery_dtbo_offset = 0
        for name in hdr.components():
            data = self._component(name)
            if not data:
                continue
            if name == 'recovery_dtbo':
                recovery_dtbo_offset = out.tell() - header_start
            out.write(data)
            chunks[name] = data
            self._pad(out, header_start, page)

        hdr = hdr.with_component_sizes(dict(
            (name, len(data)) for name, data in chunks.items()))
        if 'recovery_dtbo_offset' in hdr._fields:
            hdr = hdr._replace(recovery_dtbo_offset=recovery_dtbo_offset)

        if ImageFlags.SEANDROID in t.flags:
            out.write(SEANDROID_MAGIC)
            if ImageFlags.DHTB in t.flags:
                out.write(DHTB_SEANDROID_TRAILER)
        elif ImageFlags.LG_BUMP in t.flags:
            out.write(LG_BUMP_MAGIC)

        hdr = apply_header_props(hdr, self.header_props)

        if hdr.has_id:
            hdr = hdr._replace(id=compute_id(chunks, t.uses_sha256))

        end = out.tell()
        out.seek(header_start)
        out.write(hdr.pack())
        out.seek(end)

        if ImageFlags.DHTB in t.flags:
            out.seek(WRAPPER_SIZE)
            payload = out.read()
            out.seek(0)
            out.write(dhtb_header(payload))
            out.seek(end)
        return end


def repack(template, components=None, vendor_ramdisks=None, header_props=None,
           skip_compress=False):
    out = io.BytesIO()
    Repacker(template, components, vendor_ramdisks, header_props, skip_compress).write(out)
    return out.getvalue()


def repack_file(template, path, components=None, vendor_ramdisks=None,
                header_props=None, skip_compress=False):
    with open(path, 'w+b') as out:
        return Repacker(
            template, components, vendor_ramdisks, header_props, skip_compress).write(out)
