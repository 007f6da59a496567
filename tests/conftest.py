import struct

import pytest


def _pack_row(values, bpp):
    if bpp in (1, 4, 8):
        out = bytearray()
        acc = 0
        used = 0
        for v in values:
            acc = (acc << bpp) | v
            used += bpp
            if used == 8:
                out.append(acc)
                acc = used = 0
        if used:
            out.append(acc << (8 - used))
        return bytes(out)
    if bpp == 16:
        return b"".join(struct.pack("<H", v) for v in values)
    if bpp == 24:
        return b"".join(bytes((b, g, r)) for r, g, b in values)
    if bpp == 32:
        return b"".join(bytes((b, g, r, 0x7F)) for r, g, b in values)
    raise ValueError(bpp)


def build_bmp(rows, bpp, palette=(), top_down=False, header_size=40,
              compression=0, colors_used=None):
    """
    Build a BMP from top-to-bottom rows: palette indices for 1/4/8 bpp,
    raw 16-bit words for 16 bpp, (r, g, b) tuples for 24/32 bpp.
    """
    width = len(rows[0])
    height = len(rows)
    stride = ((width * bpp + 31) // 32) * 4

    stored = rows if top_down else list(reversed(rows))
    pixels = b"".join(_pack_row(r, bpp).ljust(stride, b"\0") for r in stored)

    if header_size == 12:
        info = struct.pack("<IHHHH", 12, width, height, 1, bpp)
        table = b"".join(bytes((b, g, r)) for r, g, b in palette)
    else:
        if colors_used is None:
            colors_used = len(palette)
        info = struct.pack("<IiiHHIIiiII", header_size, width,
                           -height if top_down else height, 1, bpp, compression,
                           len(pixels), 2835, 2835, colors_used, 0)
        info = info.ljust(header_size, b"\0")
        table = b"".join(bytes((b, g, r, 0)) for r, g, b in palette)

    offset = 14 + len(info) + len(table)
    head = struct.pack("<2sIHHI", b"BM", offset + len(pixels), 0, 0, offset)
    return head + info + table + pixels


@pytest.fixture
def make_bmp():
    return build_bmp


@pytest.fixture
def write_bmp(tmp_path):
    def write(name, rows=None, bpp=24, **kw):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_bmp(rows or [[(255, 0, 0)]], bpp, **kw))
        return path
    return write
