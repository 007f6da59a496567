"""
bmp_reader.py

Decoder for uncompressed Windows Bitmap files.

Provides:
    read_header(data)  -> BitmapHeader
    read_palette(data, header) -> list of (r, g, b)
    decode(data)       -> DecodedImage
    load(path)         -> DecodedImage
    describe(header)   -> list of "key: value" lines

Supported:
    - BITMAPINFOHEADER (40 bytes) and the V2..V5 extensions
    - OS/2 BITMAPCOREHEADER (12 bytes, 3-byte palette entries)
    - 1, 4, 8 bpp (palette), 16 bpp (X1R5G5B5), 24 bpp, 32 bpp (alpha ignored)
    - bottom-up (height > 0) and top-down (height < 0) row order

Every failure is a ParseError subclass; nothing reads past the buffer.
"""

import struct
from collections import namedtuple
from pathlib import Path

FILE_HEADER_LEN = 14
CORE_HEADER_LEN = 12
INFO_HEADER_LEN = 40
SUPPORTED_BPP = (1, 4, 8, 16, 24, 32)
BI_RGB = 0


# ---------------- errors ----------------
class ParseError(ValueError):
    """Base class for every BMP decoding failure."""


class InvalidSignature(ParseError):
    pass


class UnsupportedCompression(ParseError):
    pass


class UnsupportedBitDepth(ParseError):
    pass


class TruncatedData(ParseError):
    pass


class InvalidHeader(ParseError):
    pass


class InvalidPaletteIndex(ParseError):
    pass


# ---------------- data model ----------------
class BitmapHeader(namedtuple("BitmapHeader", [
        "file_size", "data_offset", "header_size", "width", "height",
        "bpp", "compression", "colors_used"])):
    __slots__ = ()

    @property
    def top_down(self):
        return self.height < 0

    @property
    def abs_height(self):
        return abs(self.height)

    @property
    def row_size(self):
        # rows are padded to a 4-byte boundary
        return ((self.width * self.bpp + 31) // 32) * 4

    @property
    def palette_size(self):
        if self.bpp > 8:
            return 0
        return self.colors_used or (1 << self.bpp)

    @property
    def palette_entry_size(self):
        return 3 if self.header_size == CORE_HEADER_LEN else 4


class DecodedImage(namedtuple("DecodedImage", ["width", "height", "pixels"])):
    """Top-to-bottom, left-to-right (r, g, b) triples."""
    __slots__ = ()

    def row(self, y):
        start = y * self.width
        return self.pixels[start:start + self.width]

    def pixel(self, x, y):
        return self.pixels[y * self.width + x]


# ---------------- header ----------------
def _need(data, end, what):
    if end > len(data):
        raise TruncatedData(f"{what} needs {end} bytes, file has {len(data)}")


def read_header(data: bytes) -> BitmapHeader:
    if data[0:2] != b"BM":
        raise InvalidSignature(f"Not a BMP file (signature {bytes(data[0:2])!r})")
    _need(data, FILE_HEADER_LEN + 4, "File header")

    file_size, data_offset = struct.unpack_from("<I4xI", data, 2)
    header_size = struct.unpack_from("<I", data, 14)[0]

    if header_size == CORE_HEADER_LEN:
        _need(data, FILE_HEADER_LEN + header_size, "Core header")
        width, height, _planes, bpp = struct.unpack_from("<HHHH", data, 18)
        compression = BI_RGB
        # no color count field; the table fills the gap up to the pixel data
        colors_used = max(0, data_offset - FILE_HEADER_LEN - header_size) // 3
    elif header_size >= INFO_HEADER_LEN:
        _need(data, FILE_HEADER_LEN + header_size, "Info header")
        width, height, _planes, bpp, compression = struct.unpack_from("<iiHHI", data, 18)
        colors_used = struct.unpack_from("<I", data, 46)[0]
    else:
        raise InvalidHeader(f"Unknown info header size: {header_size}")

    if data_offset < FILE_HEADER_LEN + header_size:
        raise InvalidHeader(f"Pixel data offset {data_offset} lies inside the header")
    if width <= 0:
        raise InvalidHeader(f"Invalid width: {width}")
    if height == 0:
        raise InvalidHeader("Invalid height: 0")
    if compression != BI_RGB:
        raise UnsupportedCompression(f"Compressed BMP not supported (method {compression})")
    if bpp not in SUPPORTED_BPP:
        raise UnsupportedBitDepth(f"Unsupported bpp: {bpp}")

    if bpp <= 8:
        colors_used = min(colors_used, 1 << bpp)

    return BitmapHeader(file_size, data_offset, header_size, width, height,
                        bpp, compression, colors_used)


def read_palette(data, header):
    count = header.palette_size
    if not count:
        return []
    entry = header.palette_entry_size
    start = FILE_HEADER_LEN + header.header_size
    end = start + count * entry
    _need(data, end, "Color table")
    if end > header.data_offset:
        raise TruncatedData(
            f"Color table ({count} entries) overlaps pixel data at {header.data_offset}")

    palette = []
    for i in range(start, end, entry):
        b, g, r = data[i:i + 3]
        palette.append((r, g, b))
    return palette


# ---------------- row decoders ----------------
def _indexed_row(bits):
    per_byte = 8 // bits
    mask = (1 << bits) - 1

    def decode_row(row, width, palette):
        out = []
        for col in range(width):
            byte = row[col // per_byte]
            # leftmost pixel sits in the most significant bits
            shift = 8 - bits * (col % per_byte + 1)
            index = (byte >> shift) & mask
            if index >= len(palette):
                raise InvalidPaletteIndex(
                    f"Palette index {index} out of range ({len(palette)} entries)")
            out.append(palette[index])
        return out

    return decode_row


def _expand5(v):
    return (v << 3) | (v >> 2)


def _row16(row, width, palette):
    out = []
    for (value,) in struct.iter_unpack("<H", row[:width * 2]):
        out.append((_expand5((value >> 10) & 0x1F),
                    _expand5((value >> 5) & 0x1F),
                    _expand5(value & 0x1F)))
    return out


def _row24(row, width, palette):
    out = []
    for i in range(0, width * 3, 3):
        b, g, r = row[i:i + 3]
        out.append((r, g, b))
    return out


def _row32(row, width, palette):
    out = []
    for i in range(0, width * 4, 4):
        b, g, r = row[i:i + 3]
        out.append((r, g, b))
    return out


ROW_DECODERS = {
    1: _indexed_row(1),
    4: _indexed_row(4),
    8: _indexed_row(8),
    16: _row16,
    24: _row24,
    32: _row32,
}


# ---------------- decode ----------------
def decode(data: bytes) -> DecodedImage:
    header = read_header(data)
    palette = read_palette(data, header)

    width = header.width
    height = header.abs_height
    row_size = header.row_size
    start = header.data_offset
    _need(data, start + row_size * height, f"{width}x{height} {header.bpp}bpp pixel data")

    decode_row = ROW_DECODERS[header.bpp]
    view = memoryview(data)
    rows = []
    for y in range(height):
        offset = start + y * row_size
        rows.append(decode_row(view[offset:offset + row_size], width, palette))

    if not header.top_down:
        rows.reverse()

    pixels = tuple(p for row in rows for p in row)
    return DecodedImage(width, height, pixels)


def load(path) -> DecodedImage:
    return decode(Path(path).expanduser().read_bytes())


def describe(header):
    kind = {
        CORE_HEADER_LEN: "BITMAPCOREHEADER",
        INFO_HEADER_LEN: "BITMAPINFOHEADER",
        52: "BITMAPV2INFOHEADER",
        56: "BITMAPV3INFOHEADER",
        64: "OS22XBITMAPHEADER",
        108: "BITMAPV4HEADER",
        124: "BITMAPV5HEADER",
    }
    return [
        f"file_size: {header.file_size}",
        f"data_offset: {header.data_offset}",
        f"header: {kind.get(header.header_size, 'BITMAPV' + str(header.header_size))} "
        f"({header.header_size} bytes)",
        f"width: {header.width}",
        f"height: {header.abs_height} ({'top-down' if header.top_down else 'bottom-up'})",
        f"bpp: {header.bpp}",
        f"compression: {header.compression}",
        f"palette: {header.palette_size}",
        f"row_size: {header.row_size}",
    ]
