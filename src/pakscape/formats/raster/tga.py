"""
TGA Decoder - Truevision Targa images (the subset used by Quake mods)

Header (18 bytes, little-endian):
    0   id_length        (1)
    1   colormap_type    (1)   only 0 (no color map) is supported
    2   image_type       (1)   2 raw truecolor, 3 raw grayscale,
                               10 RLE truecolor, 11 RLE grayscale
    3   colormap fields  (5)   ignored
    8   x/y origin       (4)   ignored
    12  width            (2)
    14  height           (2)
    16  pixel_depth      (1)
    17  descriptor       (1)   bits 0-3 alpha bits, bit 4 right-to-left,
                               bit 5 top-to-bottom

Pixel data starts after the id field. RLE packets:
    header & 0x80 -> one pixel repeated (header & 0x7F) + 1 times
    otherwise     -> (header & 0x7F) + 1 literal pixels
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

import numpy as np

from ...config import CodecSettings, DEFAULT_SETTINGS
from ...utils.binary import BufferUnderrun, IoBuffer, checked_mul
from .decoded import DecodedRaster

logger = logging.getLogger(__name__)

TGA_HEADER_SIZE = 18


class TgaImageType(IntEnum):
    """Image types this decoder understands."""
    TRUECOLOR = 2
    GRAYSCALE = 3
    RLE_TRUECOLOR = 10
    RLE_GRAYSCALE = 11


SUPPORTED_DEPTHS = {
    TgaImageType.TRUECOLOR: (16, 24, 32),
    TgaImageType.RLE_TRUECOLOR: (16, 24, 32),
    TgaImageType.GRAYSCALE: (8, 16),
    TgaImageType.RLE_GRAYSCALE: (8, 16),
}


@dataclass
class TgaHeader:
    id_length: int
    colormap_type: int
    image_type: int
    width: int
    height: int
    pixel_depth: int
    descriptor: int

    @property
    def is_rle(self) -> bool:
        return self.image_type in (TgaImageType.RLE_TRUECOLOR, TgaImageType.RLE_GRAYSCALE)

    @property
    def is_grayscale(self) -> bool:
        return self.image_type in (TgaImageType.GRAYSCALE, TgaImageType.RLE_GRAYSCALE)

    @property
    def bytes_per_pixel(self) -> int:
        return self.pixel_depth // 8

    @property
    def alpha_bits(self) -> int:
        return self.descriptor & 0x0F

    @property
    def right_to_left(self) -> bool:
        return bool(self.descriptor & 0x10)

    @property
    def top_to_bottom(self) -> bool:
        return bool(self.descriptor & 0x20)

    @property
    def data_offset(self) -> int:
        return TGA_HEADER_SIZE + self.id_length


def read_header(data: bytes) -> TgaHeader:
    """Parse the fixed 18-byte header. Raises BufferUnderrun if short."""
    io = IoBuffer.from_bytes(data)
    id_length = io.read_uint8()
    colormap_type = io.read_uint8()
    image_type = io.read_uint8()
    io.skip(5)   # colormap fields
    io.skip(4)   # x/y origin
    width = io.read_uint16()
    height = io.read_uint16()
    pixel_depth = io.read_uint8()
    descriptor = io.read_uint8()
    return TgaHeader(id_length, colormap_type, image_type,
                     width, height, pixel_depth, descriptor)


def _decode_rle(data: bytes, pos: int, pixel_count: int, bpp: int) -> Optional[bytes]:
    """Expand RLE packets into raw pixel bytes, or None if the stream is short."""
    out = bytearray()
    count = 0
    while count < pixel_count:
        if pos >= len(data):
            logger.debug(f"TGA: RLE stream ended after {count}/{pixel_count} pixels")
            return None
        packet = data[pos]
        pos += 1
        run = (packet & 0x7F) + 1
        if count + run > pixel_count:
            logger.debug(f"TGA: RLE packet of {run} overruns {pixel_count} pixels")
            return None

        if packet & 0x80:
            pixel = data[pos:pos + bpp]
            if len(pixel) < bpp:
                return None
            pos += bpp
            out += pixel * run
        else:
            literal = data[pos:pos + run * bpp]
            if len(literal) < run * bpp:
                return None
            pos += run * bpp
            out += literal
        count += run

    if count != pixel_count:
        return None
    return bytes(out)


def _to_rgba(raw: np.ndarray, header: TgaHeader) -> np.ndarray:
    """Convert an (n, bytes_per_pixel) array of source pixels to (n, 4) RGBA."""
    n = raw.shape[0]
    rgba = np.empty((n, 4), dtype=np.uint8)

    if header.is_grayscale:
        rgba[:, 0] = raw[:, 0]
        rgba[:, 1] = raw[:, 0]
        rgba[:, 2] = raw[:, 0]
        rgba[:, 3] = raw[:, 1] if header.pixel_depth == 16 else 255
    elif header.pixel_depth == 16:
        value = raw[:, 0].astype(np.uint16) | (raw[:, 1].astype(np.uint16) << 8)
        for channel, shift in ((0, 10), (1, 5), (2, 0)):
            five = (value >> shift) & 0x1F
            rgba[:, channel] = ((five << 3) | (five >> 2)).astype(np.uint8)
        if header.alpha_bits:
            rgba[:, 3] = np.where(value & 0x8000, 255, 0).astype(np.uint8)
        else:
            rgba[:, 3] = 255
    else:
        rgba[:, 0] = raw[:, 2]
        rgba[:, 1] = raw[:, 1]
        rgba[:, 2] = raw[:, 0]
        rgba[:, 3] = raw[:, 3] if header.pixel_depth == 32 else 255
    return rgba


def decode_truecolor(name_hint: Optional[str], data: bytes,
                     settings: Optional[CodecSettings] = None) -> Optional[DecodedRaster]:
    """
    Decode an uncompressed or RLE TGA to top-left-origin RGBA.

    Returns None for truncated data or unsupported variants.
    """
    settings = settings or DEFAULT_SETTINGS
    data = bytes(data)

    try:
        header = read_header(data)
    except BufferUnderrun as e:
        logger.debug(f"TGA: truncated header in {name_hint!r} ({e})")
        return None

    if header.colormap_type != 0:
        logger.debug(f"TGA: color-mapped images are not supported ({name_hint!r})")
        return None
    if header.image_type not in SUPPORTED_DEPTHS:
        logger.debug(f"TGA: image type {header.image_type} not supported")
        return None
    if header.pixel_depth not in SUPPORTED_DEPTHS[TgaImageType(header.image_type)]:
        logger.debug(f"TGA: depth {header.pixel_depth} not supported for type {header.image_type}")
        return None
    if header.width <= 0 or header.height <= 0:
        return None

    limit = settings.max_buffer_size
    bpp = header.bytes_per_pixel
    pixel_count = checked_mul(header.width, header.height, limit=limit)
    if pixel_count is None:
        return None
    raw_size = checked_mul(pixel_count, bpp, limit=limit)
    if raw_size is None or checked_mul(pixel_count, 4, limit=limit) is None:
        return None

    start = header.data_offset
    if header.is_rle:
        raw_bytes = _decode_rle(data, start, pixel_count, bpp)
        if raw_bytes is None:
            return None
    else:
        if start + raw_size > len(data):
            logger.debug(f"TGA: need {raw_size} pixel bytes at {start}, have {len(data) - start}")
            return None
        raw_bytes = data[start:start + raw_size]

    raw = np.frombuffer(raw_bytes, dtype=np.uint8).reshape(pixel_count, bpp)
    image = _to_rgba(raw, header).reshape(header.height, header.width, 4)

    if not header.top_to_bottom:
        image = image[::-1]
    if header.right_to_left:
        image = image[:, ::-1]

    return DecodedRaster(header.width, header.height, image.tobytes())
