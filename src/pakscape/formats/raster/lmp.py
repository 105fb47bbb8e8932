"""
LMP Decoder - palettized pictures from the gfx/ directory

Three layouts share the .lmp extension:
  - Well-known header-less lumps (colormap.lmp, pop.lmp, conchars) with a
    fixed size taken from CodecSettings.lmp_layouts.
  - palette.lmp and friends: a bare 768-byte buffer, shown as a 16x16
    truecolor swatch.
  - Everything else: 8-byte header (int32 width, int32 height) followed by
    one palette index per pixel. Index 255 is transparent by default.
"""

import logging
from typing import Optional

import numpy as np

from ...config import CodecSettings, DEFAULT_SETTINGS
from ...utils.binary import BufferUnderrun, IoBuffer, checked_mul
from .decoded import DecodedRaster
from .palette import map_indices

logger = logging.getLogger(__name__)

SWATCH_SIZE = 768
SWATCH_DIM = 16
LMP_HEADER_SIZE = 8


def _decode_indices(data: bytes, offset: int, width: int, height: int,
                    transparent_index: Optional[int],
                    settings: CodecSettings) -> Optional[DecodedRaster]:
    if width <= 0 or height <= 0:
        return None
    pixel_count = checked_mul(width, height, limit=settings.max_buffer_size)
    if pixel_count is None or checked_mul(pixel_count, 4, limit=settings.max_buffer_size) is None:
        logger.debug(f"LMP: {width}x{height} overflows buffer limit")
        return None
    if offset + pixel_count > len(data):
        logger.debug(f"LMP: need {pixel_count} index bytes, have {len(data) - offset}")
        return None
    indices = data[offset:offset + pixel_count]
    return DecodedRaster(width, height, map_indices(indices, transparent_index))


def _decode_swatch(data: bytes) -> DecodedRaster:
    rgb = np.frombuffer(data, dtype=np.uint8, count=SWATCH_SIZE).reshape(-1, 3)
    rgba = np.full((rgb.shape[0], 4), 255, dtype=np.uint8)
    rgba[:, :3] = rgb
    return DecodedRaster(SWATCH_DIM, SWATCH_DIM, rgba.tobytes())


def decode_palettized(name_hint: Optional[str], data: bytes,
                      settings: Optional[CodecSettings] = None) -> Optional[DecodedRaster]:
    """
    Decode a palettized picture to RGBA.

    Args:
        name_hint: File name or path; its base name selects a fixed layout
        data: Raw lump bytes
        settings: Layout table and limits (DEFAULT_SETTINGS if None)

    Returns:
        DecodedRaster, or None if the bytes do not describe a picture
    """
    settings = settings or DEFAULT_SETTINGS
    data = bytes(data)

    layout = settings.layout_for(name_hint)
    if layout is not None:
        return _decode_indices(data, 0, layout.width, layout.height,
                               layout.transparent_index, settings)

    if len(data) == SWATCH_SIZE:
        return _decode_swatch(data)

    try:
        io = IoBuffer.from_bytes(data)
        width = io.read_int32()
        height = io.read_int32()
    except BufferUnderrun as e:
        logger.debug(f"LMP: truncated header ({e})")
        return None

    return _decode_indices(data, LMP_HEADER_SIZE, width, height,
                           settings.default_transparent_index, settings)
