"""
MDL Skin Decoder - first skin of a Quake alias model

Header (84 bytes, little-endian). Only these fields matter here:
    48  num_skins   (int32)
    52  skin_width  (int32)
    56  skin_height (int32)

Skins follow the header:
    int32 group
      0 -> skin_width * skin_height palette indices
      1 -> int32 num_frames, num_frames float32 intervals, then frames

Only the first skin (first frame of a group) is decoded. Skins are opaque.
"""

import logging
from typing import Optional

from ...config import CodecSettings, DEFAULT_SETTINGS
from ...utils.binary import BufferUnderrun, IoBuffer, checked_mul
from .decoded import DecodedRaster
from .palette import map_indices

logger = logging.getLogger(__name__)

MDL_HEADER_SIZE = 84
NUM_SKINS_OFFSET = 48

SKIN_SINGLE = 0
SKIN_GROUP = 1


def decode_skin(name_hint: Optional[str], data: bytes,
                settings: Optional[CodecSettings] = None) -> Optional[DecodedRaster]:
    """Decode the first skin of an MDL to RGBA, or None if malformed."""
    settings = settings or DEFAULT_SETTINGS
    data = bytes(data)
    limit = settings.max_buffer_size

    try:
        io = IoBuffer.from_bytes(data)
        if io.size < MDL_HEADER_SIZE:
            logger.debug(f"MDL: {name_hint!r} shorter than header ({io.size} bytes)")
            return None

        io.seek(NUM_SKINS_OFFSET)
        num_skins = io.read_int32()
        width = io.read_int32()
        height = io.read_int32()
        if num_skins <= 0 or width <= 0 or height <= 0:
            logger.debug(f"MDL: no usable skin (skins={num_skins}, {width}x{height})")
            return None

        pixel_count = checked_mul(width, height, limit=limit)
        if pixel_count is None or checked_mul(pixel_count, 4, limit=limit) is None:
            logger.debug(f"MDL: skin {width}x{height} overflows buffer limit")
            return None

        io.seek(MDL_HEADER_SIZE)
        group = io.read_int32()
        if group == SKIN_GROUP:
            num_frames = io.read_int32()
            if num_frames <= 0:
                return None
            interval_bytes = checked_mul(num_frames, 4, limit=limit)
            if interval_bytes is None:
                return None
            io.skip(interval_bytes)
        elif group != SKIN_SINGLE:
            logger.debug(f"MDL: unknown skin group type {group}")
            return None

        indices = io.read_bytes(pixel_count)
    except BufferUnderrun as e:
        logger.debug(f"MDL: truncated skin data in {name_hint!r} ({e})")
        return None

    return DecodedRaster(width, height, map_indices(indices))
