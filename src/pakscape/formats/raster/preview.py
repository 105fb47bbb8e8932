"""
Preview dispatch - choose a raster decoder from an archive file name.
"""

import logging
from typing import Callable, Dict, Optional

from ...config import CodecSettings, DEFAULT_SETTINGS
from .decoded import DecodedRaster
from .lmp import decode_palettized
from .mdl import decode_skin
from .tga import decode_truecolor

logger = logging.getLogger(__name__)

Decoder = Callable[[Optional[str], bytes, Optional[CodecSettings]], Optional[DecodedRaster]]

DECODERS_BY_EXTENSION: Dict[str, Decoder] = {
    ".lmp": decode_palettized,
    ".tga": decode_truecolor,
    ".mdl": decode_skin,
}


def decoder_for(name: str, settings: Optional[CodecSettings] = None) -> Optional[Decoder]:
    """Return the decoder for a file name, or None if it is not previewable."""
    settings = settings or DEFAULT_SETTINGS
    if settings.layout_for(name) is not None:
        return decode_palettized
    base = name.rsplit("/", 1)[-1].lower()
    dot = base.rfind(".")
    if dot == -1:
        return None
    return DECODERS_BY_EXTENSION.get(base[dot:])


def is_previewable(name: str, settings: Optional[CodecSettings] = None) -> bool:
    return decoder_for(name, settings) is not None


def decode_preview(name: str, data: bytes,
                   settings: Optional[CodecSettings] = None) -> Optional[DecodedRaster]:
    """Decode data for preview using the decoder matching name."""
    decoder = decoder_for(name, settings)
    if decoder is None:
        return None
    raster = decoder(name, data, settings)
    if raster is None:
        logger.debug(f"Preview: {name} could not be decoded")
    return raster
