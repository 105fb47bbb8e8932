"""Raster decoders for images stored inside PAK archives."""
from .decoded import DecodedRaster
from .palette import PALETTE_RGBA, QUAKE_PALETTE_RGB, map_indices
from .lmp import decode_palettized
from .tga import decode_truecolor, TgaHeader, TgaImageType
from .mdl import decode_skin
from .preview import decode_preview, decoder_for, is_previewable

__all__ = [
    'DecodedRaster',
    'PALETTE_RGBA', 'QUAKE_PALETTE_RGB', 'map_indices',
    'decode_palettized',
    'decode_truecolor', 'TgaHeader', 'TgaImageType',
    'decode_skin',
    'decode_preview', 'decoder_for', 'is_previewable',
]
