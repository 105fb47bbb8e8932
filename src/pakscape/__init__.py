"""
PakScape - Quake PAK archive codec

Parse, edit and rewrite PACK archives, export them as zip, and decode the
.lmp/.tga/.mdl images they contain for preview.
"""

from .config import CodecSettings, LmpLayout, DEFAULT_SETTINGS
from .formats.pak import (
    PakArchive, PakEntry, PakNode, PakTree,
    PakError, InvalidHeader, BadDirectory,
    load_pak, write_pak, save_archive, export_zip,
)
from .formats.raster import (
    DecodedRaster, decode_palettized, decode_truecolor, decode_skin, decode_preview,
)

__version__ = "1.0.0"

__all__ = [
    'CodecSettings', 'LmpLayout', 'DEFAULT_SETTINGS',
    'PakArchive', 'PakEntry', 'PakNode', 'PakTree',
    'PakError', 'InvalidHeader', 'BadDirectory',
    'load_pak', 'write_pak', 'save_archive', 'export_zip',
    'DecodedRaster', 'decode_palettized', 'decode_truecolor', 'decode_skin', 'decode_preview',
]
