"""
Codec Settings - tunables for the PAK codec and raster decoders

Settings are plain dataclasses so they can be persisted to JSON and passed
explicitly to the operations that need them. Nothing here is global state;
DEFAULT_SETTINGS is only read.
"""

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, Optional, Any

from .utils.binary import INT32_MAX


@dataclass(frozen=True)
class LmpLayout:
    """Fixed layout for a header-less palettized picture."""
    width: int
    height: int
    transparent_index: Optional[int] = None


def _default_lmp_layouts() -> Dict[str, LmpLayout]:
    # Base names are matched case-insensitively.
    return {
        "colormap.lmp": LmpLayout(256, 64),
        "pop.lmp": LmpLayout(16, 16),
        "conchars": LmpLayout(128, 128, transparent_index=0),
    }


@dataclass
class CodecSettings:
    """All knobs consulted by the decoders and the archive writer."""
    lmp_layouts: Dict[str, LmpLayout] = field(default_factory=_default_lmp_layouts)
    default_transparent_index: Optional[int] = 255
    max_buffer_size: int = INT32_MAX
    name_sentinel: str = "?"

    def layout_for(self, name_hint: Optional[str]) -> Optional[LmpLayout]:
        """Look up a header-less layout by the base name of name_hint."""
        if not name_hint:
            return None
        base = name_hint.replace("\\", "/").rsplit("/", 1)[-1].lower()
        return self.lmp_layouts.get(base)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CodecSettings":
        settings = cls()
        if "lmp_layouts" in data:
            settings.lmp_layouts = {
                str(name).lower(): LmpLayout(**layout)
                for name, layout in data["lmp_layouts"].items()
            }
        if "default_transparent_index" in data:
            settings.default_transparent_index = data["default_transparent_index"]
        if "max_buffer_size" in data:
            settings.max_buffer_size = int(data["max_buffer_size"])
        if "name_sentinel" in data:
            sentinel = str(data["name_sentinel"])
            if len(sentinel) != 1 or not 0x20 <= ord(sentinel) <= 0x7E:
                raise ValueError(f"name_sentinel must be one printable ASCII character, got {sentinel!r}")
            settings.name_sentinel = sentinel
        return settings

    @classmethod
    def load(cls, path: str) -> "CodecSettings":
        """Load settings from a JSON file."""
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))

    def save(self, path: str):
        """Write settings to a JSON file."""
        output = Path(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(self.to_dict(), indent=2), encoding='utf-8')


DEFAULT_SETTINGS = CodecSettings()
