"""
Decoded Raster - the uniform output of every raster decoder

Pixels are always RGBA, 4 bytes per pixel, rows top to bottom.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class DecodedRaster:
    """Decoded image with RGBA pixels (width * height * 4)."""
    width: int
    height: int
    pixels: bytes

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"raster dimensions must be positive, got {self.width}x{self.height}")
        if len(self.pixels) != self.width * self.height * 4:
            raise ValueError(
                f"expected {self.width * self.height * 4} RGBA bytes, got {len(self.pixels)}")

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """RGBA tuple at (x, y), origin top-left."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height}")
        offset = (y * self.width + x) * 4
        r, g, b, a = self.pixels[offset:offset + 4]
        return (r, g, b, a)

    @property
    def is_opaque(self) -> bool:
        return all(alpha == 255 for alpha in self.pixels[3::4])

    def to_image(self):
        """Convert to a PIL RGBA image."""
        from PIL import Image
        return Image.frombytes('RGBA', (self.width, self.height), self.pixels)
