"""RGBA8 raster texture produced by the encoders."""

from dataclasses import dataclass

import numpy as np

from wxtex.contracts import assert_texture

__all__ = ['RasterTexture', 'round_half_up']


def round_half_up(x: np.ndarray) -> np.ndarray:
    """Round halves toward positive infinity (0.5 -> 1, 2.5 -> 3)."""
    return np.floor(np.asarray(x, dtype=np.float64) + 0.5)


@dataclass(frozen=True, eq=False)
class RasterTexture:
    """Immutable ``width x height`` RGBA8 image, rows top to bottom.

    ``pixels`` is a flat read-only uint8 buffer of ``width * height * 4``
    bytes that a renderer uploads as-is. Textures compare by identity.
    """
    pixels: np.ndarray
    width: int
    height: int

    def __post_init__(self):
        pixels = np.ascontiguousarray(self.pixels, dtype=np.uint8).reshape(-1)
        assert_texture(pixels, self.width, self.height)
        pixels.flags.writeable = False
        object.__setattr__(self, "pixels", pixels)

    @classmethod
    def from_rgba(cls, rgba: np.ndarray) -> "RasterTexture":
        """Wrap a ``(height, width, 4)`` uint8 array without copying."""
        height, width = rgba.shape[:2]
        return cls(pixels=rgba.reshape(-1), width=width, height=height)

    @property
    def rgba(self) -> np.ndarray:
        """Read-only ``(height, width, 4)`` view of the pixels."""
        return self.pixels.reshape(self.height, self.width, 4)

    @property
    def nbytes(self) -> int:
        return self.pixels.nbytes

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    def __repr__(self) -> str:
        return f"RasterTexture({self.width}x{self.height})"
