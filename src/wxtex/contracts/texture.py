"""Texture stage contract.

Encoders must produce exactly width * height * 4 RGBA8 bytes.
"""

import numpy as np
from wxtex.contracts.base import require


def assert_texture(pixels: np.ndarray, width: int, height: int) -> None:
    """Enforce texture contract.

    Raises
    ------
    ContractViolation
        If the buffer is not uint8 or its length is not width * height * 4.
    """
    require(
        pixels.dtype == np.uint8,
        f"Texture contract violated: dtype is {pixels.dtype}, expected uint8"
    )
    require(
        width > 0 and height > 0,
        f"Texture contract violated: non-positive size {width}x{height}"
    )
    require(
        pixels.size == width * height * 4,
        f"Texture contract violated: {pixels.size} bytes for {width}x{height} RGBA"
    )
