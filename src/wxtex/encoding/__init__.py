"""Field-to-texture encoders.

- scalar: Normalized single-channel encoding
- vector: Wind u/v/speed encoding
- geometry: Vertical flip and antimeridian rotation
"""

from wxtex.encoding.texture import RasterTexture
from wxtex.encoding.scalar import encode_scalar
from wxtex.encoding.vector import encode_wind, WIND_MAX_SPEED
from wxtex.encoding.geometry import flip_and_center

__all__ = [
    "RasterTexture",
    "encode_scalar",
    "encode_wind",
    "WIND_MAX_SPEED",
    "flip_and_center",
]
