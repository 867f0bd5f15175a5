"""Wind (u, v) vector field encoder.

Each pixel packs the two components and the speed into one RGBA8 value:

- r = round(255 * (u + M) / (2M))
- g = round(255 * (v + M) / (2M))
- b = round(255 * min(1, |(u, v)| / M))
- a = 255

where M is ``max_speed`` (20 by default), which must match the renderer's
decode range. Components outside ``[-M, M]`` are not clamped: the byte
value wraps modulo 256. Pixels whose u component is missing are fully
transparent.
"""

import numpy as np

from wxtex.encoding.geometry import flip_and_center
from wxtex.encoding.texture import RasterTexture, round_half_up

__all__ = ['encode_wind', 'WIND_MAX_SPEED']

WIND_MAX_SPEED = 20.0


def _to_byte(x: np.ndarray) -> np.ndarray:
    # Non-finite channels become 0, out-of-range ones wrap.
    x = np.nan_to_num(x, nan=0.0, posinf=0.0, neginf=0.0)
    return (x.astype(np.int64) & 0xFF).astype(np.uint8)


def encode_wind(u: np.ndarray, v: np.ndarray, num_lats: int, num_lons: int,
                max_speed: float = WIND_MAX_SPEED) -> RasterTexture:
    """Encode u/v wind components as an RGBA texture.

    Parameters
    ----------
    u, v : np.ndarray
        Component values, either flat (``num_lats * num_lons``) or 2D
        (lat, lon) row-major.
    num_lats, num_lons : int
        Grid dimensions.
    max_speed : float
        Half-range of the component encoding and speed saturation point.

    Returns
    -------
    RasterTexture
        ``num_lons x num_lats`` texture with the same flip/rotation as the
        scalar encoder.
    """
    su = flip_and_center(np.asarray(u, dtype=np.float64).reshape(num_lats, num_lons))
    sv = flip_and_center(np.asarray(v, dtype=np.float64).reshape(num_lats, num_lons))

    with np.errstate(invalid="ignore", over="ignore"):
        speed = np.hypot(su, sv)
        r = round_half_up(255 * (su + max_speed) / (2 * max_speed))
        g = round_half_up(255 * (sv + max_speed) / (2 * max_speed))
        b = round_half_up(255 * np.minimum(1.0, speed / max_speed))

    rgba = np.zeros((num_lats, num_lons, 4), dtype=np.uint8)
    rgba[..., 0] = _to_byte(r)
    rgba[..., 1] = _to_byte(g)
    rgba[..., 2] = _to_byte(b)
    rgba[..., 3] = 255
    rgba[np.isnan(su)] = 0

    return RasterTexture.from_rgba(rgba)
