"""Scalar field encoder.

Normalizes one slice to [0, 1] over its finite values and stores the
result in the red channel (0..255) with full alpha. Palette lookup happens
in the renderer, not here.
"""

import logging

import numpy as np

from wxtex.data.field_store import GridSlice
from wxtex.encoding.geometry import flip_and_center
from wxtex.encoding.texture import RasterTexture, round_half_up

__all__ = ['encode_scalar', 'normalization_range', 'DEGENERATE_EPSILON']

logger = logging.getLogger(__name__)

DEGENERATE_EPSILON = 0.001


def normalization_range(values: np.ndarray, epsilon: float = DEGENERATE_EPSILON) -> tuple[float, float]:
    """Min and max over the finite values, widened so that max > min.

    An all-missing slice yields ``(0, epsilon)``; a constant slice yields
    ``(v, v + epsilon)``.
    """
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return 0.0, epsilon
    lo = float(finite.min())
    hi = float(finite.max())
    if hi == lo:
        hi = lo + epsilon
    return lo, hi


def encode_scalar(grid: GridSlice | np.ndarray, epsilon: float = DEGENERATE_EPSILON) -> RasterTexture:
    """Encode one (lat, lon) slice as an RGBA texture.

    Parameters
    ----------
    grid : GridSlice or np.ndarray
        Slice to encode. Missing values are NaN.
    epsilon : float
        Range widening for degenerate (constant or all-missing) slices.

    Returns
    -------
    RasterTexture
        ``lon_dim x lat_dim`` texture. Missing cells are fully transparent
        (all bytes zero); finite cells are ``(round(255 * t), 0, 0, 255)``.
    """
    values = grid.values if isinstance(grid, GridSlice) else np.asarray(grid, dtype=np.float64)
    lo, hi = normalization_range(values, epsilon)

    src = flip_and_center(values)
    valid = np.isfinite(src)

    rgba = np.zeros(src.shape + (4,), dtype=np.uint8)
    t = (src[valid] - lo) / (hi - lo)
    rgba[..., 0][valid] = np.clip(round_half_up(t * 255), 0, 255).astype(np.uint8)
    rgba[..., 3][valid] = 255

    logger.debug("Encoded scalar %s range=[%g, %g] missing=%d",
                 src.shape, lo, hi, int(src.size - valid.sum()))
    return RasterTexture.from_rgba(rgba)
