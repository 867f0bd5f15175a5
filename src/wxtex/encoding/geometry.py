"""Fixed grid-to-image transform shared by all encoders.

Source slices are (lat, lon) row-major with latitude increasing. Output
images are flipped vertically (row ``r`` reads source row ``lat_dim - 1 - r``)
and rotated horizontally by half a turn of the globe (column ``c`` reads
source column ``(c + lon_dim // 2) % lon_dim``). The transform is a fixed
convention that the renderer's bounds rely on.
"""

import numpy as np

__all__ = ['flip_and_center', 'source_index']


def flip_and_center(values: np.ndarray) -> np.ndarray:
    """Flip rows vertically and rotate columns by half the longitude dimension.

    Parameters
    ----------
    values : np.ndarray
        Array whose first two axes are (lat, lon).

    Returns
    -------
    np.ndarray
        New array of the same shape, in output pixel order.
    """
    half = values.shape[1] // 2
    return np.roll(values[::-1], -half, axis=1)


def source_index(row: int, col: int, lat_dim: int, lon_dim: int) -> tuple[int, int]:
    """Source (lat, lon) cell read by output pixel (row, col)."""
    return lat_dim - 1 - row, (col + lon_dim // 2) % lon_dim
