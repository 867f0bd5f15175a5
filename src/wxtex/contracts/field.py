"""Slice stage contract.

A decoded slice must match the 2D (lat, lon) shape of its variable.
"""

import numpy as np
from wxtex.contracts.base import require


def assert_grid_slice(values: np.ndarray, expected_shape: tuple[int, int], name: str) -> None:
    """Enforce slice contract.

    Parameters
    ----------
    values : np.ndarray
        Decoded slice values.
    expected_shape : tuple of int
        (lat, lon) shape from the variable descriptor.
    name : str
        Variable name (for the error message).

    Raises
    ------
    ContractViolation
        If the slice is not 2D floating point of the expected shape.
    """
    require(
        values.ndim == 2,
        f"Slice contract violated: '{name}' has {values.ndim} dims, expected 2"
    )
    require(
        tuple(values.shape) == tuple(expected_shape),
        f"Slice contract violated: '{name}' shape {values.shape} != {tuple(expected_shape)}"
    )
    require(
        np.issubdtype(values.dtype, np.floating),
        f"Slice contract violated: '{name}' dtype is {values.dtype}, expected floating"
    )
