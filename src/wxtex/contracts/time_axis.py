"""Time axis contract.

The dataset's time axis must be strictly increasing before it can be
searched for bracketing timesteps.
"""

import numpy as np
from wxtex.contracts.base import require


def assert_time_axis(times: np.ndarray) -> None:
    """Enforce time axis contract.

    Parameters
    ----------
    times : np.ndarray
        1D array of datetime64 instants, in dataset order.

    Raises
    ------
    ContractViolation
        If the axis is not 1D or not strictly increasing.
    """
    require(
        times.ndim == 1,
        f"Time axis contract violated: {times.ndim} dims, expected 1"
    )
    if times.size > 1:
        require(
            bool(np.all(times[1:] > times[:-1])),
            "Time axis contract violated: timestamps must be strictly increasing"
        )
