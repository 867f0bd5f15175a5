"""Pipeline contracts - fail-fast enforcement of stage invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Resolver handles data availability (missing layers are dropped)
"""

from wxtex.contracts.failure import ContractViolation
from wxtex.contracts.base import require
from wxtex.contracts.time_axis import assert_time_axis
from wxtex.contracts.field import assert_grid_slice
from wxtex.contracts.texture import assert_texture

__all__ = [
    "ContractViolation",
    "require",
    "assert_time_axis",
    "assert_grid_slice",
    "assert_texture",
]
