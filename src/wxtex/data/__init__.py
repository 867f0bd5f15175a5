"""Dataset access modules.

- time_index: Bracketing timestep resolution
- field_store: Chunked store adapter
- layers: Renderable layer variants
"""

from wxtex.data.time_index import TimeIndex, FrameSpec, EmptyTimeIndexError, NOT_FOUND
from wxtex.data.field_store import (
    FieldStore,
    XarrayFieldStore,
    GridSlice,
    VariableDescriptor,
    FieldStoreError,
    IndexOutOfRangeError,
    UnknownVariableError,
)
from wxtex.data.layers import Layer, SCALAR_LAYERS, store_variables

__all__ = [
    "TimeIndex",
    "FrameSpec",
    "EmptyTimeIndexError",
    "NOT_FOUND",
    "FieldStore",
    "XarrayFieldStore",
    "GridSlice",
    "VariableDescriptor",
    "FieldStoreError",
    "IndexOutOfRangeError",
    "UnknownVariableError",
    "Layer",
    "SCALAR_LAYERS",
    "store_variables",
]
