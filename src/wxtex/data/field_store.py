"""Adapter over a chunked, time-indexed array store.

Provides "fetch the decoded 2D slice of variable V at time index I" on top
of any store xarray can open lazily (zarr in production, an in-memory
``xarray.Dataset`` in tests). No caching happens at this layer; encoded
textures are cached one layer up.

Key capabilities:
- Opens a (consolidated) zarr store with xarray
- Describes each data variable (shape, chunks, dtype, attrs)
- Reads whole coordinate arrays (time ticks, lat, lon)
- Fetches single time slices without blocking the event loop

Errors from the underlying store are wrapped in FieldStoreError so the
frame resolver can drop the affected layer. Retries, if any, belong to the
store's transport, not here.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import xarray as xr

from wxtex.contracts import assert_grid_slice, require

__all__ = [
    'FieldStore',
    'XarrayFieldStore',
    'GridSlice',
    'VariableDescriptor',
    'FieldStoreError',
    'IndexOutOfRangeError',
    'UnknownVariableError',
]

logger = logging.getLogger(__name__)


class FieldStoreError(RuntimeError):
    """Raised when the external store cannot deliver requested data."""


class IndexOutOfRangeError(FieldStoreError, IndexError):
    """Raised when a time index falls outside ``[0, shape.time)``."""


class UnknownVariableError(FieldStoreError, KeyError):
    """Raised when the store carries no variable of the requested name."""


@dataclass(frozen=True)
class VariableDescriptor:
    """Static description of one data variable, shaped (time, lat, lon)."""
    name: str
    shape: tuple[int, ...]
    chunks: tuple[int, ...] | None
    dtype: str
    attrs: dict[str, Any] = field(default_factory=dict)

    @property
    def time_dim(self) -> int:
        return self.shape[0]

    @property
    def grid_shape(self) -> tuple[int, int]:
        """(lat, lon) shape of a single time slice."""
        return self.shape[-2], self.shape[-1]


@dataclass(frozen=True)
class GridSlice:
    """Decoded (lat, lon) values of one variable at one time index.

    Missing values are NaN. Consumed by an encoder; never cached.
    """
    variable: str
    time_index: int
    values: np.ndarray

    @property
    def lat_dim(self) -> int:
        return self.values.shape[0]

    @property
    def lon_dim(self) -> int:
        return self.values.shape[1]


class FieldStore(ABC):
    """Read-only access to time-indexed gridded variables.

    Subclasses implement the blocking primitives; ``fetch_slice`` runs them
    off the event loop so concurrent fetches (u and v of the same timestep,
    or different layers) proceed in parallel.
    """

    @abstractmethod
    def variable_names(self) -> list[str]:
        """Names of all data variables in the store."""

    @abstractmethod
    def describe(self, name: str) -> VariableDescriptor:
        """Return the descriptor of ``name``.

        Raises
        ------
        UnknownVariableError
            If the store has no such variable.
        """

    @abstractmethod
    def read_coordinate(self, name: str) -> tuple[np.ndarray, tuple[int, ...]]:
        """Read a whole coordinate array as ``(data, shape)``.

        Datetime coordinates are returned as int64 nanosecond ticks.
        """

    @abstractmethod
    def _read_slice(self, name: str, time_index: int) -> np.ndarray:
        """Blocking read of ``name[time_index:time_index + 1, :, :]``."""

    def close(self) -> None:
        """Release store resources."""

    async def fetch_slice(self, name: str, time_index: int) -> GridSlice:
        """Fetch and decode one time slice of ``name``.

        Parameters
        ----------
        name : str
            Store variable name.
        time_index : int
            Index along the time dimension.

        Returns
        -------
        GridSlice
            Dense (lat, lon) floating-point values.

        Raises
        ------
        IndexOutOfRangeError
            If ``time_index`` is outside ``[0, shape.time)``.
        UnknownVariableError
            If ``name`` is not in the store.
        FieldStoreError
            If the underlying read fails.
        """
        descriptor = self.describe(name)
        if not 0 <= time_index < descriptor.time_dim:
            raise IndexOutOfRangeError(
                f"Time index {time_index} out of range for '{name}' "
                f"(0..{descriptor.time_dim - 1})"
            )

        try:
            raw = await asyncio.to_thread(self._read_slice, name, time_index)
        except FieldStoreError:
            raise
        except Exception as e:
            raise FieldStoreError(f"Failed to read '{name}' at time index {time_index}: {e}") from e

        values = np.asarray(raw)
        if not np.issubdtype(values.dtype, np.floating):
            values = values.astype(np.float64)
        require(
            values.size == descriptor.grid_shape[0] * descriptor.grid_shape[1],
            f"Slice contract violated: '{name}' has {values.size} values, "
            f"expected {descriptor.grid_shape}"
        )
        values = values.reshape(descriptor.grid_shape)
        assert_grid_slice(values, descriptor.grid_shape, name)

        logger.debug("Fetched %s[%d] shape=%s", name, time_index, values.shape)
        return GridSlice(variable=name, time_index=time_index, values=values)


class XarrayFieldStore(FieldStore):
    """FieldStore backed by a lazily loaded ``xarray.Dataset``.

    Parameters
    ----------
    dataset : xr.Dataset
        Dataset whose data variables are shaped (time, lat, lon). Variables
        are read lazily; only requested slices are loaded.

    Examples
    --------
    >>> store = XarrayFieldStore.open("https://host/predictions.zarr")
    >>> ticks, shape = store.read_coordinate("datetime")
    >>> grid = asyncio.run(store.fetch_slice("2m_temperature", 0))
    """

    def __init__(self, dataset: xr.Dataset):
        self.dataset = dataset

    @classmethod
    def open(cls, url: str, consolidated: bool = True) -> "XarrayFieldStore":
        """Open a zarr store at ``url``.

        Raises
        ------
        FieldStoreError
            If the store cannot be opened.
        """
        logger.info("Opening zarr store: %s (consolidated=%s)", url, consolidated)
        try:
            dataset = xr.open_zarr(url, consolidated=consolidated)
        except Exception as e:
            raise FieldStoreError(f"Failed to open store {url}: {e}") from e
        return cls(dataset)

    def _variable(self, name: str) -> xr.DataArray:
        if name not in self.dataset.variables:
            raise UnknownVariableError(f"Store has no variable '{name}'")
        return self.dataset[name]

    def variable_names(self) -> list[str]:
        return [str(name) for name in self.dataset.data_vars]

    def describe(self, name: str) -> VariableDescriptor:
        var = self._variable(name)
        chunks = var.encoding.get("chunks") or var.encoding.get("preferred_chunks")
        if isinstance(chunks, dict):
            chunks = tuple(chunks[d] for d in var.dims if d in chunks)
        if chunks is None and var.chunks is not None:
            chunks = tuple(c[0] for c in var.chunks)
        return VariableDescriptor(
            name=name,
            shape=tuple(int(n) for n in var.shape),
            chunks=tuple(int(c) for c in chunks) if chunks else None,
            dtype=str(var.dtype),
            attrs=dict(var.attrs),
        )

    def read_coordinate(self, name: str) -> tuple[np.ndarray, tuple[int, ...]]:
        try:
            data = self._variable(name).values
        except FieldStoreError:
            raise
        except Exception as e:
            raise FieldStoreError(f"Failed to read coordinate '{name}': {e}") from e
        if np.issubdtype(data.dtype, np.datetime64):
            data = data.astype("datetime64[ns]").view(np.int64)
        return data, data.shape

    def _read_slice(self, name: str, time_index: int) -> np.ndarray:
        var = self._variable(name)
        return var.isel({var.dims[0]: slice(time_index, time_index + 1)}).values

    def close(self) -> None:
        self.dataset.close()
