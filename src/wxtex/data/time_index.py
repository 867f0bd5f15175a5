"""Searchable time axis of a gridded dataset.

Maps the dataset's raw time coordinate (nanosecond ticks since the Unix
epoch) to ISO-8601 instants and resolves arbitrary query instants to the
two bracketing stored timesteps plus a linear interpolation weight.

Instants are handled at millisecond precision throughout. Query instants
may be ISO strings, ``datetime`` objects, ``pandas.Timestamp`` or
``numpy.datetime64``; naive values are taken as UTC.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Union
from datetime import datetime

import numpy as np
import pandas as pd

from wxtex.contracts import assert_time_axis

__all__ = [
    'TimeIndex',
    'FrameSpec',
    'EmptyTimeIndexError',
    'NOT_FOUND',
    'ticks_to_iso',
    'format_instant',
    'hourly_datetimes',
]

logger = logging.getLogger(__name__)

NOT_FOUND = -1
NS_PER_MS = 1_000_000

Instant = Union[str, datetime, pd.Timestamp, np.datetime64]


class EmptyTimeIndexError(LookupError):
    """Raised when a bracketing query is made against an empty time axis."""


@dataclass(frozen=True)
class FrameSpec:
    """Bracketing timestep indices and cross-fade weight for one instant.

    ``weight`` is 0 exactly at the start timestamp and 1 exactly at the end
    timestamp. Either index may be ``NOT_FOUND``.
    """
    start_index: int
    end_index: int
    weight: float

    @property
    def resolved(self) -> bool:
        return self.start_index != NOT_FOUND and self.end_index != NOT_FOUND


def to_datetime64(value: Instant) -> np.datetime64:
    """Convert an instant to a naive-UTC ``datetime64[ms]``."""
    ts = pd.Timestamp(value)
    if ts is pd.NaT:
        raise ValueError(f"Not a valid instant: {value!r}")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_datetime64().astype("datetime64[ms]")


def format_instant(value: Instant) -> str:
    """Format an instant as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return str(np.datetime_as_string(to_datetime64(value), unit="ms")) + "Z"


def ticks_to_iso(ticks: Sequence[int]) -> list[str]:
    """Convert nanosecond epoch ticks to ISO-8601 instant strings.

    Ticks are truncated (toward zero) to whole milliseconds; sub-millisecond
    precision is discarded.

    Examples
    --------
    >>> ticks_to_iso([1762300800000000000])
    ['2025-11-05T00:00:00.000Z']
    """
    ticks = np.asarray(ticks, dtype=np.int64)
    ms = np.sign(ticks) * (np.abs(ticks) // NS_PER_MS)
    times = ms.astype("datetime64[ms]")
    return [s + "Z" for s in np.datetime_as_string(times, unit="ms").tolist()]


def hourly_datetimes(start: Instant, end: Instant) -> list[str]:
    """Every whole hour from ``start`` to ``end`` inclusive, as ISO strings.

    Returns an empty list when ``end`` precedes ``start``.
    """
    first = pd.Timestamp(to_datetime64(start))
    last = pd.Timestamp(to_datetime64(end))
    if last < first:
        return []
    return [format_instant(ts) for ts in pd.date_range(first, last, freq="h")]


class TimeIndex:
    """Ordered, immutable sequence of distinct dataset timestamps.

    Parameters
    ----------
    timestamps : sequence
        Stored instants in dataset order. Must be strictly increasing.

    Raises
    ------
    ContractViolation
        If timestamps are not strictly increasing.

    Examples
    --------
    >>> index = TimeIndex(["2025-11-05T00:00:00Z", "2025-11-05T06:00:00Z"])
    >>> spec = index.frame_spec("2025-11-05T03:00:00Z")
    >>> spec.start_index, spec.end_index, spec.weight
    (0, 1, 0.5)
    """

    def __init__(self, timestamps: Sequence[Instant] = ()):
        times = np.array([to_datetime64(t) for t in timestamps], dtype="datetime64[ms]")
        assert_time_axis(times)
        self._times = times
        self._timestamps = tuple(
            s + "Z" for s in np.datetime_as_string(times, unit="ms").tolist()
        )
        self._positions = {ts: i for i, ts in enumerate(self._timestamps)}

    @classmethod
    def from_ticks(cls, ticks: Sequence[int]) -> "TimeIndex":
        """Build an index from raw nanosecond ticks."""
        return cls(ticks_to_iso(ticks))

    @property
    def timestamps(self) -> tuple[str, ...]:
        return self._timestamps

    def __len__(self) -> int:
        return len(self._timestamps)

    def __repr__(self) -> str:
        if not self._timestamps:
            return "TimeIndex([])"
        return f"TimeIndex({len(self)} steps, {self._timestamps[0]} .. {self._timestamps[-1]})"

    @property
    def is_empty(self) -> bool:
        return not self._timestamps

    def _require_data(self):
        if self.is_empty:
            raise EmptyTimeIndexError("Time index is empty; no instant can be resolved")

    def closest_start(self, query: Instant) -> str:
        """Latest stored timestamp <= query (first timestamp if query precedes all data).

        Raises
        ------
        EmptyTimeIndexError
            If the index holds no timestamps.
        """
        self._require_data()
        pos = int(np.searchsorted(self._times, to_datetime64(query), side="right")) - 1
        return self._timestamps[max(pos, 0)]

    def closest_end(self, query: Instant) -> str:
        """Earliest stored timestamp >= query (last timestamp if query follows all data).

        Raises
        ------
        EmptyTimeIndexError
            If the index holds no timestamps.
        """
        self._require_data()
        pos = int(np.searchsorted(self._times, to_datetime64(query), side="left"))
        return self._timestamps[min(pos, len(self._timestamps) - 1)]

    @staticmethod
    def weight(start: Instant, end: Instant, query: Instant) -> float:
        """Linear position of ``query`` between ``start`` and ``end``, clamped to [0, 1].

        Returns 0 when ``start == end``.
        """
        s = to_datetime64(start).astype(np.int64)
        e = to_datetime64(end).astype(np.int64)
        if s == e:
            return 0.0
        q = to_datetime64(query).astype(np.int64)
        w = float(q - s) / float(e - s)
        return min(1.0, max(0.0, w))

    def index_of(self, timestamp: Instant) -> int:
        """Exact position of ``timestamp``, or ``NOT_FOUND``. Never raises."""
        if isinstance(timestamp, str) and timestamp in self._positions:
            return self._positions[timestamp]
        try:
            key = format_instant(timestamp)
        except (ValueError, TypeError):
            return NOT_FOUND
        return self._positions.get(key, NOT_FOUND)

    def frame_spec(self, query: Instant) -> FrameSpec:
        """Resolve ``query`` to its bracketing indices and weight.

        Raises
        ------
        EmptyTimeIndexError
            If the index holds no timestamps.
        """
        start = self.closest_start(query)
        end = self.closest_end(query)
        spec = FrameSpec(
            start_index=self.index_of(start),
            end_index=self.index_of(end),
            weight=self.weight(start, end, query),
        )
        logger.debug("Resolved %s -> %s", query, spec)
        return spec

    def unique_dates(self) -> list[str]:
        """Distinct ``YYYY-MM-DD`` dates present in the index, in order."""
        return list(dict.fromkeys(ts.split("T")[0] for ts in self._timestamps))

    def timesteps_for_date(self, date: Instant, range_days: int = 1) -> list[str]:
        """Stored timestamps within ``range_days`` days of midnight UTC on ``date``.

        Both ends of the window are inclusive.
        """
        start = to_datetime64(pd.Timestamp(to_datetime64(date)).normalize())
        end = start + np.timedelta64(range_days * 24, "h")
        mask = (self._times >= start) & (self._times <= end)
        return [ts for ts, keep in zip(self._timestamps, mask) if keep]
