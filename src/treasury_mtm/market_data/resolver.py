# src/treasury_mtm/market_data/resolver.py
from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from typing import Callable, Generic, Iterable, List, Optional, Sequence, TypeVar

import numpy as np

from treasury_mtm.market_data.schemas import ForwardCurveSnapshot, SpotRateObservation

T = TypeVar("T")


# ------------------------------------------------------------
# Plain as-of lookup
# ------------------------------------------------------------
def resolve_as_of(
    series: Iterable[T],
    as_of: _dt.date,
    key: Callable[[T], _dt.date],
) -> Optional[T]:
    """
    Latest entry whose key date is on or before `as_of`.

    The series is sorted descending by date and the first qualifying entry
    wins. When two entries share a date, the one that came first in the
    input is returned. Returns None when nothing qualifies, e.g. `as_of`
    precedes the first observation.
    """
    for entry in sorted(series, key=key, reverse=True):
        if key(entry) <= as_of:
            return entry
    return None


def resolve_spot(
    spot_series: Iterable[SpotRateObservation], as_of: _dt.date
) -> Optional[SpotRateObservation]:
    return resolve_as_of(spot_series, as_of, key=lambda o: o.date)


def resolve_spot_rate(
    spot_series: Iterable[SpotRateObservation], as_of: _dt.date
) -> Optional[Decimal]:
    obs = resolve_spot(spot_series, as_of)
    return obs.rate if obs is not None else None


def resolve_curve(
    curve_series: Iterable[ForwardCurveSnapshot], as_of: _dt.date
) -> Optional[ForwardCurveSnapshot]:
    return resolve_as_of(curve_series, as_of, key=lambda s: s.observed_on)


# ------------------------------------------------------------
# Memoized lookup for multi-date reports
# ------------------------------------------------------------
class AsOfIndex(Generic[T]):
    """
    Pre-sorted as-of index over one series.

    Sorting happens once; each lookup is a binary search over a
    datetime64[D] array. Returns exactly what `resolve_as_of` would for the
    same series and date.
    """

    def __init__(self, series: Iterable[T], key: Callable[[T], _dt.date]):
        ordered = sorted(series, key=key)

        entries: List[T] = []
        dates: List[_dt.date] = []
        for entry in ordered:
            d = key(entry)
            # stable sort: keep the first entry seen for a repeated date
            if dates and dates[-1] == d:
                continue
            entries.append(entry)
            dates.append(d)

        self._entries: Sequence[T] = entries
        self._dates = np.array(dates, dtype="datetime64[D]")

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, as_of: _dt.date) -> Optional[T]:
        if not self._entries:
            return None
        pos = int(np.searchsorted(self._dates, np.datetime64(as_of, "D"), side="right"))
        if pos == 0:
            return None
        return self._entries[pos - 1]

    @classmethod
    def for_spot(cls, spot_series: Iterable[SpotRateObservation]) -> "AsOfIndex":
        return cls(spot_series, key=lambda o: o.date)

    @classmethod
    def for_curves(cls, curve_series: Iterable[ForwardCurveSnapshot]) -> "AsOfIndex":
        return cls(curve_series, key=lambda s: s.observed_on)


class MarketDataView:
    """
    Spot + curve lookups bundled for the valuation engine.

    With `memoize=False` every call goes through `resolve_as_of`; with
    `memoize=True` lookups use an `AsOfIndex`. Both give the same answers.
    """

    def __init__(
        self,
        spot_series: Iterable[SpotRateObservation],
        curve_series: Iterable[ForwardCurveSnapshot],
        memoize: bool = False,
    ):
        self.spot_series = list(spot_series)
        self.curve_series = list(curve_series)
        self.memoize = memoize
        self._spot_index: Optional[AsOfIndex] = None
        self._curve_index: Optional[AsOfIndex] = None
        if memoize:
            self._spot_index = AsOfIndex.for_spot(self.spot_series)
            self._curve_index = AsOfIndex.for_curves(self.curve_series)

    def spot_rate(self, as_of: _dt.date) -> Optional[Decimal]:
        if self._spot_index is not None:
            obs = self._spot_index.lookup(as_of)
            return obs.rate if obs is not None else None
        return resolve_spot_rate(self.spot_series, as_of)

    def curve(self, as_of: _dt.date) -> Optional[ForwardCurveSnapshot]:
        if self._curve_index is not None:
            return self._curve_index.lookup(as_of)
        return resolve_curve(self.curve_series, as_of)
