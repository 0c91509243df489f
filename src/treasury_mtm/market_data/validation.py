# src/treasury_mtm/market_data/validation.py

from typing import Iterable, List

from treasury_mtm.market_data.schemas import ForwardCurveSnapshot, SpotRateObservation


class MarketDataValidationError(Exception):
    """Raised when a market data series is not usable for as-of resolution."""

    pass


def validate_spot_series(observations: Iterable[SpotRateObservation]) -> None:
    """
    Series-level validation for spot rates.
    Ensures:
        - One observation per date

    NOTE:
        Positive rates are already enforced by the schema. Gaps between
        dates are expected (weekends, holidays, days nobody loaded a rate)
        and are resolved as-of, so they are not an error here.
    """
    seen = set()
    duplicates: List = []
    for obs in observations:
        if obs.date in seen:
            duplicates.append(obs.date)
        seen.add(obs.date)

    if duplicates:
        raise MarketDataValidationError(
            f"Duplicate spot observations on: {sorted(set(duplicates))}"
        )


def validate_curve_series(snapshots: Iterable[ForwardCurveSnapshot]) -> None:
    """
    Series-level validation for forward curve snapshots.
    Ensures:
        - One snapshot per observation date
        - No curve point settles before the day the curve was observed
    """
    seen = set()
    for snap in snapshots:
        # ---- 1. One snapshot per day ----
        if snap.observed_on in seen:
            raise MarketDataValidationError(
                f"Duplicate curve snapshot observed on {snap.observed_on}"
            )
        seen.add(snap.observed_on)

        # ---- 2. No stale points ----
        stale = [p.maturity for p in snap.points if p.maturity < snap.observed_on]
        if stale:
            raise MarketDataValidationError(
                f"Curve observed on {snap.observed_on} has points settling "
                f"before observation: {sorted(stale)}"
            )

    return None
