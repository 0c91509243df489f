# src/treasury_mtm/curves/interpolation.py
from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from typing import Optional

from treasury_mtm.market_data.schemas import ForwardCurveSnapshot

DEFAULT_DAYS_IN_YEAR = 365
_HUNDRED = Decimal(100)


def as_decimal(value) -> Decimal:
    """Coerce int/float/str/Decimal to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


# ------------------------------------------------------------
# Annualized implied rate (TNA). Returns percent (e.g. 58.87 means 58.87%).
# ------------------------------------------------------------
def implied_annual_rate(
    forward_rate: Decimal,
    spot_rate: Decimal,
    days: int,
    days_in_year: int = DEFAULT_DAYS_IN_YEAR,
) -> Optional[Decimal]:
    """
    Simple (non-compounded) annual rate implied by a forward vs. spot.

        tna = ((forward / spot) - 1) / days * days_in_year * 100

    Returns None when `spot_rate <= 0` or `days <= 0`.
    """
    spot = as_decimal(spot_rate)
    if spot <= 0 or days <= 0:
        return None
    fwd = as_decimal(forward_rate)
    return ((fwd / spot) - 1) / Decimal(days) * Decimal(days_in_year) * _HUNDRED


def forward_from_implied_rate(
    implied_rate: Decimal,
    spot_rate: Decimal,
    days: int,
    days_in_year: int = DEFAULT_DAYS_IN_YEAR,
) -> Decimal:
    """Inverse of `implied_annual_rate`: price-space forward for `days`."""
    spot = as_decimal(spot_rate)
    return spot * (1 + as_decimal(implied_rate) / _HUNDRED * Decimal(days) / Decimal(days_in_year))


# ------------------------------------------------------------
# Bracket-and-blend interpolation in implied-rate space
# ------------------------------------------------------------
def interpolate_forward_rate(
    target_maturity: _dt.date,
    curve: ForwardCurveSnapshot,
    anchor_spot_rate: Optional[Decimal],
    days_in_year: int = DEFAULT_DAYS_IN_YEAR,
) -> Optional[Decimal]:
    """
    Forward rate for `target_maturity` read off `curve`.

    - exact maturity on the curve -> that point's rate
    - target on the observation date -> the anchor spot (day zero)
    - target before the first point -> blended between the anchor and the
      first point; the anchor carries the first point's implied rate
    - target between two points -> implied rates blended linearly on
      calendar days from the observation date
    - target after the last point, before the observation date, or a
      non-positive spot -> None (no extrapolation)
    """
    if anchor_spot_rate is None:
        return None
    spot = as_decimal(anchor_spot_rate)
    if spot <= 0:
        return None

    points = curve.sorted_points()
    if not points:
        return None

    for p in points:
        if p.maturity == target_maturity:
            return p.rate

    anchor = curve.observed_on
    if target_maturity == anchor:
        return spot
    if target_maturity < anchor or target_maturity > curve.last_maturity:
        return None

    upper_idx = next(i for i, p in enumerate(points) if p.maturity > target_maturity)
    upper = points[upper_idx]
    upper_days = (upper.maturity - anchor).days
    upper_tna = implied_annual_rate(upper.rate, spot, upper_days, days_in_year)
    if upper_tna is None:
        return None

    if upper_idx == 0:
        lower_days = 0
        lower_tna = upper_tna
    else:
        lower = points[upper_idx - 1]
        lower_days = (lower.maturity - anchor).days
        lower_tna = implied_annual_rate(lower.rate, spot, lower_days, days_in_year)
        if lower_tna is None:
            return None

    target_days = (target_maturity - anchor).days
    weight = Decimal(target_days - lower_days) / Decimal(upper_days - lower_days)
    tna = lower_tna + (upper_tna - lower_tna) * weight

    return forward_from_implied_rate(tna, spot, target_days, days_in_year)
