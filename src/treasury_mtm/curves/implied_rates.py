# src/treasury_mtm/curves/implied_rates.py
from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from treasury_mtm.curves.interpolation import DEFAULT_DAYS_IN_YEAR, implied_annual_rate
from treasury_mtm.market_data.resolver import resolve_curve, resolve_spot_rate
from treasury_mtm.market_data.schemas import ForwardCurveSnapshot, SpotRateObservation


class ImpliedRatePoint(BaseModel):
    """Curve point annotated with its annualized implied rate (percent)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    maturity: _dt.date
    rate: Decimal
    days: int = Field(..., description="Calendar days from the reference date")
    implied_rate: Optional[Decimal] = Field(
        default=None, description="TNA in percent; None when days <= 0"
    )


class ImpliedCurveView(BaseModel):
    """Implied-rate view of the curve in force on `as_of`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    as_of: _dt.date
    observed_on: _dt.date
    spot_rate: Decimal
    points: List[ImpliedRatePoint] = Field(default_factory=list)


class CurveComparisonRow(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    maturity: _dt.date
    rate: Decimal
    implied_rate: Optional[Decimal] = None
    comparison_maturity: Optional[_dt.date] = None
    comparison_rate: Optional[Decimal] = None
    comparison_implied_rate: Optional[Decimal] = None
    implied_rate_diff: Optional[Decimal] = Field(
        default=None, description="reference - comparison, percentage points"
    )


def implied_rate_curve(
    curve: ForwardCurveSnapshot,
    spot_rate: Decimal,
    reference_date: Optional[_dt.date] = None,
    days_in_year: int = DEFAULT_DAYS_IN_YEAR,
) -> List[ImpliedRatePoint]:
    """
    Annualized implied rate of every curve point, ascending by maturity.

    Day counts run from `reference_date` (defaults to the curve's
    observation date) to each maturity.
    """
    ref = reference_date or curve.observed_on
    out: List[ImpliedRatePoint] = []
    for p in curve.sorted_points():
        days = (p.maturity - ref).days
        out.append(
            ImpliedRatePoint(
                maturity=p.maturity,
                rate=p.rate,
                days=days,
                implied_rate=implied_annual_rate(p.rate, spot_rate, days, days_in_year),
            )
        )
    return out


def implied_curve_as_of(
    spot_series: Iterable[SpotRateObservation],
    curve_series: Iterable[ForwardCurveSnapshot],
    as_of: _dt.date,
    days_in_year: int = DEFAULT_DAYS_IN_YEAR,
) -> Optional[ImpliedCurveView]:
    """Resolve spot and curve as-of `as_of` and build the implied-rate view."""
    spot = resolve_spot_rate(spot_series, as_of)
    curve = resolve_curve(curve_series, as_of)
    if spot is None or curve is None:
        return None

    return ImpliedCurveView(
        as_of=as_of,
        observed_on=curve.observed_on,
        spot_rate=spot,
        points=implied_rate_curve(curve, spot, reference_date=as_of, days_in_year=days_in_year),
    )


def compare_implied_curves(
    reference: List[ImpliedRatePoint],
    comparison: Optional[List[ImpliedRatePoint]] = None,
) -> List[CurveComparisonRow]:
    """
    Pair two implied-rate curves by ordinal position (first contract with
    first contract, and so on) and report the difference in implied rate.

    Rows follow the reference curve; comparison entries beyond its length
    are ignored.
    """
    comparison = comparison or []
    rows: List[CurveComparisonRow] = []
    for i, ref in enumerate(reference):
        comp = comparison[i] if i < len(comparison) else None
        diff = None
        if comp is not None and ref.implied_rate is not None and comp.implied_rate is not None:
            diff = ref.implied_rate - comp.implied_rate
        rows.append(
            CurveComparisonRow(
                maturity=ref.maturity,
                rate=ref.rate,
                implied_rate=ref.implied_rate,
                comparison_maturity=comp.maturity if comp else None,
                comparison_rate=comp.rate if comp else None,
                comparison_implied_rate=comp.implied_rate if comp else None,
                implied_rate_diff=diff,
            )
        )
    return rows
