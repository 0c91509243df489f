# src/treasury_mtm/market_data/schemas.py
from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SpotRateObservation(BaseModel):
    """
    Single daily spot FX observation (quote currency per 1 USD).

    - date: observation date (datetime.date)
    - rate: spot rate, strictly positive (e.g. 1000.50)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: _dt.date = Field(..., description="Observation date")
    rate: Decimal = Field(..., gt=0, description="Spot rate")


class ForwardCurvePoint(BaseModel):
    """One settlement date on a forward/futures curve."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    maturity: _dt.date = Field(..., description="Settlement date of the contract")
    rate: Decimal = Field(..., gt=0, description="Forward rate for that settlement")


class ForwardCurveSnapshot(BaseModel):
    """
    Full forward curve as seen on `observed_on`.

    Snapshots accumulate over time, one per day rates were recorded. Points
    are kept in input order; consumers sort by maturity themselves.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    observed_on: _dt.date = Field(..., description="Date the curve was recorded")
    points: List[ForwardCurvePoint] = Field(default_factory=list)

    @field_validator("points")
    @classmethod
    def _unique_maturities(cls, points: List[ForwardCurvePoint]):
        maturities = [p.maturity for p in points]
        if len(maturities) != len(set(maturities)):
            raise ValueError(f"Duplicate maturities in curve: {sorted(maturities)}")
        return points

    def sorted_points(self) -> List[ForwardCurvePoint]:
        """Points ascending by maturity."""
        return sorted(self.points, key=lambda p: p.maturity)

    @property
    def last_maturity(self) -> _dt.date | None:
        if not self.points:
            return None
        return max(p.maturity for p in self.points)
