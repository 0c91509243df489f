from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from treasury_mtm.formulas.schemas import FieldResolution, FieldValue
from treasury_mtm.positions.enums import LifecycleState
from treasury_mtm.positions.schemas import HedgePosition

ZERO = Decimal(0)


class PricingGap(str, Enum):
    """Why a position could not be priced on a date."""

    MISSING_SPOT = "MISSING_SPOT"
    MISSING_CURVE = "MISSING_CURVE"
    OUTSIDE_CURVE_HORIZON = "OUTSIDE_CURVE_HORIZON"


class PnLTotals(BaseModel):
    """P&L in quote currency (ARS) and base currency (USD)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    quote: Decimal = ZERO
    base: Decimal = ZERO

    def __add__(self, other: "PnLTotals") -> "PnLTotals":
        return PnLTotals(quote=self.quote + other.quote, base=self.base + other.base)

    def __sub__(self, other: "PnLTotals") -> "PnLTotals":
        return PnLTotals(quote=self.quote - other.quote, base=self.base - other.base)


class PricedPosition(BaseModel):
    """A position valued on a date, enriched for display/export."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    position: HedgePosition
    state: LifecycleState
    rate: Decimal = Field(..., description="Close rate (realized) or mark rate (latent).")
    spot_rate: Decimal = Field(..., description="Spot used to convert to base currency.")
    pnl_quote: Decimal
    pnl_base: Decimal
    custom_fields: FieldResolution = Field(default_factory=FieldResolution)

    @property
    def pnl(self) -> PnLTotals:
        return PnLTotals(quote=self.pnl_quote, base=self.pnl_base)

    @property
    def custom_values(self) -> Dict[str, FieldValue]:
        return self.custom_fields.values


class UnpricedPosition(BaseModel):
    """A position excluded from totals because market data was missing."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    position: HedgePosition
    state: LifecycleState
    reason: PricingGap


class PortfolioSnapshot(BaseModel):
    """
    Point-in-time valuation of a set of positions.

    `as_of` is None when the requested date could not be parsed. Totals
    only include priced positions; gaps are listed in `unpriced`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    as_of: Optional[_dt.date] = None
    spot_rate_used: Optional[Decimal] = None
    realized: List[PricedPosition] = Field(default_factory=list)
    latent: List[PricedPosition] = Field(default_factory=list)
    unpriced: List[UnpricedPosition] = Field(default_factory=list)
    totals: PnLTotals = Field(default_factory=PnLTotals)

    @property
    def is_empty(self) -> bool:
        return not self.realized and not self.latent

    @property
    def realized_totals(self) -> PnLTotals:
        return sum((p.pnl for p in self.realized), PnLTotals())

    @property
    def latent_totals(self) -> PnLTotals:
        return sum((p.pnl for p in self.latent), PnLTotals())


class PeriodResult(BaseModel):
    """P&L between the close of `start - 1 day` and the close of `end`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    start: _dt.date
    end: _dt.date
    start_snapshot: PortfolioSnapshot
    end_snapshot: PortfolioSnapshot
    pnl: PnLTotals


class BlotterRow(BaseModel):
    """One line of the operations table priced at a selected date.

    Exactly one of `priced` / `gap` is set for realized and latent
    positions; both are None for positions that have not started.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    position: HedgePosition
    state: LifecycleState
    priced: Optional[PricedPosition] = None
    gap: Optional[PricingGap] = None
    custom_fields: FieldResolution = Field(default_factory=FieldResolution)

    @property
    def rate(self) -> Optional[Decimal]:
        return self.priced.rate if self.priced else None

    @property
    def pnl_quote(self) -> Optional[Decimal]:
        return self.priced.pnl_quote if self.priced else None

    @property
    def pnl_base(self) -> Optional[Decimal]:
        return self.priced.pnl_base if self.priced else None
