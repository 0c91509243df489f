from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from treasury_mtm.positions.enums import Instrument, Side

CustomValue = Union[Decimal, float, int, str]


class HedgePosition(BaseModel):
    """An FX hedge as booked by treasury.

    The valuation engine never mutates positions: closing early or
    cancelling produces a new instance with `close_date`/`close_rate` set.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    instrument: Instrument
    side: Side
    notional_usd: Decimal = Field(..., gt=0, description="USD amount hedged.")
    start_date: _dt.date
    maturity_date: _dt.date
    agreed_rate: Decimal = Field(..., gt=0, description="Contracted FX rate.")
    close_date: Optional[_dt.date] = Field(
        default=None, description="Early close / cancellation date."
    )
    close_rate: Optional[Decimal] = Field(
        default=None, gt=0, description="Rate at which the hedge was closed."
    )
    linked_external_id: Optional[str] = Field(
        default=None,
        description="Debt or investment transaction this hedge covers.",
    )
    custom_field_values: Dict[str, CustomValue] = Field(
        default_factory=dict,
        description="Manual custom field values keyed by field id.",
    )

    # Descriptive attributes used by report filters
    business_unit_id: Optional[str] = None
    assignment_id: Optional[str] = None
    bank_id: Optional[str] = None
    broker_id: Optional[str] = None
    detail: Optional[str] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "HedgePosition":
        if self.maturity_date < self.start_date:
            raise ValueError(
                f"maturity_date {self.maturity_date} precedes start_date {self.start_date}"
            )
        return self

    @property
    def closing_date(self) -> _dt.date:
        """Date the position stops being open: early close or maturity."""
        return self.close_date or self.maturity_date

    @property
    def operator_id(self) -> Optional[str]:
        """Counterparty key used by report filters (`bank-<id>` / `broker-<id>`)."""
        if self.bank_id:
            return f"bank-{self.bank_id}"
        if self.broker_id:
            return f"broker-{self.broker_id}"
        return None

    def signed_pnl(self, rate: Decimal) -> Decimal:
        """Quote-currency P&L of settling the full notional at `rate`.

        Sold:   (agreed - rate) * notional
        Bought: (rate - agreed) * notional
        """
        return (rate - self.agreed_rate) * self.side.sign * self.notional_usd
