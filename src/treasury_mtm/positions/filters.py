from __future__ import annotations

import datetime as _dt
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from treasury_mtm.positions.enums import Instrument, PositionStatus
from treasury_mtm.positions.schemas import HedgePosition


class PositionFilter(BaseModel):
    """
    Report filters applied before valuation.

    Empty selections mean "no restriction". `status` is judged against
    `today` (the day the report runs), not against the valuation date:
    ACTIVE keeps hedges never closed early whose maturity is today or later.
    """

    model_config = ConfigDict(extra="forbid")

    instruments: List[Instrument] = Field(default_factory=list)
    business_unit_ids: List[str] = Field(default_factory=list)
    assignment_ids: List[str] = Field(default_factory=list)
    operator_ids: List[str] = Field(
        default_factory=list, description="'bank-<id>' or 'broker-<id>' keys."
    )
    status: PositionStatus = PositionStatus.ALL

    def is_active(self, position: HedgePosition, today: _dt.date) -> bool:
        return position.close_date is None and position.maturity_date >= today

    def matches(self, position: HedgePosition, today: Optional[_dt.date] = None) -> bool:
        if self.status is not PositionStatus.ALL:
            today = today or _dt.date.today()
            active = self.is_active(position, today)
            if self.status is PositionStatus.ACTIVE and not active:
                return False
            if self.status is PositionStatus.EXPIRED and active:
                return False

        if self.instruments and position.instrument not in self.instruments:
            return False
        if self.business_unit_ids and (position.business_unit_id or "") not in self.business_unit_ids:
            return False
        if self.assignment_ids and (position.assignment_id or "") not in self.assignment_ids:
            return False
        if self.operator_ids and (position.operator_id or "") not in self.operator_ids:
            return False
        return True

    def apply(
        self, positions: Iterable[HedgePosition], today: Optional[_dt.date] = None
    ) -> List[HedgePosition]:
        """Positions passing every filter, in input order."""
        return [p for p in positions if self.matches(p, today)]
