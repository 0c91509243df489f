from __future__ import annotations

import datetime as _dt
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from treasury_mtm.formulas.schemas import BaseMetricLabels, CustomFieldDefinition
from treasury_mtm.market_data.schemas import ForwardCurveSnapshot, SpotRateObservation
from treasury_mtm.positions.filters import PositionFilter
from treasury_mtm.positions.schemas import HedgePosition


# ============================================================
# Engine settings
# ============================================================


class EngineSettings(BaseModel):
    """
    Knobs of the valuation engine.
    """

    model_config = ConfigDict(extra="forbid")

    days_in_year: Literal[360, 365] = Field(
        default=365, description="Day-count basis of implied (TNA) rates."
    )
    base_metric_labels: BaseMetricLabels = Field(default_factory=BaseMetricLabels)
    memoize_lookups: bool = Field(
        default=False,
        description="Pre-index spot/curve series for multi-date reports.",
    )


# ============================================================
# Batch valuation request
# ============================================================


class ValuationRequest(BaseModel):
    """
    Everything needed to value a hedge book: market data, positions,
    custom field definitions and the dates/filters of the report.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = "valuation"
    settings: EngineSettings = Field(default_factory=EngineSettings)

    spot_rates: List[SpotRateObservation] = Field(default_factory=list)
    forward_curves: List[ForwardCurveSnapshot] = Field(default_factory=list)
    positions: List[HedgePosition] = Field(default_factory=list)
    custom_fields: List[CustomFieldDefinition] = Field(default_factory=list)

    as_of: Optional[_dt.date] = None
    period_start: Optional[_dt.date] = None
    period_end: Optional[_dt.date] = None
    filters: PositionFilter = Field(default_factory=PositionFilter)

    @model_validator(mode="after")
    def _check_period(self) -> "ValuationRequest":
        if self.period_start and self.period_end and self.period_start > self.period_end:
            raise ValueError("period_start must not be after period_end")
        return self

    def filtered_positions(self, today: Optional[_dt.date] = None) -> List[HedgePosition]:
        return self.filters.apply(self.positions, today=today)
