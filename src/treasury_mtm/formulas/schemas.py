from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

FieldValue = Union[Decimal, float, int, str]


class FieldKind(str, Enum):
    MANUAL = "MANUAL"
    CALCULATED = "CALCULATED"


class FieldDataType(str, Enum):
    NUMBER = "NUMBER"
    TEXT = "TEXT"
    DATE = "DATE"


class FieldStatus(str, Enum):
    """Outcome of resolving one calculated field."""

    RESOLVED = "RESOLVED"
    UNRESOLVED = "UNRESOLVED"  # missing/non-numeric input or bad expression
    CYCLIC = "CYCLIC"  # on, or downstream of, a dependency cycle


class CustomFieldDefinition(BaseModel):
    """
    User-defined column on hedge positions.

    Calculated fields reference other fields and base metrics by *name*
    inside `{...}` tokens, e.g. `"{Monto USD} * {TC Arbitraje}"`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    kind: FieldKind = FieldKind.MANUAL
    data_type: FieldDataType = FieldDataType.NUMBER
    formula: Optional[str] = None
    is_required: bool = False

    @model_validator(mode="after")
    def _formula_only_when_calculated(self) -> "CustomFieldDefinition":
        if self.kind is FieldKind.MANUAL and self.formula:
            raise ValueError(f"Manual field '{self.name}' cannot carry a formula")
        return self

    @property
    def is_calculated(self) -> bool:
        return self.kind is FieldKind.CALCULATED


class BaseMetricLabels(BaseModel):
    """Names under which position metrics are visible to formulas."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    notional: str = "Monto USD"
    agreed_rate: str = "TC Arbitraje"
    close_rate: str = "TC Cancelación"


class FieldResolution(BaseModel):
    """Custom field values for one position plus per-field diagnostics."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    values: Dict[str, FieldValue] = Field(
        default_factory=dict, description="Field id -> manual or calculated value."
    )
    statuses: Dict[str, FieldStatus] = Field(
        default_factory=dict, description="Calculated field id -> outcome."
    )
    errors: Dict[str, str] = Field(
        default_factory=dict, description="Calculated field id -> failure reason."
    )

    @property
    def unresolved(self) -> List[str]:
        return [fid for fid, s in self.statuses.items() if s is FieldStatus.UNRESOLVED]

    @property
    def cyclic(self) -> List[str]:
        return [fid for fid, s in self.statuses.items() if s is FieldStatus.CYCLIC]
