from __future__ import annotations

from enum import Enum


class Side(str, Enum):
    """Hedge direction on the USD leg."""

    BOUGHT = "BOUGHT"
    SOLD = "SOLD"

    @property
    def sign(self) -> int:
        """Return +1 for BOUGHT, -1 for SOLD."""
        return 1 if self is Side.BOUGHT else -1


class Instrument(str, Enum):
    """Hedge instruments booked by the treasury desk."""

    ROFEX = "ROFEX"
    NDF = "NDF"
    NDF_CLIENT = "NDF Cliente"


class LifecycleState(str, Enum):
    """State of a position relative to a valuation date."""

    REALIZED = "REALIZED"
    LATENT = "LATENT"
    FUTURE = "FUTURE"


class PositionStatus(str, Enum):
    """Report-level status filter, relative to today rather than the as-of date."""

    ALL = "ALL"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
