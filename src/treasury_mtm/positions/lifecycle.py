from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from typing import Iterable, List

from treasury_mtm.positions.enums import LifecycleState
from treasury_mtm.positions.schemas import HedgePosition


def classify(position: HedgePosition, as_of: _dt.date) -> LifecycleState:
    """
    Lifecycle state of `position` on `as_of`.

    REALIZED once the closing date (early close, else maturity) is reached,
    LATENT from the start date until then, FUTURE before it starts.
    """
    if position.closing_date <= as_of:
        return LifecycleState.REALIZED
    if position.start_date <= as_of:
        return LifecycleState.LATENT
    return LifecycleState.FUTURE


@dataclass(frozen=True)
class Partition:
    """Disjoint split of a position list for one valuation date."""

    as_of: _dt.date
    realized: List[HedgePosition] = field(default_factory=list)
    latent: List[HedgePosition] = field(default_factory=list)
    future: List[HedgePosition] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.realized) + len(self.latent) + len(self.future)


def partition(positions: Iterable[HedgePosition], as_of: _dt.date) -> Partition:
    """Split positions by lifecycle state, preserving input order."""
    buckets = {state: [] for state in LifecycleState}
    for pos in positions:
        buckets[classify(pos, as_of)].append(pos)

    return Partition(
        as_of=as_of,
        realized=buckets[LifecycleState.REALIZED],
        latent=buckets[LifecycleState.LATENT],
        future=buckets[LifecycleState.FUTURE],
    )
