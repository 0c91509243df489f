from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Iterable, List, Optional, Sequence

import pandas as pd

from treasury_mtm.config.models import EngineSettings
from treasury_mtm.formulas.engine import CustomFieldFormulaEngine
from treasury_mtm.formulas.schemas import CustomFieldDefinition
from treasury_mtm.market_data.resolver import MarketDataView
from treasury_mtm.market_data.schemas import ForwardCurveSnapshot, SpotRateObservation
from treasury_mtm.positions.enums import LifecycleState
from treasury_mtm.positions.lifecycle import classify, partition
from treasury_mtm.positions.schemas import HedgePosition
from treasury_mtm.valuation.pnl import PnLEngine
from treasury_mtm.valuation.schemas import (
    ZERO,
    BlotterRow,
    PeriodResult,
    PnLTotals,
    PortfolioSnapshot,
    PricedPosition,
    UnpricedPosition,
)

LOGGER = logging.getLogger(__name__)

ONE_DAY = _dt.timedelta(days=1)


def parse_as_of(value: Any) -> Optional[_dt.date]:
    """
    Normalize a valuation date.

    Accepts date, datetime (incl. pandas.Timestamp) and full ISO 8601
    date or datetime strings. Anything else, NaT, or a string with
    trailing garbage gives None.
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _dt.datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


class PortfolioSnapshotAggregator:
    """
    Values a hedge book on any date from spot and forward-curve history.

    All entry points are pure: identical inputs give identical snapshots,
    and inputs are never mutated.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.pnl_engine = PnLEngine(days_in_year=self.settings.days_in_year)
        self.formula_engine = CustomFieldFormulaEngine(self.settings.base_metric_labels)

    def market_view(
        self,
        spot_series: Iterable[SpotRateObservation],
        curve_series: Iterable[ForwardCurveSnapshot],
        memoize: Optional[bool] = None,
    ) -> MarketDataView:
        if memoize is None:
            memoize = self.settings.memoize_lookups
        return MarketDataView(spot_series, curve_series, memoize=memoize)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def snapshot(
        self,
        as_of: Any,
        positions: Iterable[HedgePosition],
        curve_series: Iterable[ForwardCurveSnapshot],
        spot_series: Iterable[SpotRateObservation],
        field_defs: Iterable[CustomFieldDefinition] = (),
    ) -> PortfolioSnapshot:
        """
        Realized and latent P&L of `positions` as of `as_of`.

        Returns an empty, zero-total snapshot when the date is missing or
        unparseable, there are no positions, or no spot rate resolves for
        the date.
        """
        market = self.market_view(spot_series, curve_series)
        return self.snapshot_with(as_of, positions, market, field_defs)

    def snapshot_with(
        self,
        as_of: Any,
        positions: Iterable[HedgePosition],
        market: MarketDataView,
        field_defs: Iterable[CustomFieldDefinition] = (),
    ) -> PortfolioSnapshot:
        """Same as `snapshot`, over an already built MarketDataView."""
        as_of_date = parse_as_of(as_of)
        if as_of_date is None:
            LOGGER.debug("Cannot value portfolio: unparseable as-of %r", as_of)
            return PortfolioSnapshot()

        positions = list(positions)
        if not positions:
            return PortfolioSnapshot(as_of=as_of_date)

        spot = market.spot_rate(as_of_date)
        if spot is None:
            LOGGER.debug("Cannot value portfolio on %s: no spot rate", as_of_date)
            return PortfolioSnapshot(as_of=as_of_date)

        field_defs = list(field_defs)
        parts = partition(positions, as_of_date)

        realized_out = [self.pnl_engine.price_realized(p, market) for p in parts.realized]
        latent_out = self.pnl_engine.price_latent_all(parts.latent, as_of_date, market)

        realized = self._enrich([o for o in realized_out if isinstance(o, PricedPosition)], field_defs)
        latent = self._enrich([o for o in latent_out if isinstance(o, PricedPosition)], field_defs)
        unpriced = [o for o in realized_out + latent_out if isinstance(o, UnpricedPosition)]

        for gap in unpriced:
            LOGGER.debug(
                "Position %s (%s) not priced on %s: %s",
                gap.position.id,
                gap.state.value,
                as_of_date,
                gap.reason.value,
            )

        priced = realized + latent
        totals = PnLTotals(
            quote=sum((p.pnl_quote for p in priced), ZERO),
            base=sum((p.pnl_base for p in priced), ZERO),
        )

        return PortfolioSnapshot(
            as_of=as_of_date,
            spot_rate_used=spot,
            realized=realized,
            latent=latent,
            unpriced=unpriced,
            totals=totals,
        )

    def _enrich(
        self, priced: List[PricedPosition], field_defs: Sequence[CustomFieldDefinition]
    ) -> List[PricedPosition]:
        return [
            p.model_copy(update={"custom_fields": self.formula_engine.resolve(p.position, field_defs)})
            for p in priced
        ]

    # ------------------------------------------------------------------
    # Period
    # ------------------------------------------------------------------
    def period(
        self,
        start: Any,
        end: Any,
        positions: Iterable[HedgePosition],
        curve_series: Iterable[ForwardCurveSnapshot],
        spot_series: Iterable[SpotRateObservation],
        field_defs: Iterable[CustomFieldDefinition] = (),
    ) -> PeriodResult:
        """
        P&L generated between `start` and `end`, both inclusive.

        Full revaluation at the close of the day before `start` and at `end`;
        the result is the difference of the two totals.

        Raises
        ------
        ValueError
            If either date is unparseable or `start` is after `end`.
        """
        start_date = parse_as_of(start)
        end_date = parse_as_of(end)
        if start_date is None or end_date is None:
            raise ValueError(f"Invalid period bounds: {start!r} .. {end!r}")
        if start_date > end_date:
            raise ValueError(f"Period start {start_date} is after end {end_date}")

        positions = list(positions)
        field_defs = list(field_defs)
        market = self.market_view(spot_series, curve_series)

        start_snapshot = self.snapshot_with(start_date - ONE_DAY, positions, market, field_defs)
        end_snapshot = self.snapshot_with(end_date, positions, market, field_defs)

        return PeriodResult(
            start=start_date,
            end=end_date,
            start_snapshot=start_snapshot,
            end_snapshot=end_snapshot,
            pnl=end_snapshot.totals - start_snapshot.totals,
        )

    # ------------------------------------------------------------------
    # Operations table
    # ------------------------------------------------------------------
    def price_all(
        self,
        as_of: Any,
        positions: Iterable[HedgePosition],
        curve_series: Iterable[ForwardCurveSnapshot],
        spot_series: Iterable[SpotRateObservation],
        field_defs: Iterable[CustomFieldDefinition] = (),
    ) -> List[BlotterRow]:
        """
        One row per position, in input order, priced at `as_of`.

        Unlike `snapshot`, future positions and positions lacking market
        data are kept (with no price) so the table shows every operation.
        Returns [] when `as_of` is unparseable.
        """
        as_of_date = parse_as_of(as_of)
        if as_of_date is None:
            return []

        field_defs = list(field_defs)
        market = self.market_view(spot_series, curve_series)
        spot = market.spot_rate(as_of_date)
        curve = market.curve(as_of_date)

        rows: List[BlotterRow] = []
        for pos in positions:
            state = classify(pos, as_of_date)
            if state is LifecycleState.REALIZED:
                outcome = self.pnl_engine.price_realized(pos, market)
            elif state is LifecycleState.LATENT:
                outcome = self.pnl_engine.price_latent(pos, spot, curve)
            else:
                outcome = None

            rows.append(
                BlotterRow(
                    position=pos,
                    state=state,
                    priced=outcome if isinstance(outcome, PricedPosition) else None,
                    gap=outcome.reason if isinstance(outcome, UnpricedPosition) else None,
                    custom_fields=self.formula_engine.resolve(pos, field_defs),
                )
            )
        return rows

    # ------------------------------------------------------------------
    # Linked hedges
    # ------------------------------------------------------------------
    def linked_pnl(
        self,
        external_ids: Iterable[str],
        as_of: Any,
        positions: Iterable[HedgePosition],
        curve_series: Iterable[ForwardCurveSnapshot],
        spot_series: Iterable[SpotRateObservation],
    ) -> PnLTotals:
        """Cumulative P&L of the hedges linked to any of `external_ids`."""
        ids = set(external_ids)
        linked = [p for p in positions if p.linked_external_id and p.linked_external_id in ids]
        return self.snapshot(as_of, linked, curve_series, spot_series).totals

    # ------------------------------------------------------------------
    # Multi-date report
    # ------------------------------------------------------------------
    def valuation_series(
        self,
        start: Any,
        end: Any,
        positions: Iterable[HedgePosition],
        curve_series: Iterable[ForwardCurveSnapshot],
        spot_series: Iterable[SpotRateObservation],
    ) -> pd.DataFrame:
        """
        Daily snapshot totals between `start` and `end` (inclusive).

        Lookups are memoized across dates; values match per-date
        `snapshot` calls. Amounts are floats for display.
        """
        start_date = parse_as_of(start)
        end_date = parse_as_of(end)
        if start_date is None or end_date is None:
            raise ValueError(f"Invalid series bounds: {start!r} .. {end!r}")

        positions = list(positions)
        market = self.market_view(spot_series, curve_series, memoize=True)

        records = []
        for ts in pd.date_range(start_date, end_date, freq="D"):
            snap = self.snapshot_with(ts.date(), positions, market)
            realized = snap.realized_totals
            latent = snap.latent_totals
            records.append(
                {
                    "as_of": ts,
                    "spot_rate": float(snap.spot_rate_used) if snap.spot_rate_used is not None else None,
                    "realized_quote": float(realized.quote),
                    "latent_quote": float(latent.quote),
                    "total_quote": float(snap.totals.quote),
                    "realized_base": float(realized.base),
                    "latent_base": float(latent.base),
                    "total_base": float(snap.totals.base),
                    "n_realized": len(snap.realized),
                    "n_latent": len(snap.latent),
                    "n_unpriced": len(snap.unpriced),
                }
            )

        columns = [
            "as_of", "spot_rate",
            "realized_quote", "latent_quote", "total_quote",
            "realized_base", "latent_base", "total_base",
            "n_realized", "n_latent", "n_unpriced",
        ]
        return pd.DataFrame.from_records(records, columns=columns).set_index("as_of")
