from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from treasury_mtm.curves.implied_rates import CurveComparisonRow, ImpliedRatePoint
from treasury_mtm.formulas.schemas import CustomFieldDefinition, FieldResolution
from treasury_mtm.positions.schemas import HedgePosition
from treasury_mtm.valuation.schemas import BlotterRow, PortfolioSnapshot, PricedPosition

POSITION_COLUMNS = [
    "id",
    "instrument",
    "side",
    "notional_usd",
    "start_date",
    "maturity_date",
    "agreed_rate",
    "close_date",
    "close_rate",
    "linked_external_id",
]
VALUATION_COLUMNS = ["state", "rate", "spot_rate", "pnl_quote", "pnl_base"]


def _num(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def _position_record(pos: HedgePosition) -> Dict[str, Any]:
    return {
        "id": pos.id,
        "instrument": pos.instrument.value,
        "side": pos.side.value,
        "notional_usd": _num(pos.notional_usd),
        "start_date": pos.start_date,
        "maturity_date": pos.maturity_date,
        "agreed_rate": _num(pos.agreed_rate),
        "close_date": pos.close_date,
        "close_rate": _num(pos.close_rate),
        "linked_external_id": pos.linked_external_id,
    }


def _custom_record(
    resolution: FieldResolution, field_defs: Sequence[CustomFieldDefinition]
) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in field_defs:
        value = resolution.values.get(f.id)
        out[f.name] = float(value) if isinstance(value, Decimal) else value
    return out


def _frame(records: List[Dict[str, Any]], field_defs: Sequence[CustomFieldDefinition]) -> pd.DataFrame:
    columns = POSITION_COLUMNS + VALUATION_COLUMNS + [f.name for f in field_defs]
    return pd.DataFrame.from_records(records, columns=columns)


def priced_positions_frame(
    priced: Iterable[PricedPosition],
    field_defs: Iterable[CustomFieldDefinition] = (),
) -> pd.DataFrame:
    """One row per priced position with a stable column order."""
    field_defs = list(field_defs)
    records = []
    for p in priced:
        rec = _position_record(p.position)
        rec.update(
            {
                "state": p.state.value,
                "rate": _num(p.rate),
                "spot_rate": _num(p.spot_rate),
                "pnl_quote": _num(p.pnl_quote),
                "pnl_base": _num(p.pnl_base),
            }
        )
        rec.update(_custom_record(p.custom_fields, field_defs))
        records.append(rec)
    return _frame(records, field_defs)


def snapshot_frames(
    snapshot: PortfolioSnapshot,
    field_defs: Iterable[CustomFieldDefinition] = (),
) -> Dict[str, pd.DataFrame]:
    """Realized and latent tables of a snapshot, as the export layer consumes them."""
    field_defs = list(field_defs)
    return {
        "realized": priced_positions_frame(snapshot.realized, field_defs),
        "latent": priced_positions_frame(snapshot.latent, field_defs),
    }


def snapshot_summary(snapshot: PortfolioSnapshot) -> Dict[str, Any]:
    """Flat totals of a snapshot (Decimal amounts preserved)."""
    return {
        "as_of": snapshot.as_of,
        "spot_rate_used": snapshot.spot_rate_used,
        "realized_quote": snapshot.realized_totals.quote,
        "realized_base": snapshot.realized_totals.base,
        "latent_quote": snapshot.latent_totals.quote,
        "latent_base": snapshot.latent_totals.base,
        "total_quote": snapshot.totals.quote,
        "total_base": snapshot.totals.base,
        "n_realized": len(snapshot.realized),
        "n_latent": len(snapshot.latent),
        "n_unpriced": len(snapshot.unpriced),
    }


def blotter_frame(
    rows: Iterable[BlotterRow],
    field_defs: Iterable[CustomFieldDefinition] = (),
) -> pd.DataFrame:
    """Operations table: every position, priced or not, plus its gap reason."""
    field_defs = list(field_defs)
    records = []
    for row in rows:
        rec = _position_record(row.position)
        rec.update(
            {
                "state": row.state.value,
                "rate": _num(row.rate),
                "spot_rate": _num(row.priced.spot_rate) if row.priced else None,
                "pnl_quote": _num(row.pnl_quote),
                "pnl_base": _num(row.pnl_base),
                "gap": row.gap.value if row.gap else None,
            }
        )
        rec.update(_custom_record(row.custom_fields, field_defs))
        records.append(rec)

    columns = POSITION_COLUMNS + VALUATION_COLUMNS + ["gap"] + [f.name for f in field_defs]
    return pd.DataFrame.from_records(records, columns=columns)


def implied_curve_frame(points: Iterable[ImpliedRatePoint]) -> pd.DataFrame:
    return pd.DataFrame.from_records(
        [
            {
                "maturity": p.maturity,
                "rate": float(p.rate),
                "days": p.days,
                "implied_rate": _num(p.implied_rate),
            }
            for p in points
        ],
        columns=["maturity", "rate", "days", "implied_rate"],
    )


def curve_comparison_frame(rows: Iterable[CurveComparisonRow]) -> pd.DataFrame:
    columns = [
        "maturity",
        "rate",
        "implied_rate",
        "comparison_maturity",
        "comparison_rate",
        "comparison_implied_rate",
        "implied_rate_diff",
    ]
    records = []
    for r in rows:
        rec = r.model_dump()
        for k in ("rate", "implied_rate", "comparison_rate", "comparison_implied_rate", "implied_rate_diff"):
            rec[k] = _num(rec[k])
        records.append(rec)
    return pd.DataFrame.from_records(records, columns=columns)
