from __future__ import annotations

from datetime import date
from decimal import Decimal

from treasury_mtm.curves.implied_rates import compare_implied_curves, implied_rate_curve
from treasury_mtm.formulas.schemas import CustomFieldDefinition, FieldKind
from treasury_mtm.market_data.schemas import (
    ForwardCurvePoint,
    ForwardCurveSnapshot,
    SpotRateObservation,
)
from treasury_mtm.positions.enums import Instrument, Side
from treasury_mtm.positions.schemas import HedgePosition
from treasury_mtm.valuation.export import (
    POSITION_COLUMNS,
    VALUATION_COLUMNS,
    blotter_frame,
    curve_comparison_frame,
    implied_curve_frame,
    snapshot_frames,
    snapshot_summary,
)
from treasury_mtm.valuation.snapshot import PortfolioSnapshotAggregator

SPOTS = [SpotRateObservation(date=date(2024, 1, 10), rate=Decimal("1000"))]
CURVE = ForwardCurveSnapshot(
    observed_on=date(2024, 1, 10),
    points=[
        ForwardCurvePoint(maturity=date(2024, 2, 29), rate=Decimal("1050")),
        ForwardCurvePoint(maturity=date(2024, 3, 29), rate=Decimal("1100")),
    ],
)
BOOK = [
    HedgePosition(
        id="R",
        instrument=Instrument.ROFEX,
        side=Side.SOLD,
        notional_usd=Decimal("100000"),
        start_date=date(2024, 1, 10),
        maturity_date=date(2024, 3, 29),
        agreed_rate=Decimal("1080"),
        close_date=date(2024, 1, 20),
        close_rate=Decimal("1060"),
    ),
    HedgePosition(
        id="L",
        instrument=Instrument.NDF_CLIENT,
        side=Side.BOUGHT,
        notional_usd=Decimal("1000"),
        start_date=date(2024, 1, 10),
        maturity_date=date(2024, 2, 29),
        agreed_rate=Decimal("1040"),
    ),
]
DEFS = [
    CustomFieldDefinition(id="c1", name="Pesos", kind=FieldKind.CALCULATED, formula="{Monto USD} * {TC Arbitraje}")
]

AGG = PortfolioSnapshotAggregator()


def test_snapshot_frames():
    snap = AGG.snapshot(date(2024, 1, 25), BOOK, [CURVE], SPOTS, DEFS)
    frames = snapshot_frames(snap, DEFS)

    realized, latent = frames["realized"], frames["latent"]
    assert list(realized.columns) == POSITION_COLUMNS + VALUATION_COLUMNS + ["Pesos"]
    assert realized["id"].tolist() == ["R"]
    assert realized.loc[0, "pnl_quote"] == 2_000_000.0
    assert realized.loc[0, "Pesos"] == 108_000_000.0

    assert latent.loc[0, "instrument"] == "NDF Cliente"
    assert latent.loc[0, "rate"] == 1050.0
    assert latent.loc[0, "pnl_quote"] == 10_000.0


def test_empty_snapshot_frames_keep_columns():
    snap = AGG.snapshot("bad", BOOK, [CURVE], SPOTS)
    frames = snapshot_frames(snap)
    assert frames["realized"].empty
    assert list(frames["latent"].columns) == POSITION_COLUMNS + VALUATION_COLUMNS


def test_snapshot_summary():
    snap = AGG.snapshot(date(2024, 1, 25), BOOK, [CURVE], SPOTS)
    summary = snapshot_summary(snap)
    assert summary["as_of"] == date(2024, 1, 25)
    assert summary["total_quote"] == Decimal("2010000")
    assert summary["n_realized"] == 1
    assert summary["n_latent"] == 1
    assert summary["n_unpriced"] == 0


def test_blotter_frame_marks_gaps():
    beyond = BOOK[1].model_copy(update={"id": "H", "maturity_date": date(2024, 5, 31)})
    rows = AGG.price_all(date(2024, 1, 15), BOOK + [beyond], [CURVE], SPOTS)
    df = blotter_frame(rows)

    assert df["id"].tolist() == ["R", "L", "H"]
    assert df.loc[2, "gap"] == "OUTSIDE_CURVE_HORIZON"
    assert df["gap"].iloc[:2].isna().all()
    assert df["pnl_quote"].isna().tolist() == [False, False, True]


def test_curve_frames():
    points = implied_rate_curve(CURVE, Decimal("1000"))
    df = implied_curve_frame(points)
    assert df["days"].tolist() == [50, 79]
    assert df["rate"].tolist() == [1050.0, 1100.0]

    cmp = curve_comparison_frame(compare_implied_curves(points, None))
    assert cmp["maturity"].tolist() == [date(2024, 2, 29), date(2024, 3, 29)]
    assert cmp["implied_rate_diff"].isna().all()
