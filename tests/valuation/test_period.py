from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from treasury_mtm.market_data.schemas import (
    ForwardCurvePoint,
    ForwardCurveSnapshot,
    SpotRateObservation,
)
from treasury_mtm.positions.enums import Instrument, Side
from treasury_mtm.positions.schemas import HedgePosition
from treasury_mtm.valuation.snapshot import PortfolioSnapshotAggregator

SPOTS = [
    SpotRateObservation(date=date(2024, 1, 10), rate=Decimal("1000")),
    SpotRateObservation(date=date(2024, 2, 1), rate=Decimal("1020")),
]
CURVES = [
    ForwardCurveSnapshot(
        observed_on=date(2024, 1, 10),
        points=[
            ForwardCurvePoint(maturity=date(2024, 2, 29), rate=Decimal("1050")),
            ForwardCurvePoint(maturity=date(2024, 3, 29), rate=Decimal("1100")),
        ],
    ),
    ForwardCurveSnapshot(
        observed_on=date(2024, 2, 1),
        points=[
            ForwardCurvePoint(maturity=date(2024, 2, 29), rate=Decimal("1060")),
            ForwardCurvePoint(maturity=date(2024, 3, 29), rate=Decimal("1090")),
        ],
    ),
]
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
        instrument=Instrument.NDF,
        side=Side.SOLD,
        notional_usd=Decimal("1000"),
        start_date=date(2024, 1, 10),
        maturity_date=date(2024, 2, 29),
        agreed_rate=Decimal("1070"),
    ),
]

AGG = PortfolioSnapshotAggregator()


def _period(start, end):
    return AGG.period(start, end, BOOK, CURVES, SPOTS)


def test_period_is_difference_of_snapshots():
    result = _period(date(2024, 1, 16), date(2024, 1, 25))

    # opening snapshot is taken at the close of the day before the start
    assert result.start_snapshot.as_of == date(2024, 1, 15)
    assert result.start_snapshot.totals.quote == Decimal("-1980000")
    assert result.end_snapshot.totals.quote == Decimal("2020000")
    assert result.pnl.quote == Decimal("4000000")
    assert result.pnl.base == Decimal("4000")


def test_period_from_before_first_spot():
    result = _period(date(2024, 1, 10), date(2024, 1, 25))
    # nothing can be valued on 2024-01-09
    assert result.start_snapshot.is_empty
    assert result.pnl == result.end_snapshot.totals


def test_period_is_additive():
    whole = _period("2024-01-12", "2024-03-05")
    first = _period("2024-01-12", "2024-02-05")
    second = _period("2024-02-06", "2024-03-05")

    assert first.pnl.quote + second.pnl.quote == whole.pnl.quote
    assert float(first.pnl.base + second.pnl.base) == pytest.approx(float(whole.pnl.base))


def test_single_day_period():
    result = _period("2024-01-20", "2024-01-20")
    assert result.start_snapshot.as_of == date(2024, 1, 19)
    assert result.end_snapshot.as_of == date(2024, 1, 20)


def test_period_rejects_inverted_or_bad_bounds():
    with pytest.raises(ValueError):
        _period(date(2024, 2, 1), date(2024, 1, 1))
    with pytest.raises(ValueError):
        _period("garbage", date(2024, 1, 1))
