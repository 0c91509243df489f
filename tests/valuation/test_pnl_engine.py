from __future__ import annotations

from datetime import date
from decimal import Decimal

from treasury_mtm.market_data.resolver import MarketDataView
from treasury_mtm.market_data.schemas import (
    ForwardCurvePoint,
    ForwardCurveSnapshot,
    SpotRateObservation,
)
from treasury_mtm.positions.enums import Instrument, LifecycleState, Side
from treasury_mtm.positions.schemas import HedgePosition
from treasury_mtm.valuation.pnl import PnLEngine
from treasury_mtm.valuation.schemas import PricedPosition, PricingGap, UnpricedPosition


def _curve(observed: date, *points) -> ForwardCurveSnapshot:
    return ForwardCurveSnapshot(
        observed_on=observed,
        points=[ForwardCurvePoint(maturity=m, rate=Decimal(r)) for m, r in points],
    )


SPOTS = [
    SpotRateObservation(date=date(2024, 1, 10), rate=Decimal("1000")),
    SpotRateObservation(date=date(2024, 2, 1), rate=Decimal("1020")),
]
CURVES = [
    _curve(date(2024, 1, 10), (date(2024, 2, 29), "1050"), (date(2024, 3, 29), "1100")),
    _curve(date(2024, 2, 1), (date(2024, 2, 29), "1060"), (date(2024, 3, 29), "1090")),
]
MARKET = MarketDataView(SPOTS, CURVES)
ENGINE = PnLEngine()


def _pos(**kw) -> HedgePosition:
    base = dict(
        id="op-1",
        instrument=Instrument.ROFEX,
        side=Side.SOLD,
        notional_usd=Decimal("100000"),
        start_date=date(2024, 1, 10),
        maturity_date=date(2024, 3, 29),
        agreed_rate=Decimal("1080"),
    )
    base.update(kw)
    return HedgePosition(**base)


def test_realized_with_booked_close_rate():
    pos = _pos(close_date=date(2024, 1, 20), close_rate=Decimal("1060"))
    out = ENGINE.price_realized(pos, MARKET)

    assert isinstance(out, PricedPosition)
    assert out.state is LifecycleState.REALIZED
    assert out.rate == Decimal("1060")
    assert out.spot_rate == Decimal("1000")
    assert out.pnl_quote == Decimal("2000000")
    assert out.pnl_base == Decimal("2000")


def test_realized_at_maturity_reads_curve_of_closing_date():
    pos = _pos(maturity_date=date(2024, 2, 29), agreed_rate=Decimal("1070"), notional_usd=Decimal("1000"))
    out = ENGINE.price_realized(pos, MARKET)

    # curve observed 2024-02-01 is the one in force on 2024-02-29
    assert out.rate == Decimal("1060")
    assert out.spot_rate == Decimal("1020")
    assert out.pnl_quote == Decimal("10000")
    assert out.pnl_base == Decimal("10000") / Decimal("1020")


def test_realized_without_spot_on_closing_date():
    pos = _pos(
        start_date=date(2024, 1, 2),
        close_date=date(2024, 1, 5),
        close_rate=Decimal("990"),
    )
    out = ENGINE.price_realized(pos, MARKET)
    assert isinstance(out, UnpricedPosition)
    assert out.reason is PricingGap.MISSING_SPOT


def test_realized_without_close_rate_or_curve():
    market = MarketDataView(SPOTS, [])
    out = ENGINE.price_realized(_pos(maturity_date=date(2024, 2, 29)), market)
    assert out.reason is PricingGap.MISSING_CURVE


def test_latent_mark_and_sign():
    spot = MARKET.spot_rate(date(2024, 1, 15))
    curve = MARKET.curve(date(2024, 1, 15))

    sold = ENGINE.price_latent(_pos(), spot, curve)
    bought = ENGINE.price_latent(_pos(side=Side.BOUGHT), spot, curve)

    assert sold.rate == Decimal("1100")
    assert sold.pnl_quote == Decimal("-2000000")
    assert bought.pnl_quote == Decimal("2000000")
    assert bought.pnl_base == Decimal("2000")


def test_latent_between_curve_points():
    spot = MARKET.spot_rate(date(2024, 1, 15))
    curve = MARKET.curve(date(2024, 1, 15))
    out = ENGINE.price_latent(_pos(maturity_date=date(2024, 3, 15)), spot, curve)
    assert Decimal("1050") < out.rate < Decimal("1100")


def test_latent_gaps():
    curve = MARKET.curve(date(2024, 1, 15))
    assert ENGINE.price_latent(_pos(), None, curve).reason is PricingGap.MISSING_SPOT
    assert ENGINE.price_latent(_pos(), Decimal("1000"), None).reason is PricingGap.MISSING_CURVE

    beyond = _pos(maturity_date=date(2024, 5, 31))
    out = ENGINE.price_latent(beyond, Decimal("1000"), curve)
    assert out.reason is PricingGap.OUTSIDE_CURVE_HORIZON


def test_latent_all_shares_one_spot_and_curve():
    positions = [_pos(id="a"), _pos(id="b", maturity_date=date(2024, 2, 29))]
    outs = ENGINE.price_latent_all(positions, date(2024, 1, 15), MARKET)
    assert [o.position.id for o in outs] == ["a", "b"]
    assert {o.spot_rate for o in outs} == {Decimal("1000")}

    no_curve = ENGINE.price_latent_all(positions, date(2024, 1, 15), MarketDataView(SPOTS, []))
    assert all(o.reason is PricingGap.MISSING_CURVE for o in no_curve)
