from __future__ import annotations

from datetime import date
from decimal import Decimal

from treasury_mtm.positions.enums import Instrument, PositionStatus, Side
from treasury_mtm.positions.filters import PositionFilter
from treasury_mtm.positions.schemas import HedgePosition

TODAY = date(2024, 3, 1)


def _pos(pid: str, **kw) -> HedgePosition:
    base = dict(
        id=pid,
        instrument=Instrument.ROFEX,
        side=Side.SOLD,
        notional_usd=Decimal("1000"),
        start_date=date(2024, 1, 1),
        maturity_date=date(2024, 4, 30),
        agreed_rate=Decimal("1000"),
    )
    base.update(kw)
    return HedgePosition(**base)


BOOK = [
    _pos("rofex-open", business_unit_id="bu1", bank_id="b1"),
    _pos("ndf-open", instrument=Instrument.NDF, business_unit_id="bu2", broker_id="k1"),
    _pos("matured", maturity_date=date(2024, 2, 1), assignment_id="a1"),
    _pos("cancelled", close_date=date(2024, 2, 15), close_rate=Decimal("1010")),
]


def _ids(positions):
    return [p.id for p in positions]


def test_empty_filter_keeps_everything():
    assert _ids(PositionFilter().apply(BOOK, today=TODAY)) == _ids(BOOK)


def test_status_active_and_expired():
    active = PositionFilter(status=PositionStatus.ACTIVE).apply(BOOK, today=TODAY)
    expired = PositionFilter(status=PositionStatus.EXPIRED).apply(BOOK, today=TODAY)
    assert _ids(active) == ["rofex-open", "ndf-open"]
    assert _ids(expired) == ["matured", "cancelled"]


def test_instrument_and_business_unit():
    f = PositionFilter(instruments=[Instrument.NDF])
    assert _ids(f.apply(BOOK)) == ["ndf-open"]

    f = PositionFilter(business_unit_ids=["bu1", "bu2"])
    assert _ids(f.apply(BOOK)) == ["rofex-open", "ndf-open"]


def test_assignment_and_operator():
    assert _ids(PositionFilter(assignment_ids=["a1"]).apply(BOOK)) == ["matured"]
    assert _ids(PositionFilter(operator_ids=["broker-k1"]).apply(BOOK)) == ["ndf-open"]
    assert _ids(PositionFilter(operator_ids=["bank-b1", "broker-k1"]).apply(BOOK)) == [
        "rofex-open",
        "ndf-open",
    ]


def test_filters_combine():
    f = PositionFilter(status=PositionStatus.ACTIVE, instruments=[Instrument.ROFEX])
    assert _ids(f.apply(BOOK, today=TODAY)) == ["rofex-open"]
