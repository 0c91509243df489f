from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from treasury_mtm.curves.interpolation import DEFAULT_DAYS_IN_YEAR, interpolate_forward_rate
from treasury_mtm.market_data.resolver import MarketDataView
from treasury_mtm.market_data.schemas import ForwardCurveSnapshot
from treasury_mtm.positions.enums import LifecycleState
from treasury_mtm.positions.schemas import HedgePosition
from treasury_mtm.valuation.schemas import PricedPosition, PricingGap, UnpricedPosition

PricingOutcome = Union[PricedPosition, UnpricedPosition]


class PnLEngine:
    """Prices realized and latent hedge positions.

    Realized (closing date reached):
      - spot as-of the closing date converts to base currency
      - close rate is the booked `close_rate`, else the contract maturity
        read off the curve in force on the closing date
    Latent (open on the valuation date):
      - mark rate is the maturity read off the curve in force on the
        valuation date, anchored at that date's spot

    Missing market data yields an UnpricedPosition, never an exception.
    """

    def __init__(self, days_in_year: int = DEFAULT_DAYS_IN_YEAR):
        self.days_in_year = days_in_year

    # ------------------------------------------------------------------
    def _priced(
        self,
        position: HedgePosition,
        state: LifecycleState,
        rate: Decimal,
        spot: Decimal,
    ) -> PricedPosition:
        pnl_quote = position.signed_pnl(rate)
        return PricedPosition(
            position=position,
            state=state,
            rate=rate,
            spot_rate=spot,
            pnl_quote=pnl_quote,
            pnl_base=pnl_quote / spot,
        )

    def mark_rate(
        self,
        maturity: _dt.date,
        curve: Optional[ForwardCurveSnapshot],
        spot: Optional[Decimal],
    ) -> Optional[Decimal]:
        if curve is None or spot is None:
            return None
        return interpolate_forward_rate(maturity, curve, spot, self.days_in_year)

    # ------------------------------------------------------------------
    # Realized
    # ------------------------------------------------------------------
    def price_realized(
        self, position: HedgePosition, market: MarketDataView
    ) -> PricingOutcome:
        state = LifecycleState.REALIZED
        closing_date = position.closing_date

        spot_on_close = market.spot_rate(closing_date)
        if spot_on_close is None:
            return UnpricedPosition(position=position, state=state, reason=PricingGap.MISSING_SPOT)

        close_rate = position.close_rate
        if close_rate is None:
            curve_on_close = market.curve(closing_date)
            if curve_on_close is None:
                return UnpricedPosition(
                    position=position, state=state, reason=PricingGap.MISSING_CURVE
                )
            close_rate = self.mark_rate(position.maturity_date, curve_on_close, spot_on_close)
            if close_rate is None:
                return UnpricedPosition(
                    position=position, state=state, reason=PricingGap.OUTSIDE_CURVE_HORIZON
                )

        return self._priced(position, state, close_rate, spot_on_close)

    # ------------------------------------------------------------------
    # Latent
    # ------------------------------------------------------------------
    def price_latent(
        self,
        position: HedgePosition,
        spot: Optional[Decimal],
        curve: Optional[ForwardCurveSnapshot],
    ) -> PricingOutcome:
        """Mark one open position against the spot and curve of the valuation date."""
        state = LifecycleState.LATENT
        if spot is None:
            return UnpricedPosition(position=position, state=state, reason=PricingGap.MISSING_SPOT)
        if curve is None:
            return UnpricedPosition(position=position, state=state, reason=PricingGap.MISSING_CURVE)

        mark = self.mark_rate(position.maturity_date, curve, spot)
        if mark is None:
            return UnpricedPosition(
                position=position, state=state, reason=PricingGap.OUTSIDE_CURVE_HORIZON
            )
        return self._priced(position, state, mark, spot)

    def price_latent_all(
        self,
        positions: Iterable[HedgePosition],
        as_of: _dt.date,
        market: MarketDataView,
    ) -> List[PricingOutcome]:
        """Latent positions are valued all-or-nothing per date: one spot, one curve."""
        spot = market.spot_rate(as_of)
        curve = market.curve(as_of)
        return [self.price_latent(p, spot, curve) for p in positions]
