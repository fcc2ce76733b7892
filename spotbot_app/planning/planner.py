"""
Buy planner.

Converts resolved support levels into sized, validated calls and hands
them to the venue's batch ``buy``. A corrupt or undersized level is skipped
and logged; planning a market only fails when the support search fails.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

from ..aggregation import AggregationResolver, SupportFilter
from ..config.defaults import PlannerParams
from ..errors import AggregationExhausted, OrderBookTooThin
from ..logging.config import get_planner_logger, log_order_event
from ..models.book import BookLevel, BookSide, Call, live_calls
from ..models.order import OrderSide, by_side, index_by_price
from ..utils.precision import ceil_to, multiply, round_to
from .params import BuyParams

if TYPE_CHECKING:
    from ..venues.base import VenueAdapter


def distance_filter(levels: Iterable[BookLevel], dist: float) -> list[BookLevel]:
    """
    Keep levels more than ``dist`` percent apart.

    Walks from the highest price down, keeping a level when its distance to
    the last kept level, relative to the lower of the two, exceeds ``dist``.
    """
    ordered = sorted(levels, key=lambda level: level.price, reverse=True)
    if dist <= 0:
        return ordered
    kept: list[BookLevel] = []
    for level in ordered:
        if not kept:
            kept.append(level)
            continue
        last = kept[-1]
        if level.price <= 0:
            continue
        if (last.price - level.price) / level.price * 100 > dist:
            kept.append(level)
    return kept


def select_levels(levels: Iterable[BookLevel], top: int, dist: float) -> list[BookLevel]:
    """Distance filter, keep the ``top`` largest, return them highest price first."""
    spaced = distance_filter(levels, dist)
    largest = sorted(spaced, key=lambda level: level.size, reverse=True)[:top]
    return sorted(largest, key=lambda level: level.price, reverse=True)


@dataclass
class Plan:
    """Calls planned for one market."""
    market: str
    calls: list[Call] = field(default_factory=list)
    agg: float = 0.0
    dip: float = 0.0
    skipped: str = ""               # Why the market was left alone
    placed: list[str] = field(default_factory=list)

    @property
    def live(self) -> list[Call]:
        return live_calls(self.calls)


class BuyPlanner:
    """Plans and submits support-level buys for one venue."""

    def __init__(
        self,
        venue: "VenueAdapter",
        params: Optional[PlannerParams] = None,
        resolver: Optional[AggregationResolver] = None,
    ):
        self.venue = venue
        self.params = params or venue.config.planner
        self.resolver = resolver or AggregationResolver(venue)
        self.logger = get_planner_logger(__name__).bind(venue=venue.code)

    # -- market selection ---------------------------------------------------

    def enumerate_markets(self, markets: list[str], quote: Optional[str] = None) -> list[str]:
        """Expand ``["all"]`` into every market quoted in ``quote``."""
        if [m.lower() for m in markets] != ["all"]:
            return list(markets)
        if not quote:
            raise ValueError("missing argument: quote")
        return [m.name for m in self.venue.get_markets() if m.quote.upper() == quote.upper()]

    def unsold_cap(self, market: str, buy: BuyParams, prec: int) -> tuple[float, int]:
        """
        Cap on the buy price, and the number of open sells.

        A filled buy whose take-profit sell is still open caps the price at
        its fill price, so no new buy is placed above an unsold one.
        """
        opened = self.venue.get_opened(market)
        open_sells = by_side(opened, OrderSide.SELL)
        cap = buy.max
        for fill in by_side(self.venue.get_closed([market]), OrderSide.BUY):
            if index_by_price(open_sells, multiply(fill.price, buy.mult, prec)) > -1:
                if cap == 0 or cap >= fill.price:
                    cap = fill.price
        return cap, len(open_sells)

    # -- sizing ---------------------------------------------------------------

    def size_calls(
        self,
        market: str,
        levels: list[BookLevel],
        buy: BuyParams,
        open_sells: int = 0,
    ) -> list[Call]:
        """Turn levels into calls: size, deviate, enforce minimums, drop corrupt ones."""
        venue = self.venue
        price_prec = venue.get_price_precision(market)
        size_prec = venue.get_size_precision(market)
        min_notional = venue.get_min_notional(market)
        base = venue.get_market(market).base.upper()
        held = market in buy.hold or base in buy.hold

        calls = []
        for level in levels:
            size = buy.size
            if buy.price > 0 and level.price > 0:
                size = round_to(buy.price / level.price, size_prec)
            if buy.dca and open_sells:
                size = round_to(size * (1 + self.params.dca_step * open_sells), size_prec)

            call = Call.from_level(level, size)
            call.deviate(buy.devn, price_prec)

            limit = call.effective_price
            if min_notional > 0 and limit > 0 and call.size > 0 and call.size * limit < min_notional:
                raised = ceil_to(min_notional / limit, size_prec)
                while raised * limit < min_notional:
                    raised = round_to(raised + 10 ** -size_prec, size_prec)
                self.logger.debug("Raised size to minimum notional", market=market,
                                  price=limit, size=call.size, raised=raised,
                                  min_notional=min_notional)
                call.size = raised

            units = self.params.reserve_min_size.get(base, 0.0)
            if held and units and call.size < units:
                call.ignore(f"size is too low, buy at least {units} units")
            else:
                reason = call.corrupt(buy.kind)
                if reason:
                    call.ignore(reason)
            if call.skip:
                log_order_event(self.logger, "skipped", market, OrderSide.BUY.value,
                                call.size, call.price, context={"reason": call.reason})
            calls.append(call)
        return calls

    # -- planning -------------------------------------------------------------

    def plan(self, market: str, buy: BuyParams) -> Plan:
        """
        Plan the buys of one market.

        Raises:
            AggregationExhausted: No usable supports were found
        """
        venue = self.venue
        if venue.has_open_algo_order(market):
            return self._skip(market, "at least one algo order is open on this market")
        if venue.is_leveraged_token(market):
            return self._skip(market, "leveraged token")

        ticker = venue.get_ticker(market)
        stats = venue.get_24h(market)
        if buy.volume > 0 and 0 < stats.btc_volume < buy.volume:
            return self._skip(market, f"volume {stats.btc_volume:.2f} is lower than {buy.volume:.2f} BTC")
        prec = venue.get_price_precision(market)
        avg = stats.avg(prec)
        cap, open_sells = self.unsold_cap(market, buy, prec)

        raw_book = venue.get_book(market, BookSide.BIDS.value)
        agg, dip = buy.agg, buy.dip
        if agg == 0:
            resolution = self.resolver.resolve_book(
                raw_book, market, ticker, avg, buy.dip, buy.pip, buy.top,
                max_price=cap, min_price=buy.min, strict=buy.strict,
            )
            agg, dip = resolution.agg, resolution.dip

        flt = SupportFilter(ticker=ticker, avg=avg, dip=dip, pip=buy.pip,
                            max_price=cap, min_price=buy.min)
        levels = flt.apply(venue.aggregate(raw_book, market, agg))
        if not levels:
            raise OrderBookTooThin(
                f"cannot find any supports for {market}",
                market=market, dip=dip, cnt=buy.top, agg=agg,
            )

        chosen = select_levels(levels, buy.top, buy.dist)
        calls = self.size_calls(market, chosen, buy, open_sells=open_sells)
        self.logger.info("Planned buys", market=market, agg=agg, dip=dip,
                         calls=len(calls), live=len(live_calls(calls)))
        return Plan(market=market, calls=calls, agg=agg, dip=dip)

    def _skip(self, market: str, reason: str) -> Plan:
        self.logger.info("Ignoring market", market=market, reason=reason)
        return Plan(market=market, skipped=reason)

    def submit(self, plan: Plan, buy: BuyParams) -> list[str]:
        """Replace the market's open buys with the plan's calls."""
        if plan.skipped:
            return []
        plan.placed = self.venue.buy(plan.market, plan.calls, buy.kind, buy.devn)
        return plan.placed

    def run(self, markets: list[str], buy: BuyParams, test: bool = False) -> list[Plan]:
        """
        Plan (and unless ``test``, submit) every market.

        A batch of several markets logs a market's support-search failure
        and moves on; a single market lets it propagate.
        """
        enumerable = self.enumerate_markets(markets, buy.quote)
        batch = len(enumerable) > 1
        plans = []
        for market in enumerable:
            try:
                plan = self.plan(market, buy)
            except AggregationExhausted as e:
                if not batch:
                    raise
                self.logger.error("Cannot find supports", market=market,
                                  error=str(e), error_type=type(e).__name__)
                continue
            if not test:
                self.submit(plan, buy)
            plans.append(plan)
        return plans
