"""
Venue adapter contract.

Every venue is one ``VenueAdapter`` subclass: a thin wire-translation shim
that owns its venue client and its injected request governor. Behaviour
that is identical across venues (aggregation, batch buy, precision caching,
sell-size policy, the sell loop) lives here once.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Collection, Optional

from ..config.defaults import DefaultConfig, get_default_config
from ..errors import StrategyNotImplemented, VenueError
from ..governor import RequestGovernor
from ..logging.config import get_venue_logger, log_order_event
from ..models.book import BookLevel, Call, call_index
from ..models.market import ExchangeInfo, Market, Permission, Precision, Stats
from ..models.order import Order, OrderSide, OrderType, by_side
from ..models.strategy import Strategy
from ..persistence import CallStore
from ..selling.engine import SellEngine
from ..utils.precision import floor_to, round_to, round_to_agg
from .retry import BusinessRetryPolicy, OrderRequest, OrderVariant

RawBook = list[tuple[float, float]]


class VenueAdapter(ABC):
    """Capability set every venue exposes to the planner and sell engine."""

    info: ExchangeInfo

    supports_stop_loss: bool = False
    supports_oco: bool = False
    # Base-asset suffixes of leveraged tokens
    leveraged_suffixes: tuple[str, ...] = ()
    # Assets a "hold" policy never sells any of
    held_whole: tuple[str, ...] = ()
    # Open buys are matched on price and size rather than price alone
    match_size: bool = False
    # Transient network errors are retried with a fixed delay
    retries_transient: bool = False

    def __init__(
        self,
        governor: RequestGovernor,
        config: Optional[DefaultConfig] = None,
        call_store: Optional[CallStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.governor = governor
        self.config = config or get_default_config()
        self.call_store = call_store
        self.clock = clock
        self.retry_policy = BusinessRetryPolicy()
        self.logger = get_venue_logger(__name__, venue=self.info.code)
        self._markets: Optional[list[Market]] = None
        self._precisions: dict[str, Precision] = {}
        self._precisions_loaded_at: Optional[float] = None

    @property
    def code(self) -> str:
        return self.info.code

    @property
    def supported_strategies(self) -> frozenset:
        strategies = {Strategy.STANDARD, Strategy.TRAILING}
        if self.supports_stop_loss:
            strategies |= {Strategy.TRAILING_STOP_LOSS, Strategy.TRAILING_STOP_LOSS_QUICK}
        if self.supports_oco or self.supports_stop_loss:
            strategies.add(Strategy.STOP_LOSS)
        return frozenset(strategies)

    # -- wire primitives, implemented per venue ---------------------------

    @abstractmethod
    def get_client(self, permission: Permission) -> Any:
        """Venue client with the credential scope ``permission`` requires."""

    @abstractmethod
    def _fetch_markets(self) -> list[Market]:
        """Every tradable market."""

    @abstractmethod
    def _fetch_precisions(self) -> dict[str, Precision]:
        """Precision and limits of every market, keyed by market name."""

    @abstractmethod
    def get_book(self, market: str, side: str) -> RawBook:
        """Raw (price, size) levels of one side of the book, best first."""

    @abstractmethod
    def get_ticker(self, market: str) -> float:
        """Last traded price, rounded to price precision."""

    @abstractmethod
    def get_24h(self, market: str) -> Stats:
        """24h high/low/volume."""

    @abstractmethod
    def get_opened(self, market: Optional[str] = None) -> list[Order]:
        """Open orders, for one market or the whole account."""

    @abstractmethod
    def get_closed(
        self,
        markets: Optional[Collection[str]] = None,
        since: Optional[datetime] = None,
    ) -> list[Order]:
        """Filled orders since ``since``, for the given markets or the whole account."""

    @abstractmethod
    def _submit(self, request: OrderRequest) -> str:
        """Send one order request, returning the venue order id."""

    @abstractmethod
    def cancel_order(self, order: Order) -> None:
        """Cancel one open order."""

    # -- markets and precision --------------------------------------------

    def get_markets(self, cached: bool = True) -> list[Market]:
        if self._markets is None or not cached:
            self._markets = self._fetch_markets()
        return self._markets

    def get_market(self, name: str) -> Market:
        for market in self.get_markets():
            if market.name == name:
                return market
        for market in self.get_markets(cached=False):
            if market.name == name:
                return market
        raise VenueError(f"market {name} does not exist", venue=self.code, market=name)

    def format_market(self, base: str, quote: str) -> str:
        return f"{base.upper()}/{quote.upper()}"

    def _precision(self, market: str) -> Precision:
        refresh = self.config.sell.precision_refresh_minutes * 60
        now = self.clock()
        stale = (
            self._precisions_loaded_at is None
            or now - self._precisions_loaded_at > refresh
        )
        if stale or market not in self._precisions:
            self._precisions = self._fetch_precisions()
            self._precisions_loaded_at = now
        try:
            return self._precisions[market]
        except KeyError:
            raise VenueError(
                f"precision for market {market} not found",
                venue=self.code,
                market=market,
            ) from None

    def get_precision(self, market: str) -> Precision:
        return self._precision(market)

    def get_price_precision(self, market: str) -> int:
        return self._precision(market).price

    def get_size_precision(self, market: str) -> int:
        return self._precision(market).size

    def get_min_notional(self, market: str) -> float:
        return self._precision(market).min_notional

    # -- shared behaviour -------------------------------------------------

    def aggregate(self, raw_book: RawBook, market: str, agg: float) -> list[BookLevel]:
        """
        Merge raw levels into buckets of width ``agg``.

        Levels whose rounded prices coincide are summed, so the result never
        holds two levels at one price. Sorted by price, highest first.
        """
        price_prec = self.get_price_precision(market)
        size_prec = self.get_size_precision(market)
        merged: dict[float, float] = {}
        for price, size in raw_book:
            bucket = round_to(round_to_agg(price, agg), price_prec)
            merged[bucket] = merged.get(bucket, 0.0) + size
        return [
            BookLevel(market=market, price=price, size=round_to(size, size_prec))
            for price, size in sorted(merged.items(), reverse=True)
        ]

    def is_leveraged_token(self, market: str) -> bool:
        base = self.get_market(market).base.upper()
        return any(
            base.endswith(suffix) and len(base) > len(suffix)
            for suffix in self.leveraged_suffixes
        )

    def has_open_algo_order(self, market: str) -> bool:
        """True when a stop or OCO order is open on ``market``."""
        return any(order.is_stop for order in self.get_opened(market))

    def get_max_sell_size(
        self,
        market: str,
        size: float,
        hold: Collection[str] = (),
        earn: Collection[str] = (),
        mult: float = 1.0,
    ) -> float:
        """
        Quantity of a filled buy that may be sold.

        A held market sells only a fraction of the fill (none at all for
        assets in ``held_whole``); an earning market sells just enough to
        recover its cost at ``mult``; anything else sells the whole fill.
        """
        info = self.get_market(market)
        prec = self.get_size_precision(market)
        if market in hold or info.base in hold:
            if info.base in self.held_whole:
                return 0.0
            return round_to(size * self.config.planner.hold_fraction, prec)
        if (market in earn or info.base in earn) and mult > 0:
            return floor_to(size / mult, prec)
        return size

    def submit(self, request: OrderRequest) -> str:
        """Submit through the business-error retry policy."""
        precision = self.get_precision(request.market)
        try:
            order_id, accepted = self.retry_policy.run(request, self._submit, precision)
        except VenueError as e:
            raise e.with_context(**request.describe())
        log_order_event(
            self.logger,
            "placed",
            market=accepted.market,
            side=accepted.side.value,
            size=accepted.size,
            price=accepted.price,
            order_id=order_id,
            context={"variant": accepted.variant.value, "stop_price": accepted.stop_price},
        )
        return order_id

    def place_order(
        self,
        side: OrderSide,
        market: str,
        size: float,
        price: float = 0.0,
        kind: OrderType = OrderType.LIMIT,
        client_id: Optional[str] = None,
    ) -> str:
        return self.submit(OrderRequest(
            variant=OrderVariant.ORDER,
            side=side,
            market=market,
            size=size,
            price=price if kind == OrderType.LIMIT else 0.0,
            kind=kind,
            client_id=client_id,
        ))

    def place_stop_loss(
        self,
        market: str,
        size: float,
        stop_price: float,
        kind: OrderType = OrderType.MARKET,
        client_id: Optional[str] = None,
    ) -> str:
        if not self.supports_stop_loss:
            raise StrategyNotImplemented(
                f"{self.info.name} does not support stop-loss orders",
                venue=self.code,
            )
        return self.submit(OrderRequest(
            variant=OrderVariant.STOP_LOSS,
            side=OrderSide.SELL,
            market=market,
            size=size,
            price=stop_price if kind == OrderType.LIMIT else 0.0,
            kind=kind,
            stop_price=stop_price,
            client_id=client_id,
        ))

    def place_oco(
        self,
        market: str,
        size: float,
        price: float,
        stop_price: float,
        client_id: Optional[str] = None,
    ) -> str:
        """
        Target limit plus stop. Venues without OCO get the target leg only;
        the stop leg is then enforced by the sell engine.
        """
        variant = OrderVariant.OCO if self.supports_oco else OrderVariant.ORDER
        return self.submit(OrderRequest(
            variant=variant,
            side=OrderSide.SELL,
            market=market,
            size=size,
            price=price,
            kind=OrderType.LIMIT,
            stop_price=stop_price if self.supports_oco else None,
            client_id=client_id,
        ))

    def cancel(self, market: str, side: OrderSide) -> int:
        """Cancel every open order on one side of a market."""
        cancelled = 0
        for order in by_side(self.get_opened(market), side):
            self.cancel_order(order)
            log_order_event(self.logger, "cancelled", market, side.value,
                            order.size, order.price, order_id=order.id)
            cancelled += 1
        return cancelled

    def buy(
        self,
        market: str,
        calls: list[Call],
        kind: OrderType = OrderType.LIMIT,
        deviation: float = 1.0,
    ) -> list[str]:
        """
        Replace the open buys of ``market`` with ``calls``.

        Open buys that exactly match a call (price, and size where the venue
        distinguishes it) are left alone and the call is not re-placed; every
        other open buy is cancelled before the remaining calls are placed.

        Returns:
            Ids of the orders placed
        """
        prec = self.get_price_precision(market)
        if kind == OrderType.LIMIT:
            for call in calls:
                if call.skip or call.limit is not None:
                    continue
                call.deviate(deviation, prec)

        for order in by_side(self.get_opened(market), OrderSide.BUY):
            i = call_index(calls, order.price, order.size if self.match_size else None)
            if i >= 0 and kind == OrderType.LIMIT:
                calls[i].ignore("already open")
                continue
            self.cancel_order(order)
            log_order_event(self.logger, "cancelled", market, "buy",
                            order.size, order.price, order_id=order.id)

        placed = []
        for call in calls:
            if call.skip:
                continue
            reason = call.corrupt(kind)
            if reason:
                call.ignore(reason)
                log_order_event(self.logger, "skipped", market, "buy",
                                call.size, call.price, context={"reason": reason})
                continue
            order_id = self.place_order(
                OrderSide.BUY,
                market,
                call.size,
                call.effective_price,
                kind,
            )
            if self.call_store is not None and (call.has_stop or call.has_target):
                self.call_store.save(order_id, call)
            placed.append(order_id)
        return placed

    def run_sell_loop(self, strategy: Strategy, options: Any, notifier: Any = None) -> None:
        """
        Run the sell strategy engine forever.

        Only returns by raising a setup-time error: an unsupported strategy
        or rejected credentials.
        """
        if strategy not in self.supported_strategies:
            raise StrategyNotImplemented(
                f"strategy {strategy.value} is not implemented on {self.info.name}",
                strategy=strategy.value,
                venue=self.code,
            )
        engine = SellEngine(self, strategy, options, notifier)
        engine.run_forever()
