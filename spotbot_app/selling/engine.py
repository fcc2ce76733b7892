"""
Sell strategy engine.

Keeps the last-seen snapshots of open and filled orders for one account,
diffs each new snapshot against them, and dispatches newly filled orders to
the strategy's transition handler. Snapshots live in memory only; on start
the current state is taken as already handled.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from ..errors import (
    GovernorStateError,
    PersistenceError,
    StrategyNotImplemented,
    VenueError,
)
from ..logging.config import get_engine_logger, log_order_event
from ..models.book import Call
from ..models.order import Order, OrderSide
from ..models.strategy import Strategy
from ..utils.time import utc_now
from .notify import EventKind, Notifier
from .options import SellOptions
from .strategies import StrategyHandler, handler_for

if TYPE_CHECKING:
    from ..venues.base import VenueAdapter

# Failures that are reported and survived inside the loop
LOOP_ERRORS = (VenueError, PersistenceError, GovernorStateError)


@dataclass
class CycleReport:
    """What one poll cycle (or push update) observed."""
    filled: list[Order] = field(default_factory=list)
    cancelled: list[Order] = field(default_factory=list)
    opened: list[Order] = field(default_factory=list)
    placed: list[str] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)


@dataclass(frozen=True)
class OrderUpdate:
    """One pushed order state change."""
    order: Order
    status: str             # open, closed, canceled


def _index(orders: Iterable[Order]) -> dict[str, Order]:
    return {order.key: order for order in orders}


class SellEngine:
    """Strategy-parameterized follow-up order manager for one account."""

    def __init__(
        self,
        venue: "VenueAdapter",
        strategy: Strategy,
        options: Optional[SellOptions] = None,
        notifier: Optional[Notifier] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.venue = venue
        self.strategy = strategy
        self.options = options or SellOptions.from_params(venue.config.sell)
        self.notifier = notifier or Notifier(venue=venue.code)
        self.sleep = sleep
        self.clock = clock
        self.handler: StrategyHandler = handler_for(strategy)
        self.logger = get_engine_logger(__name__).bind(venue=venue.code, strategy=strategy.value)
        self.opened: Optional[dict[str, Order]] = None
        self.filled: Optional[dict[str, Order]] = None
        # First sighting of each known fill
        self.filled_seen: dict[str, datetime] = {}
        self.replaced: set[str] = set()

    @property
    def started(self) -> bool:
        return self.opened is not None and self.filled is not None

    # -- setup ----------------------------------------------------------------

    def start(self) -> None:
        """
        Validate the strategy and take the initial snapshots.

        Raises:
            StrategyNotImplemented: The venue has no transition table for the strategy
            VenueAuthenticationError: Credentials are missing or rejected
        """
        if self.strategy not in self.venue.supported_strategies:
            raise StrategyNotImplemented(
                f"strategy {self.strategy.value} is not implemented on {self.venue.info.name}",
                strategy=self.strategy.value,
                venue=self.venue.code,
            )
        opened = self.venue.get_opened()
        self.opened = _index(opened)
        self.filled = _index(self.venue.get_closed(self.watched_markets(opened), since=self.since()))
        now = self.clock()
        self.filled_seen = {key: now for key in self.filled}
        self.logger.info(
            "Sell engine started",
            open_orders=len(self.opened),
            filled_orders=len(self.filled),
        )
        self.notifier.notify(EventKind.INFO, "Started", f"Listening with strategy {self.strategy.value}")

    def since(self) -> datetime:
        return self.clock() - timedelta(hours=self.options.filled_window_hours)

    def watched_markets(self, opened: Iterable[Order]) -> set[str]:
        """Markets whose order history is checked for fills."""
        markets = {order.market for order in opened}
        if self.opened:
            markets |= {order.market for order in self.opened.values()}
        return markets | set(self.options.markets)

    # -- polling ----------------------------------------------------------------

    def poll_once(self) -> CycleReport:
        """Fetch fresh snapshots and act on the differences."""
        if not self.started:
            self.start()
        opened = self.venue.get_opened()
        filled = self.venue.get_closed(self.watched_markets(opened), since=self.since())
        return self.apply_snapshot(opened, filled)

    def apply_snapshot(self, opened: list[Order], filled: list[Order]) -> CycleReport:
        """Diff snapshots, dispatch new fills, then maintain open sells."""
        assert self.opened is not None and self.filled is not None
        report = CycleReport()
        current_opened = _index(opened)
        current_filled = _index(filled)

        report.opened = [o for k, o in current_opened.items() if k not in self.opened]
        report.filled = [o for k, o in current_filled.items() if k not in self.filled]
        report.cancelled = [
            o for k, o in self.opened.items()
            if k not in current_opened and k not in current_filled and k not in self.replaced
        ]
        self.replaced &= set(current_opened)

        self.opened = current_opened
        self.remember_fills(current_filled)

        for order in report.opened:
            self.notifier.notify(EventKind.OPENED, "Open",
                                 f"{order.side.value} {order.size} {order.market} at {order.price}")
        for order in report.cancelled:
            log_order_event(self.logger, "cancelled", order.market, order.side.value,
                            order.size, order.price, order_id=order.id)
            self.notifier.notify(EventKind.CANCELLED, "Cancelled",
                                 f"{order.side.value} {order.size} {order.market} at {order.price}")

        for order in report.filled:
            self._dispatch_fill(order, report)

        self.maintain(list(current_opened.values()), report)
        return report

    def remember_fills(self, current_filled: dict[str, Order]) -> None:
        """
        Keep the current fills plus earlier ones first seen inside the
        look-back window. A fill first seen before the window opened is
        older than the window and no longer reported by the venue.
        """
        assert self.filled is not None
        now = self.clock()
        cutoff = self.since()
        for key in current_filled:
            self.filled_seen.setdefault(key, now)
        merged = {**self.filled, **current_filled}
        self.filled = {
            key: order for key, order in merged.items()
            if key in current_filled or self.filled_seen.get(key, now) >= cutoff
        }
        self.filled_seen = {k: t for k, t in self.filled_seen.items() if k in self.filled}

    def _dispatch_fill(self, order: Order, report: CycleReport) -> None:
        log_order_event(self.logger, "filled", order.market, order.side.value,
                        order.size, order.price, order_id=order.id,
                        context={"stop": order.is_stop})
        self.notifier.notify(EventKind.FILLED, "Filled",
                             f"{order.side.value} {order.size} {order.market} at {order.price}")
        try:
            if order.side == OrderSide.BUY:
                placed = self.handler.on_buy_filled(self, order)
                if placed and self.venue.call_store is not None and order.id:
                    self.venue.call_store.discard(order.id)
            elif order.side == OrderSide.SELL:
                placed = self.handler.on_sell_filled(self, order)
            else:
                placed = None
        except LOOP_ERRORS as e:
            self._report_error(e, report, market=order.market, order_id=order.id)
            return
        if placed:
            report.placed.append(placed)

    def maintain(self, opened: list[Order], report: Optional[CycleReport] = None) -> CycleReport:
        """Run the strategy's maintenance step over open engine-placed sells."""
        report = report or CycleReport()
        candidates = [
            o for o in opened
            if o.side == OrderSide.SELL and not o.stop_price and o.metadata is not None
        ]
        if not candidates or type(self.handler).maintain is StrategyHandler.maintain:
            return report
        tickers: dict[str, float] = {}
        for order in candidates:
            try:
                if order.market not in tickers:
                    tickers[order.market] = self.venue.get_ticker(order.market)
                placed = self.handler.maintain(self, order, tickers[order.market])
            except LOOP_ERRORS as e:
                self._report_error(e, report, market=order.market, order_id=order.id)
                continue
            if placed:
                report.placed.append(placed)
        return report

    def cancel(self, order: Order) -> None:
        """Cancel an order the engine is replacing; no cancellation notice follows."""
        self.venue.cancel_order(order)
        self.replaced.add(order.key)
        log_order_event(self.logger, "cancelled", order.market, order.side.value,
                        order.size, order.price, order_id=order.id,
                        context={"replaced": True})

    def saved_call(self, order: Order) -> Optional[Call]:
        """Call saved by the buy path for this order, if any."""
        store = self.venue.call_store
        if store is None or not order.id:
            return None
        return store.load(order.id)

    # -- push delivery --------------------------------------------------------

    def apply_update(self, update: OrderUpdate) -> CycleReport:
        """Apply one pushed order update with the same semantics as polling."""
        assert self.opened is not None and self.filled is not None
        report = CycleReport()
        order = update.order
        key = order.key
        if update.status == "open":
            if key not in self.opened:
                self.opened[key] = order
                report.opened.append(order)
                self.notifier.notify(EventKind.OPENED, "Open",
                                     f"{order.side.value} {order.size} {order.market} at {order.price}")
            return report

        previous = self.opened.pop(key, None)
        if update.status == "closed" and order.size > 0:
            if key in self.filled:
                return report
            self.filled[key] = order
            self.filled_seen[key] = self.clock()
            report.filled.append(order)
            self._dispatch_fill(order, report)
        elif previous is not None:
            report.cancelled.append(previous)
            log_order_event(self.logger, "cancelled", order.market, order.side.value,
                            order.size, order.price, order_id=order.id)
            self.notifier.notify(EventKind.CANCELLED, "Cancelled",
                                 f"{order.side.value} {order.size} {order.market} at {order.price}")
        return report

    def maintain_now(self) -> CycleReport:
        """Refresh open orders and run maintenance (push-feed idle tick)."""
        opened = self.venue.get_opened()
        self.opened = _index(opened)
        if self.filled is not None:
            self.remember_fills({})
        return self.maintain(opened)

    # -- loop -------------------------------------------------------------------

    def _report_error(self, error: Exception, report: CycleReport, **context) -> None:
        report.errors.append(error)
        self.logger.error("Sell engine error", error=str(error),
                          error_type=type(error).__name__, **context)
        self.notifier.error(error)

    def run_forever(self) -> None:
        """
        Poll forever. Setup errors are raised; every later error is logged,
        notified and survived.
        """
        self.start()
        while True:
            self.sleep(self.options.poll_interval_seconds)
            try:
                self.poll_once()
            except LOOP_ERRORS as e:
                self._report_error(e, CycleReport())
