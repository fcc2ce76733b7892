"""
Main trading engine coordinator.

Selects a venue, builds its adapter and wires the buy path (resolver and
planner, once per invocation) and the sell path (strategy engine, forever).
"""

import time
from pathlib import Path
from typing import Any, Callable, Optional

import structlog

from .aggregation import AggregationResolver, Resolution
from .config.loader import ConfigLoader
from .config.validation import ConfigValidator
from .errors import AggregationExhausted, ConfigurationError
from .models.book import BookLevel, BookSide
from .models.order import OrderSide, OrderType
from .models.strategy import Strategy, parse_strategy
from .planning import BuyParams, BuyPlanner, Plan
from .selling import Notifier, SellOptions
from .selling.engine import LOOP_ERRORS
from .utils.precision import round_to
from .venues import get_venue
from .venues.ccxt_venue import Credentials

logger = structlog.get_logger(__name__)


class SpotBotEngine:
    """
    Coordinator for one venue.

    Manages the two control paths:
    Book → Resolver → Planner → Buy (once), and Orders → Sell Engine (forever)
    """

    def __init__(
        self,
        venue: str,
        config_dir: Optional[Path] = None,
        run_overrides: Optional[dict[str, Any]] = None,
        credentials: Optional[Credentials] = None,
        sandbox: bool = False,
        session_dir: Optional[Path] = None,
    ) -> None:
        self.logger = logger.bind(venue=venue)
        self.config_loader = ConfigLoader.create(config_dir)

        errors = ConfigValidator.validate_config(run_overrides or {})
        if errors:
            first = errors[0]
            raise ConfigurationError(f"{first.field}: {first.message}",
                                     field=first.field, value=first.value)

        self.venue = get_venue(
            venue,
            credentials=credentials,
            sandbox=sandbox,
            directory=session_dir,
            loader=self.config_loader,
            run_overrides=run_overrides,
        )
        self.config = self.venue.config
        self.resolver = AggregationResolver(self.venue)
        self.planner = BuyPlanner(self.venue, resolver=self.resolver)
        self.logger.info("Trading engine initialized", sandbox=sandbox)

    # -- read-only commands ---------------------------------------------------

    def book(self, market: str, side: BookSide = BookSide.BIDS, agg: float = 0.0) -> list[BookLevel]:
        """The book of ``market``, aggregated when ``agg`` is given."""
        raw = self.venue.get_book(market, side.value)
        if agg > 0:
            return self.venue.aggregate(raw, market, agg)
        size_prec = self.venue.get_size_precision(market)
        return [BookLevel(market=market, price=price, size=round_to(size, size_prec))
                for price, size in raw]

    def resolve(self, market: str, buy: BuyParams) -> Resolution:
        """Search the bucket width ``buy`` would use for ``market``."""
        buy.check()
        return self.resolver.resolve(market, buy.dip, buy.pip, buy.top,
                                     max_price=buy.max, min_price=buy.min, strict=buy.strict)

    # -- buy path ---------------------------------------------------------------

    def buy(self, markets: list[str], buy: BuyParams, test: bool = False) -> list[Plan]:
        """Plan and place buys once."""
        buy.check()
        plans = self.planner.run(markets, buy, test=test)
        self.logger.info("Buy pass complete", markets=len(plans),
                         placed=sum(len(p.placed) for p in plans), test=test)
        return plans

    def buy_every(
        self,
        hours: float,
        markets: list[str],
        buy: BuyParams,
        notifier: Optional[Notifier] = None,
        sleep: Callable[[float], None] = time.sleep,
        passes: Optional[int] = None,
    ) -> None:
        """
        Repeat the buy pass every ``hours``. A failing pass is logged and
        notified; the next pass runs regardless.
        """
        notifier = notifier or Notifier(level=self.config.notify.level, venue=self.venue.code)
        done = 0
        while passes is None or done < passes:
            sleep(hours * 3600)
            try:
                self.buy(markets, buy)
            except (AggregationExhausted, *LOOP_ERRORS) as e:
                self.logger.error("Buy pass failed", error=str(e), error_type=type(e).__name__)
                notifier.error(e)
            done += 1

    def order(
        self,
        market: str,
        side: OrderSide,
        size: float,
        price: float = 0.0,
        kind: OrderType = OrderType.LIMIT,
    ) -> str:
        """
        Place one order by hand, returning the venue order id.

        Raises:
            ValueError: Nothing to trade, or a limit order without a price
        """
        if size <= 0:
            raise ValueError("nothing to trade")
        if kind == OrderType.LIMIT and price <= 0:
            raise ValueError("limit order without a limit")
        order_id = self.venue.place_order(side, market, size, price, kind)
        self.logger.info("Order placed", market=market, side=side.value, size=size,
                         price=price, kind=kind.value, order_id=order_id)
        return order_id

    def cancel(self, market: str, side: OrderSide) -> int:
        return self.venue.cancel(market, side)

    # -- sell path --------------------------------------------------------------

    def sell_options(self, **overrides: Any) -> SellOptions:
        return SellOptions.from_params(self.config.sell, **overrides)

    def sell(
        self,
        strategy: Any = Strategy.STANDARD,
        options: Optional[SellOptions] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        """
        Run the sell strategy engine. Blocks forever.

        Raises:
            StrategyNotImplemented: The venue cannot run ``strategy``
            VenueAuthenticationError: Credentials are missing or rejected
        """
        strategy = parse_strategy(strategy)
        options = options or self.sell_options()
        notifier = notifier or Notifier(level=self.config.notify.level, venue=self.venue.code)
        self.logger.info("Starting sell engine", strategy=strategy.value)
        self.venue.run_sell_loop(strategy, options, notifier)
