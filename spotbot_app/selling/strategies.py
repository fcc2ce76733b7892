"""
Per-strategy transition table of the sell engine.

Each handler answers three events: a buy filled, a sell filled, and a
maintenance pass over one open engine-placed sell. Handlers talk to the
venue only through the adapter contract, so polling and push delivery
produce the same orders.
"""

from abc import ABC
from typing import TYPE_CHECKING, Optional

from ..errors import VenueBusinessError
from ..models.metadata import OrderMetadata
from ..models.order import Order, OrderSide, OrderType
from ..models.strategy import Strategy
from ..utils.precision import multiply, round_to

if TYPE_CHECKING:
    from .engine import SellEngine


class StrategyHandler(ABC):
    """STANDARD behaviour; subclasses override the exit and maintenance steps."""

    strategy: Strategy = Strategy.STANDARD
    trails: bool = False

    # -- buy fill -----------------------------------------------------------

    def on_buy_filled(self, engine: "SellEngine", order: Order) -> Optional[str]:
        """
        Open the exit for a freshly filled buy.

        Returns:
            Id of the sell (or OCO) placed, None when nothing was placed
        """
        venue = engine.venue
        options = engine.options
        market = order.market
        prec = venue.get_price_precision(market)

        call = engine.saved_call(order)
        bought = order.price
        if bought <= 0 and call is not None:
            bought = call.price
        if bought <= 0:
            bought = venue.get_ticker(market)

        size = venue.get_max_sell_size(market, order.size, options.hold, options.earn, options.mult)
        if size <= 0:
            engine.logger.info("Holding filled buy", market=market, size=order.size)
            return None

        target = call.target_price if call is not None and call.has_target else None
        if target is None:
            target = multiply(bought, options.mult, prec)
        stop = call.stop_price if call is not None and call.has_stop else None
        if stop is None:
            stop = multiply(bought, options.stop, prec)

        metadata = OrderMetadata(price=bought, mult=options.mult, trail=self.trails)
        ticker = venue.get_ticker(market)
        if ticker >= target:
            engine.logger.info("Ticker above target, selling at market",
                               market=market, ticker=ticker, target=target)
            return venue.place_order(OrderSide.SELL, market, size, 0.0, OrderType.MARKET,
                                     client_id=metadata.encode())
        return self.place_exit(engine, market, size, target, stop, metadata)

    def place_exit(self, engine: "SellEngine", market: str, size: float,
                   target: float, stop: float, metadata: OrderMetadata) -> str:
        return engine.venue.place_order(OrderSide.SELL, market, size, target, OrderType.LIMIT,
                                        client_id=metadata.encode())

    # -- sell fill ----------------------------------------------------------

    def on_sell_filled(self, engine: "SellEngine", order: Order) -> Optional[str]:
        return None

    # -- maintenance --------------------------------------------------------

    def maintain(self, engine: "SellEngine", order: Order, ticker: float) -> Optional[str]:
        return None


class StandardHandler(StrategyHandler):
    """Limit sell at fill price times mult, nothing else."""


class TrailingHandler(StrategyHandler):
    """
    Re-prices the limit sell upwards while the ticker approaches it and
    sells at market once the ticker falls back below the trailing stop,
    but never below the entry price.
    """

    strategy = Strategy.TRAILING
    trails = True

    def maintain(self, engine: "SellEngine", order: Order, ticker: float) -> Optional[str]:
        metadata = order.metadata
        if metadata is None or not metadata.trail or order.side != OrderSide.SELL:
            return None
        venue = engine.venue
        prec = venue.get_price_precision(order.market)
        limit = order.price
        reference = round_to(limit / metadata.mult, prec) if metadata.mult > 0 else metadata.price

        band = engine.options.trail_band_pct / 100
        if ticker >= limit * (1 - band):
            new_limit = multiply(max(ticker, reference), metadata.mult, prec)
            if new_limit <= limit:
                return None
            engine.cancel(order)
            engine.logger.info("Trailing sell upwards", market=order.market,
                               old_limit=limit, new_limit=new_limit, ticker=ticker)
            renewed = OrderMetadata(price=metadata.price, mult=metadata.mult, trail=True)
            return venue.place_order(OrderSide.SELL, order.market, order.size, new_limit,
                                     OrderType.LIMIT, client_id=renewed.encode())

        stop = multiply(reference, engine.options.stop, prec)
        if ticker <= stop:
            return self.stop_out(engine, order, metadata, ticker, stop)
        return None

    def stop_out(self, engine: "SellEngine", order: Order, metadata: OrderMetadata,
                 ticker: float, stop: float) -> Optional[str]:
        if ticker <= metadata.price:
            # under water; this strategy waits for the market to come back
            return None
        engine.cancel(order)
        engine.logger.info("Trailing stop hit, selling at market", market=order.market,
                           ticker=ticker, stop=stop, entry=metadata.price)
        exit_md = OrderMetadata(price=metadata.price, mult=metadata.mult, stop_leg=True)
        return engine.venue.place_order(OrderSide.SELL, order.market, order.size, 0.0,
                                        OrderType.MARKET, client_id=exit_md.encode())


class TrailingStopLossHandler(TrailingHandler):
    """Trailing, but exits through a stop-loss order and may realize a loss."""

    strategy = Strategy.TRAILING_STOP_LOSS

    def stop_out(self, engine: "SellEngine", order: Order, metadata: OrderMetadata,
                 ticker: float, stop: float) -> Optional[str]:
        venue = engine.venue
        engine.cancel(order)
        engine.logger.info("Trailing stop hit, placing stop-loss", market=order.market,
                           ticker=ticker, stop=stop, entry=metadata.price)
        exit_md = OrderMetadata(price=metadata.price, mult=metadata.mult, stop_leg=True)
        try:
            return venue.place_stop_loss(order.market, order.size, stop, OrderType.MARKET,
                                         client_id=exit_md.encode())
        except VenueBusinessError as e:
            engine.logger.warning("Stop-loss rejected, selling at market",
                                  market=order.market, error=str(e))
            return venue.place_order(OrderSide.SELL, order.market, order.size, 0.0,
                                     OrderType.MARKET, client_id=exit_md.encode())


class TrailingStopLossQuickHandler(TrailingStopLossHandler):
    """Trailing stop-loss that takes profit as soon as the target is reached."""

    strategy = Strategy.TRAILING_STOP_LOSS_QUICK

    def maintain(self, engine: "SellEngine", order: Order, ticker: float) -> Optional[str]:
        metadata = order.metadata
        if metadata is None or not metadata.trail or order.side != OrderSide.SELL:
            return None
        prec = engine.venue.get_price_precision(order.market)
        target = multiply(metadata.price, metadata.mult, prec)
        if ticker >= target:
            engine.cancel(order)
            engine.logger.info("Target reached, selling at market", market=order.market,
                               ticker=ticker, target=target)
            exit_md = OrderMetadata(price=metadata.price, mult=metadata.mult)
            return engine.venue.place_order(OrderSide.SELL, order.market, order.size, 0.0,
                                            OrderType.MARKET, client_id=exit_md.encode())
        return super().maintain(engine, order, ticker)


class StopLossHandler(StrategyHandler):
    """
    OCO (target limit + stop) at buy fill. Where the venue cannot hold an
    OCO, the target leg is placed alone and the stop leg is enforced here.
    A filled stop may trigger a DCA re-buy at a multiple of its size.
    """

    strategy = Strategy.STOP_LOSS

    def place_exit(self, engine: "SellEngine", market: str, size: float,
                   target: float, stop: float, metadata: OrderMetadata) -> str:
        return engine.venue.place_oco(market, size, target, stop, client_id=metadata.encode())

    def maintain(self, engine: "SellEngine", order: Order, ticker: float) -> Optional[str]:
        metadata = order.metadata
        if metadata is None or metadata.stop_leg or order.side != OrderSide.SELL:
            return None
        prec = engine.venue.get_price_precision(order.market)
        stop = multiply(metadata.price, engine.options.stop, prec)
        if ticker > stop:
            return None
        engine.cancel(order)
        engine.logger.info("Stop leg hit, selling at market", market=order.market,
                           ticker=ticker, stop=stop)
        exit_md = OrderMetadata(price=metadata.price, mult=metadata.mult, stop_leg=True)
        return engine.venue.place_order(OrderSide.SELL, order.market, order.size, 0.0,
                                        OrderType.MARKET, client_id=exit_md.encode())

    def on_sell_filled(self, engine: "SellEngine", order: Order) -> Optional[str]:
        if not order.is_stop or not engine.options.dca:
            return None
        venue = engine.venue
        size = round_to(order.size * engine.options.dca_rebuy_mult,
                        venue.get_size_precision(order.market))
        engine.logger.info("Stop-loss filled, re-buying", market=order.market,
                           filled_size=order.size, rebuy_size=size)
        return venue.place_order(OrderSide.BUY, order.market, size, 0.0, OrderType.MARKET)


HANDLERS: dict[Strategy, type] = {
    Strategy.STANDARD: StandardHandler,
    Strategy.TRAILING: TrailingHandler,
    Strategy.TRAILING_STOP_LOSS: TrailingStopLossHandler,
    Strategy.TRAILING_STOP_LOSS_QUICK: TrailingStopLossQuickHandler,
    Strategy.STOP_LOSS: StopLossHandler,
}


def handler_for(strategy: Strategy) -> StrategyHandler:
    return HANDLERS[strategy]()
