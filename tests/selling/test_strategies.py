"""Tests for the per-strategy transition handlers."""

import pytest

from spotbot_app.errors import VenueBusinessError
from spotbot_app.models.metadata import OrderMetadata
from spotbot_app.models.order import Order, OrderSide, OrderType
from spotbot_app.models.strategy import Strategy
from spotbot_app.selling import SellEngine, SellOptions
from spotbot_app.selling.strategies import (
    StopLossHandler,
    TrailingHandler,
    TrailingStopLossHandler,
    TrailingStopLossQuickHandler,
    handler_for,
)
from spotbot_app.venues.retry import OrderVariant


def engine_for(venue, strategy, **options):
    return SellEngine(venue, strategy, SellOptions(**options), sleep=lambda s: None)


def trailing_sell(venue, limit, entry=90.0, mult=1.05, trail=True):
    metadata = OrderMetadata(price=entry, mult=mult, trail=trail)
    return venue.add_open(OrderSide.SELL, "BTC/USDT", 0.01, limit, client_id=metadata.encode())


class TestHandlerTable:
    """Test strategy to handler mapping."""

    @pytest.mark.parametrize("strategy", list(Strategy))
    def test_every_strategy_has_a_handler(self, strategy):
        assert handler_for(strategy).strategy == strategy

    def test_trailing_strategies_trail(self):
        assert handler_for(Strategy.TRAILING).trails
        assert not handler_for(Strategy.STANDARD).trails
        assert not handler_for(Strategy.STOP_LOSS).trails


class TestTrailing:
    """Test trailing maintenance."""

    def test_reprices_upwards_near_the_limit(self, btc_market):
        order = trailing_sell(btc_market, 94.5)
        engine = engine_for(btc_market, Strategy.TRAILING)

        placed = TrailingHandler().maintain(engine, order, 94.0)

        assert placed is not None
        assert btc_market.cancelled == [order]
        renewed = btc_market.submitted[-1]
        assert renewed.price == 98.7
        assert OrderMetadata.decode(renewed.client_id).price == 90.0

    def test_waits_far_from_the_limit(self, btc_market):
        order = trailing_sell(btc_market, 94.5)
        engine = engine_for(btc_market, Strategy.TRAILING)
        assert TrailingHandler().maintain(engine, order, 91.0) is None
        assert btc_market.cancelled == []

    def test_untracked_orders_are_ignored(self, btc_market):
        order = btc_market.add_open(OrderSide.SELL, "BTC/USDT", 0.01, 94.5)
        engine = engine_for(btc_market, Strategy.TRAILING)
        assert TrailingHandler().maintain(engine, order, 94.4) is None

    def test_trailing_stop_sells_at_market_above_entry(self, btc_market):
        order = trailing_sell(btc_market, 105.0)
        engine = engine_for(btc_market, Strategy.TRAILING)

        TrailingHandler().maintain(engine, order, 94.0)

        exit_order = btc_market.submitted[-1]
        assert exit_order.kind == OrderType.MARKET
        assert OrderMetadata.decode(exit_order.client_id).stop_leg

    def test_never_sells_below_entry(self, btc_market):
        order = trailing_sell(btc_market, 105.0)
        engine = engine_for(btc_market, Strategy.TRAILING)
        assert TrailingHandler().maintain(engine, order, 85.0) is None
        assert btc_market.submitted == []


class TestTrailingStopLoss:
    """Test the stop-loss exits of the trailing stop-loss strategies."""

    def test_places_stop_loss_below_entry(self, btc_market):
        order = trailing_sell(btc_market, 105.0)
        engine = engine_for(btc_market, Strategy.TRAILING_STOP_LOSS)

        TrailingStopLossHandler().maintain(engine, order, 85.0)

        stop = btc_market.submitted[-1]
        assert stop.variant == OrderVariant.STOP_LOSS
        assert stop.stop_price == 95.0
        assert btc_market.cancelled == [order]

    def test_rejected_stop_loss_sells_at_market(self, btc_market):
        order = trailing_sell(btc_market, 105.0)
        engine = engine_for(btc_market, Strategy.TRAILING_STOP_LOSS)
        btc_market.rejections.append(VenueBusinessError("rejected"))

        TrailingStopLossHandler().maintain(engine, order, 85.0)

        assert btc_market.submitted[-1].kind == OrderType.MARKET

    def test_quick_takes_profit_at_target(self, btc_market):
        order = trailing_sell(btc_market, 94.5)
        engine = engine_for(btc_market, Strategy.TRAILING_STOP_LOSS_QUICK)

        TrailingStopLossQuickHandler().maintain(engine, order, 95.0)

        exit_order = btc_market.submitted[-1]
        assert exit_order.kind == OrderType.MARKET
        assert not OrderMetadata.decode(exit_order.client_id).stop_leg


class TestStopLoss:
    """Test OCO placement, the engine-held stop leg and DCA re-buys."""

    def test_buy_fill_places_oco(self, btc_market):
        btc_market.tickers["BTC/USDT"] = 91.0
        engine = engine_for(btc_market, Strategy.STOP_LOSS)
        fill = Order(OrderSide.BUY, "BTC/USDT", 0.01, 90.0, id="b1")

        StopLossHandler().on_buy_filled(engine, fill)

        oco = btc_market.submitted[-1]
        assert oco.variant == OrderVariant.OCO
        assert (oco.price, oco.stop_price) == (94.5, 85.5)

    def test_target_leg_sold_at_market_when_stop_hit(self, plain_venue):
        order = trailing_sell(plain_venue, 94.5, trail=False)
        engine = engine_for(plain_venue, Strategy.STOP_LOSS)

        StopLossHandler().maintain(engine, order, 85.0)

        exit_order = plain_venue.submitted[-1]
        assert exit_order.kind == OrderType.MARKET
        assert plain_venue.cancelled == [order]

    def test_target_leg_kept_above_stop(self, plain_venue):
        order = trailing_sell(plain_venue, 94.5, trail=False)
        engine = engine_for(plain_venue, Strategy.STOP_LOSS)
        assert StopLossHandler().maintain(engine, order, 86.0) is None

    def test_stop_fill_rebuys_twice_the_size(self, btc_market):
        engine = engine_for(btc_market, Strategy.STOP_LOSS, dca=True)
        stop_fill = Order(OrderSide.SELL, "BTC/USDT", 0.01, 85.5, id="s1", stop_price=85.5)

        StopLossHandler().on_sell_filled(engine, stop_fill)

        rebuy = btc_market.submitted[-1]
        assert rebuy.side == OrderSide.BUY
        assert rebuy.kind == OrderType.MARKET
        assert rebuy.size == 0.02

    def test_no_rebuy_without_dca(self, btc_market):
        engine = engine_for(btc_market, Strategy.STOP_LOSS)
        stop_fill = Order(OrderSide.SELL, "BTC/USDT", 0.01, 85.5, id="s1", stop_price=85.5)
        assert StopLossHandler().on_sell_filled(engine, stop_fill) is None

    def test_target_fill_does_not_rebuy(self, btc_market):
        engine = engine_for(btc_market, Strategy.STOP_LOSS, dca=True)
        target_fill = Order(OrderSide.SELL, "BTC/USDT", 0.01, 94.5, id="t1")
        assert StopLossHandler().on_sell_filled(engine, target_fill) is None
