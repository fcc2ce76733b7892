"""Tests for the sell engine's snapshot diffing and fill dispatch."""

from datetime import datetime, timedelta, timezone

import pytest

from spotbot_app.errors import VenueBusinessError
from spotbot_app.models.book import Call
from spotbot_app.models.order import Order, OrderSide, OrderType
from spotbot_app.models.strategy import Strategy
from spotbot_app.selling import Notifier, NotifyLevel, SellEngine, SellOptions
from spotbot_app.selling.engine import OrderUpdate


class Outbox:
    """Records delivered notifications."""

    def __init__(self):
        self.titles = []

    def __call__(self, title, message):
        self.titles.append(title)


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def make_engine(btc_market, outbox):
    def make(strategy=Strategy.STANDARD, level=NotifyLevel.DEFAULT, **options):
        notifier = Notifier(send=outbox, level=level, venue="FAKE")
        engine = SellEngine(btc_market, strategy, SellOptions(**options), notifier)
        return engine
    return make


def last_sell(venue):
    sells = [r for r in venue.submitted if r.side == OrderSide.SELL]
    return sells[-1] if sells else None


class TestSnapshots:
    """Test diffing of open and filled order snapshots."""

    def test_start_takes_current_state_as_handled(self, btc_market, make_engine):
        btc_market.closed_orders.append(Order(OrderSide.BUY, "BTC/USDT", 0.01, 90.0, id="old"))
        engine = make_engine()
        engine.start()

        report = engine.poll_once()

        assert report.filled == []
        assert btc_market.submitted == []

    def test_started_notification(self, make_engine, outbox):
        make_engine().start()
        assert outbox.titles == ["FAKE - Started"]

    def test_cancelled_order_detected(self, btc_market, make_engine, outbox):
        order = btc_market.add_open(OrderSide.BUY, "BTC/USDT", 0.01, 90.0)
        engine = make_engine()
        engine.start()
        btc_market.cancel_order(order)

        report = engine.poll_once()

        assert report.cancelled == [order]
        assert "FAKE - Cancelled" in outbox.titles

    def test_replaced_order_is_not_reported(self, btc_market, make_engine, outbox):
        order = btc_market.add_open(OrderSide.SELL, "BTC/USDT", 0.01, 120.0)
        engine = make_engine()
        engine.start()
        engine.cancel(order)

        report = engine.poll_once()

        assert report.cancelled == []
        assert "FAKE - Cancelled" not in outbox.titles
        assert engine.replaced == set()

    def test_opened_orders_notified_only_when_asked(self, btc_market, make_engine, outbox):
        engine = make_engine(level=NotifyLevel.EVERYTHING)
        engine.start()
        btc_market.add_open(OrderSide.BUY, "BTC/USDT", 0.01, 90.0)

        report = engine.poll_once()

        assert len(report.opened) == 1
        assert "FAKE - Open" in outbox.titles

    def test_fill_counted_once(self, btc_market, make_engine):
        btc_market.tickers["BTC/USDT"] = 91.0
        order = btc_market.add_open(OrderSide.BUY, "BTC/USDT", 0.01, 90.0)
        engine = make_engine()
        engine.start()
        btc_market.fill(order.id)

        assert len(engine.poll_once().filled) == 1
        assert engine.poll_once().filled == []
        assert len([r for r in btc_market.submitted if r.side == OrderSide.SELL]) == 1

    def test_fills_age_out_of_the_look_back_window(self, btc_market, outbox):
        now = [datetime(2024, 1, 1, tzinfo=timezone.utc)]
        engine = SellEngine(btc_market, Strategy.STANDARD, SellOptions(filled_window_hours=24),
                            Notifier(send=outbox), clock=lambda: now[0])
        btc_market.tickers["BTC/USDT"] = 91.0
        order = btc_market.add_open(OrderSide.BUY, "BTC/USDT", 0.01, 90.0)
        engine.start()
        filled = btc_market.fill(order.id)
        engine.poll_once()

        # Still reported by the venue: kept, never dispatched again
        now[0] += timedelta(hours=30)
        assert engine.poll_once().filled == []
        assert filled.key in engine.filled

        btc_market.closed_orders.remove(filled)
        engine.poll_once()
        assert filled.key not in engine.filled
        assert filled.key not in engine.filled_seen
        assert len([r for r in btc_market.submitted if r.side == OrderSide.SELL]) == 1

    def test_recent_fills_outlive_the_snapshot(self, btc_market, outbox):
        now = [datetime(2024, 1, 1, tzinfo=timezone.utc)]
        engine = SellEngine(btc_market, Strategy.STANDARD, SellOptions(filled_window_hours=24),
                            Notifier(send=outbox), clock=lambda: now[0])
        btc_market.tickers["BTC/USDT"] = 91.0
        order = btc_market.add_open(OrderSide.BUY, "BTC/USDT", 0.01, 90.0)
        engine.start()
        filled = btc_market.fill(order.id)
        engine.poll_once()

        btc_market.closed_orders.remove(filled)
        now[0] += timedelta(hours=1)
        engine.poll_once()
        assert filled.key in engine.filled

        btc_market.closed_orders.append(filled)
        assert engine.poll_once().filled == []


class TestBuyFilled:
    """Test the exit placed for a filled buy."""

    def fill_buy(self, venue, engine, price=90.0, size=0.01, market="BTC/USDT"):
        order = venue.add_open(OrderSide.BUY, market, size, price)
        engine.start()
        venue.fill(order.id)
        return order, engine.poll_once()

    def test_limit_sell_above_fill(self, btc_market, make_engine):
        btc_market.tickers["BTC/USDT"] = 91.0
        order, report = self.fill_buy(btc_market, make_engine())

        sell = last_sell(btc_market)
        assert report.placed and sell.kind == OrderType.LIMIT
        assert sell.price == 94.5
        assert sell.price > order.price
        assert sell.size == 0.01

    def test_sell_records_entry_in_client_id(self, btc_market, make_engine):
        btc_market.tickers["BTC/USDT"] = 91.0
        self.fill_buy(btc_market, make_engine())

        [sell] = [o for o in btc_market.open_orders if o.side == OrderSide.SELL]
        assert sell.metadata.price == 90.0
        assert sell.metadata.mult == 1.05

    def test_sell_at_market_when_ticker_passed_target(self, btc_market, make_engine):
        btc_market.tickers["BTC/USDT"] = 100.0
        self.fill_buy(btc_market, make_engine())
        assert last_sell(btc_market).kind == OrderType.MARKET

    def test_saved_call_target_wins(self, btc_market, make_engine):
        btc_market.tickers["BTC/USDT"] = 91.0
        order = btc_market.add_open(OrderSide.BUY, "BTC/USDT", 0.01, 90.0)
        btc_market.call_store.save(order.id, Call(market="BTC/USDT", price=90.0, size=0.01, target="99"))
        engine = make_engine()
        engine.start()
        btc_market.fill(order.id)

        engine.poll_once()

        assert last_sell(btc_market).price == 99.0
        assert btc_market.call_store.load(order.id) is None

    def test_held_asset_is_not_sold(self, btc_market, make_engine):
        btc_market.tickers["BNB/USDT"] = 10.0
        self.fill_buy(btc_market, make_engine(hold=frozenset({"BNB"})), price=9.0, market="BNB/USDT")
        assert last_sell(btc_market) is None

    def test_rejected_exit_is_reported_not_raised(self, btc_market, make_engine, outbox):
        btc_market.tickers["BTC/USDT"] = 91.0
        btc_market.rejections.append(VenueBusinessError("rejected"))
        _, report = self.fill_buy(btc_market, make_engine())

        assert len(report.errors) == 1
        assert "FAKE - Error" in outbox.titles


class TestPushUpdates:
    """Test pushed updates against the polling semantics."""

    def test_closed_update_dispatches_once(self, btc_market, make_engine):
        btc_market.tickers["BTC/USDT"] = 91.0
        engine = make_engine()
        engine.start()
        order = Order(OrderSide.BUY, "BTC/USDT", 0.01, 90.0, id="p1")

        engine.apply_update(OrderUpdate(order=order, status="open"))
        report = engine.apply_update(OrderUpdate(order=order, status="closed"))
        again = engine.apply_update(OrderUpdate(order=order, status="closed"))

        assert report.filled == [order]
        assert again.filled == []
        assert last_sell(btc_market).price == 94.5

    def test_canceled_update(self, btc_market, make_engine):
        engine = make_engine()
        engine.start()
        order = Order(OrderSide.BUY, "BTC/USDT", 0.01, 90.0, id="p2")
        engine.apply_update(OrderUpdate(order=order, status="open"))

        report = engine.apply_update(OrderUpdate(order=order, status="canceled"))

        assert report.cancelled == [order]
        assert btc_market.submitted == []
