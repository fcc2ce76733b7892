"""Tests for the ccxt-backed adapters against an in-memory ccxt client."""

import ccxt
import pytest
from ccxt.base.decimal_to_precision import TICK_SIZE

from spotbot_app.errors import (
    InsufficientFunds,
    RateLimitExceeded,
    TooManyAlgoOrders,
    TransientNetworkError,
    VenueAuthenticationError,
    VenueError,
    WouldTriggerImmediately,
)
from spotbot_app.governor import RequestGovernor
from spotbot_app.models.order import OrderSide, OrderType
from spotbot_app.venues.binance import Binance, weight_budget
from spotbot_app.venues.ccxt_venue import Credentials

MARKETS = {
    "BTC/USDT": {
        "base": "BTC", "quote": "USDT", "spot": True, "active": True,
        "precision": {"price": 0.01, "amount": 0.0001},
        "limits": {"cost": {"min": 10.0}},
    },
    "ETH/BTC": {
        "base": "ETH", "quote": "BTC", "spot": True, "active": True,
        "precision": {"price": 0.000001, "amount": 0.001},
        "limits": {"cost": {"min": None}},
    },
    "OLD/USDT": {
        "base": "OLD", "quote": "USDT", "spot": True, "active": False,
        "precision": {"price": 0.01, "amount": 1},
    },
}

CREDENTIALS = Credentials(api_key="key", secret="secret")


class FakeClient:
    """Just enough of a ccxt exchange for the adapter."""

    precisionMode = TICK_SIZE

    def __init__(self, config, closed):
        self.config = config
        self.sandbox = False
        self.created = []
        self.cancelled = []
        self.oco = []
        self.closed = closed
        self.fail_with = None
        self.exchange_info_calls = 0

    def set_sandbox_mode(self, enabled):
        self.sandbox = enabled

    def load_markets(self, reload=False):
        return MARKETS

    def fetch_order_book(self, symbol, limit=None):
        if self.fail_with is not None:
            raise self.fail_with
        return {"bids": [[100.0, 1.5], [99.0, 2.0]], "asks": [[101.0, 1.0]]}

    def fetch_ticker(self, symbol):
        return {"last": 100.123, "high": 110.0, "low": 90.0,
                "quoteVolume": 5000.0, "baseVolume": 50.0}

    def fetch_open_orders(self, symbol=None):
        return [{"side": "buy", "symbol": "BTC/USDT", "amount": 0.01, "price": 95.0,
                 "timestamp": 1_700_000_000_000, "id": 7, "clientOrderId": None}]

    def fetch_closed_orders(self, symbol=None, since=None):
        return [o for o in self.closed if symbol is None or o["symbol"] == symbol]

    def create_order(self, symbol, kind, side, amount, price=None, params=None):
        self.created.append((symbol, kind, side, amount, price, params))
        return {"id": len(self.created)}

    def cancel_order(self, order_id, symbol=None):
        self.cancelled.append((order_id, symbol))

    def privatePostOrderOco(self, body):
        self.oco.append(body)
        return {"orderListId": 42}

    def publicGetExchangeInfo(self):
        self.exchange_info_calls += 1
        return {"rateLimits": [
            {"rateLimitType": "REQUEST_WEIGHT", "interval": "MINUTE", "intervalNum": 1, "limit": 2400},
        ]}


class ClientFactory:
    def __init__(self):
        self.clients = []
        self.closed = []

    def __call__(self, config):
        client = FakeClient(config, self.closed)
        self.clients.append(client)
        return client


@pytest.fixture
def factory():
    return ClientFactory()


@pytest.fixture
def binance(governor, factory, clock):
    return Binance(governor, credentials=CREDENTIALS, client_factory=factory, clock=clock)


class TestClient:
    """Test client construction."""

    def test_ccxt_limiter_disabled(self, binance, factory):
        binance.get_ticker("BTC/USDT")
        config = factory.clients[0].config
        assert config["enableRateLimit"] is False
        assert config["timeout"] == 30000
        assert "apiKey" not in config

    def test_private_client_carries_credentials(self, binance, factory):
        binance.get_opened("BTC/USDT")
        private = factory.clients[-1].config
        assert private["apiKey"] == "key"
        assert private["secret"] == "secret"

    def test_private_call_without_credentials(self, governor, factory):
        venue = Binance(governor, client_factory=factory)
        with pytest.raises(VenueAuthenticationError):
            venue.get_opened()

    def test_sandbox(self, governor, factory):
        venue = Binance(governor, sandbox=True, client_factory=factory)
        venue.get_book("BTC/USDT", "bids")
        assert factory.clients[0].sandbox is True

    def test_credentials_from_env(self, monkeypatch):
        monkeypatch.setenv("SPOTBOT_GDAX_KEY", "k")
        monkeypatch.setenv("SPOTBOT_GDAX_SECRET", "s")
        monkeypatch.setenv("SPOTBOT_GDAX_PASSWORD", "p")
        assert Credentials.from_env("gdax") == Credentials("k", "s", "p")

    def test_credentials_missing(self, monkeypatch):
        monkeypatch.delenv("SPOTBOT_BINA_KEY", raising=False)
        monkeypatch.delenv("SPOTBOT_BINA_SECRET", raising=False)
        assert Credentials.from_env("BINA") is None


class TestMarketData:
    """Test mapping of ccxt market data."""

    def test_inactive_markets_dropped(self, binance):
        assert [m.name for m in binance.get_markets()] == ["BTC/USDT", "ETH/BTC"]

    def test_precision_from_tick_sizes(self, binance):
        precision = binance.get_precision("BTC/USDT")
        assert (precision.price, precision.size, precision.min_notional) == (2, 4, 10.0)
        assert binance.get_price_precision("ETH/BTC") == 6
        assert binance.get_min_notional("ETH/BTC") == 0.0

    def test_book_side(self, binance):
        assert binance.get_book("BTC/USDT", "bids") == [(100.0, 1.5), (99.0, 2.0)]

    def test_ticker_rounded(self, binance):
        assert binance.get_ticker("BTC/USDT") == 100.12

    def test_btc_volume_of_btc_base(self, binance):
        stats = binance.get_24h("BTC/USDT")
        assert stats.btc_volume == 50.0
        assert stats.avg(2) == 100.0

    def test_btc_volume_of_btc_quote(self, binance):
        assert binance.get_24h("ETH/BTC").btc_volume == 5000.0


class TestOrders:
    """Test order mapping and submission."""

    def test_open_orders(self, binance):
        [order] = binance.get_opened("BTC/USDT")
        assert order.side == OrderSide.BUY
        assert order.id == "7"
        assert order.price == 95.0
        assert order.created_at.year == 2023

    def test_closed_orders_use_fill_size_and_average(self, binance, factory):
        factory.closed.extend([
            {"side": "buy", "symbol": "BTC/USDT", "amount": 1.0, "filled": 0.5, "average": 99.5,
             "price": 100.0, "status": "closed", "id": 1},
            {"side": "buy", "symbol": "BTC/USDT", "amount": 1.0, "filled": 0.0,
             "price": 100.0, "status": "canceled", "id": 2},
        ])
        [order] = binance.get_closed(["BTC/USDT"])
        assert (order.size, order.price, order.id) == (0.5, 99.5, "1")

    def test_limit_order(self, binance, factory):
        order_id = binance.place_order(OrderSide.BUY, "BTC/USDT", 0.01, 95.0, client_id="sb_95_1.05_abc")
        created = factory.clients[-1].created
        assert order_id == "1"
        assert created == [("BTC/USDT", "limit", "buy", 0.01, 95.0, {"clientOrderId": "sb_95_1.05_abc"})]

    def test_market_order_has_no_price(self, binance, factory):
        binance.place_order(OrderSide.SELL, "BTC/USDT", 0.01, 95.0, OrderType.MARKET)
        assert factory.clients[-1].created[0][4] is None

    def test_stop_loss_params(self, binance, factory):
        binance.place_stop_loss("BTC/USDT", 0.01, 90.0)
        _, kind, side, _, _, params = factory.clients[-1].created[0]
        assert (kind, side) == ("market", "sell")
        assert params["stopLossPrice"] == 90.0

    def test_oco_body(self, binance, factory):
        order_id = binance.place_oco("BTC/USDT", 0.01, 110.0, 90.0)
        [body] = factory.clients[-1].oco
        assert order_id == "42"
        assert body["symbol"] == "BTCUSDT"
        assert body["quantity"] == "0.0100"
        assert (body["price"], body["stopPrice"]) == ("110.00", "90.00")

    def test_cancel(self, binance, factory):
        [order] = binance.get_opened("BTC/USDT")
        binance.cancel_order(order)
        assert factory.clients[-1].cancelled == [("7", "BTC/USDT")]


class TestErrorTranslation:
    """Test mapping of ccxt exceptions."""

    @pytest.mark.parametrize("error,expected", [
        (ccxt.RateLimitExceeded("429"), RateLimitExceeded),
        (ccxt.AuthenticationError("bad key"), VenueAuthenticationError),
        (ccxt.InsufficientFunds("balance"), InsufficientFunds),
        (ccxt.NetworkError("reset"), TransientNetworkError),
        (ccxt.InvalidOrder("Stop price would trigger immediately."), WouldTriggerImmediately),
        (ccxt.ExchangeError("MAX_NUM_ALGO_ORDERS"), TooManyAlgoOrders),
    ])
    def test_translation(self, binance, error, expected):
        assert isinstance(binance.translate_error(error, "order"), expected)

    def test_unknown_exchange_error_is_not_recoverable(self, binance):
        error = binance.translate_error(ccxt.ExchangeError("boom"), "order")
        assert type(error) is VenueError
        assert error.recoverable is False

    def test_call_raises_translated_error(self, binance, factory):
        binance.get_ticker("BTC/USDT")
        factory.clients[0].fail_with = ccxt.NetworkError("connection reset")
        with pytest.raises(TransientNetworkError):
            binance.get_book("BTC/USDT", "bids")


class TestWeightBudget:
    """Test the request weight budget read from exchangeInfo."""

    def test_per_second_budget(self):
        info = {"rateLimits": [
            {"rateLimitType": "ORDERS", "interval": "SECOND", "intervalNum": 10, "limit": 50},
            {"rateLimitType": "REQUEST_WEIGHT", "interval": "MINUTE", "intervalNum": 1, "limit": 1200},
        ]}
        assert weight_budget(info) == 20.0

    def test_missing_budget(self):
        assert weight_budget({}) is None

    def test_budget_fetch_is_paced(self, store, clock, factory, monkeypatch):
        governor = RequestGovernor("BINA", Binance.pacing_policy(), store=store,
                                   clock=clock, sleep=clock.sleep)
        venue = Binance(governor, client_factory=factory, clock=clock)
        acquired = []
        acquire = governor.acquire

        def recording(endpoint="", weight=1):
            acquired.append((endpoint, weight))
            return acquire(endpoint, weight)

        monkeypatch.setattr(governor, "acquire", recording)

        venue.get_ticker("BTC/USDT")

        assert ("exchangeInfo", 20) in acquired
        assert factory.clients[0].exchange_info_calls == 1
        assert governor.policy.budget == 40.0
        # the ticker call queues behind the bootstrap call at 40 / 2 requests per second
        assert clock.sleeps[0] == pytest.approx(0.05)
