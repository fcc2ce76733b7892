"""Pytest configuration and shared fixtures."""

from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any, Collection, Optional

import pytest

from spotbot_app.governor import FixedRate, RequestGovernor, SessionStore
from spotbot_app.models.market import Endpoint, ExchangeInfo, Market, Precision, Stats
from spotbot_app.models.order import Order, OrderSide, OrderType
from spotbot_app.persistence import CallStore
from spotbot_app.venues.base import RawBook, VenueAdapter
from spotbot_app.venues.retry import OrderRequest, OrderVariant

START = 1_700_000_000.0


class FakeClock:
    """Manually advanced epoch clock; ``sleep`` advances it."""

    def __init__(self, start: float = START):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeVenue(VenueAdapter):
    """In-memory venue; orders placed are recorded and become open orders."""

    info = ExchangeInfo(
        code="FAKE",
        name="Fake Exchange",
        url="https://fake.example",
        rest=Endpoint(rest="https://api.fake.example"),
    )
    supports_stop_loss = True
    supports_oco = True
    leveraged_suffixes = ("UP", "DOWN")
    held_whole = ("BNB",)

    def __init__(self, governor: RequestGovernor, **kwargs: Any):
        super().__init__(governor, **kwargs)
        self.markets = [
            Market(name="BTC/USDT", base="BTC", quote="USDT"),
            Market(name="ETH/USDT", base="ETH", quote="USDT"),
            Market(name="BNB/USDT", base="BNB", quote="USDT"),
            Market(name="BTCUP/USDT", base="BTCUP", quote="USDT"),
            Market(name="ETH/BTC", base="ETH", quote="BTC"),
        ]
        self.precisions = {m.name: Precision(price=2, size=4) for m in self.markets}
        self.books: dict[str, dict[str, RawBook]] = defaultdict(dict)
        self.tickers: dict[str, float] = {}
        self.stats: dict[str, Stats] = {}
        self.open_orders: list[Order] = []
        self.closed_orders: list[Order] = []
        self.submitted: list[OrderRequest] = []
        self.cancelled: list[Order] = []
        self.rejections: list[Exception] = []
        self.fetches = 0
        self._ids = 0

    def get_client(self, permission: Any) -> Any:
        return self

    def _fetch_markets(self) -> list[Market]:
        return list(self.markets)

    def _fetch_precisions(self) -> dict[str, Precision]:
        self.fetches += 1
        return dict(self.precisions)

    def get_book(self, market: str, side: str) -> RawBook:
        return list(self.books[market].get(side, []))

    def get_ticker(self, market: str) -> float:
        return self.tickers[market]

    def get_24h(self, market: str) -> Stats:
        return self.stats[market]

    def get_opened(self, market: Optional[str] = None) -> list[Order]:
        return [o for o in self.open_orders if market is None or o.market == market]

    def get_closed(
        self,
        markets: Optional[Collection[str]] = None,
        since: Optional[datetime] = None,
    ) -> list[Order]:
        return [o for o in self.closed_orders if not markets or o.market in markets]

    def _submit(self, request: OrderRequest) -> str:
        if self.rejections:
            raise self.rejections.pop(0)
        self.submitted.append(request)
        self._ids += 1
        order_id = f"o{self._ids}"
        if request.kind == OrderType.LIMIT or request.variant != OrderVariant.ORDER:
            self.open_orders.append(Order(
                side=request.side,
                market=request.market,
                size=request.size,
                price=request.price,
                id=order_id,
                client_id=request.client_id,
                stop_price=request.stop_price,
            ))
        return order_id

    def cancel_order(self, order: Order) -> None:
        self.cancelled.append(order)
        self.open_orders = [o for o in self.open_orders if o.key != order.key]

    # -- test helpers ---------------------------------------------------------

    def fill(self, order_id: str, price: Optional[float] = None) -> Order:
        """Move an open order to the filled list."""
        order = next(o for o in self.open_orders if o.id == order_id)
        self.open_orders.remove(order)
        filled = Order(
            side=order.side,
            market=order.market,
            size=order.size,
            price=price if price is not None else order.price,
            id=order.id,
            client_id=order.client_id,
            stop_price=order.stop_price,
        )
        self.closed_orders.append(filled)
        return filled

    def add_open(self, side: OrderSide, market: str, size: float, price: float,
                 client_id: Optional[str] = None) -> Order:
        self._ids += 1
        order = Order(side=side, market=market, size=size, price=price,
                      id=f"x{self._ids}", client_id=client_id)
        self.open_orders.append(order)
        return order


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_path(tmp_path: Path) -> Path:
    path = tmp_path / "session"
    path.mkdir()
    return path


@pytest.fixture
def store(session_path: Path) -> SessionStore:
    return SessionStore("FAKE", session_path)


@pytest.fixture
def governor(store: SessionStore, clock: FakeClock) -> RequestGovernor:
    return RequestGovernor("FAKE", FixedRate(1000), store=store, clock=clock, sleep=clock.sleep)


@pytest.fixture
def venue(governor: RequestGovernor, session_path: Path, clock: FakeClock) -> FakeVenue:
    return FakeVenue(governor, call_store=CallStore("FAKE", session_path), clock=clock)


@pytest.fixture
def btc_market(venue: FakeVenue) -> FakeVenue:
    """Venue with a BTC/USDT ticker of 100 and a 24h range of 90..110."""
    venue.tickers["BTC/USDT"] = 100.0
    venue.stats["BTC/USDT"] = Stats(market="BTC/USDT", high=110.0, low=90.0, btc_volume=50.0)
    return venue


class PlainVenue(FakeVenue):
    """Fake venue without stop-loss or OCO orders."""
    supports_stop_loss = False
    supports_oco = False


@pytest.fixture
def plain_venue(governor: RequestGovernor, session_path: Path, clock: FakeClock) -> PlainVenue:
    return PlainVenue(governor, call_store=CallStore("FAKE", session_path), clock=clock)
