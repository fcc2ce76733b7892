"""
Coinbase (formerly GDAX / Coinbase Pro).

Fills are delivered over the authenticated websocket order channel through
``ccxt.pro``; the REST side goes through the generic ccxt adapter.
"""

import asyncio
from typing import Any, AsyncIterator, Callable, Optional

import ccxt
import ccxt.pro

from ..errors import BelowMinNotional, StrategyNotImplemented, TransientNetworkError
from ..governor import FixedRate
from ..models.market import Endpoint, ExchangeInfo
from ..models.strategy import Strategy
from ..selling.engine import OrderUpdate, SellEngine
from ..selling.feed import PushFeed
from .ccxt_venue import CcxtVenue

_STATUS = {"open": "open", "closed": "closed", "canceled": "canceled",
           "cancelled": "canceled", "expired": "canceled", "rejected": "canceled"}


class Coinbase(CcxtVenue):
    info = ExchangeInfo(
        code="GDAX",
        name="Coinbase",
        url="https://www.coinbase.com",
        rest=Endpoint(rest="https://api.coinbase.com", websocket="wss://advanced-trade-ws.coinbase.com"),
        sandbox=Endpoint(rest="https://api-sandbox.coinbase.com"),
        country="US",
    )

    ccxt_id = "coinbase"
    retries_transient = True
    business_errors = (
        ("below min", BelowMinNotional),
    )

    def __init__(self, *args: Any,
                 stream_client_factory: Optional[Callable[[dict[str, Any]], Any]] = None,
                 **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.stream_client_factory = stream_client_factory or ccxt.pro.coinbase

    @property
    def supported_strategies(self) -> frozenset:
        return frozenset({Strategy.STANDARD})

    @classmethod
    def pacing_policy(cls) -> FixedRate:
        return FixedRate(rps=3)

    async def stream_orders(self) -> AsyncIterator[list[OrderUpdate]]:
        """Order updates from the websocket feed, one batch per message."""
        client = self.stream_client_factory(self._client_config(private=True))
        try:
            while True:
                try:
                    raw = await client.watch_orders()
                except ccxt.NetworkError as e:
                    raise TransientNetworkError(str(e), endpoint="user", venue=self.code) from e
                yield [
                    OrderUpdate(
                        order=self._to_order(o, filled=o.get("status") == "closed"),
                        status=_STATUS.get(o.get("status") or "", "open"),
                    )
                    for o in raw
                ]
        finally:
            await client.close()

    def run_sell_loop(self, strategy: Strategy, options: Any, notifier: Any = None) -> None:
        if strategy not in self.supported_strategies:
            raise StrategyNotImplemented(
                f"strategy {strategy.value} is not implemented on {self.info.name}",
                strategy=strategy.value,
                venue=self.code,
            )
        engine = SellEngine(self, strategy, options, notifier)
        feed = PushFeed(engine, self.stream_orders, self.config.feed)
        asyncio.run(feed.run())
