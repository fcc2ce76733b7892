"""
Generic ccxt-backed venue adapter.

ccxt handles request signing and response parsing; this module only maps
ccxt structures onto our models, routes every call through the venue's
request governor and translates ccxt exceptions into our error taxonomy.
ccxt's own rate limiter is disabled so the governor is the single source
of pacing across processes.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Collection, Optional

import ccxt
from ccxt.base.decimal_to_precision import TICK_SIZE

from ..config.defaults import DefaultConfig
from ..errors import (
    InsufficientFunds,
    RateLimitExceeded,
    StopLossNotSupported,
    TransientNetworkError,
    VenueAuthenticationError,
    VenueBusinessError,
    VenueError,
)
from ..governor import RequestGovernor
from ..models.market import Market, Permission, Precision, Stats
from ..models.order import Order, OrderSide, OrderType
from ..persistence import CallStore
from ..utils.precision import parse_precision, round_to
from ..utils.time import from_millis
from .base import RawBook, VenueAdapter
from .retry import OrderRequest, OrderVariant

BOOK_DEPTH = 100


@dataclass(frozen=True)
class Credentials:
    """API credentials for private endpoints."""
    api_key: str
    secret: str
    password: Optional[str] = None

    @classmethod
    def from_env(cls, venue_code: str) -> Optional["Credentials"]:
        """Read ``SPOTBOT_<CODE>_KEY``/``_SECRET``/``_PASSWORD``; None when unset."""
        prefix = f"SPOTBOT_{venue_code.upper()}_"
        key = os.environ.get(prefix + "KEY")
        secret = os.environ.get(prefix + "SECRET")
        if not key or not secret:
            return None
        return cls(api_key=key, secret=secret, password=os.environ.get(prefix + "PASSWORD"))


class CcxtVenue(VenueAdapter):
    """Venue adapter on top of a ccxt exchange class."""

    ccxt_id: str = ""
    ccxt_options: dict[str, Any] = {}
    # Endpoint weights for weight-budgeted venues
    weights: dict[str, int] = {}
    # Closed-order history can only be queried one market at a time
    history_requires_market: bool = False
    # Lower-cased message fragment -> business error class, first match wins
    business_errors: tuple[tuple[str, type], ...] = ()

    def __init__(
        self,
        governor: RequestGovernor,
        config: Optional[DefaultConfig] = None,
        credentials: Optional[Credentials] = None,
        sandbox: bool = False,
        call_store: Optional[CallStore] = None,
        client_factory: Optional[Callable[[dict[str, Any]], Any]] = None,
        **kwargs: Any
    ):
        super().__init__(governor, config=config, call_store=call_store, **kwargs)
        self.credentials = credentials
        self.sandbox = sandbox
        self.client_factory = client_factory or getattr(ccxt, self.ccxt_id)
        self._clients: dict[bool, Any] = {}

    # -- client ------------------------------------------------------------

    def _client_config(self, private: bool) -> dict[str, Any]:
        config: dict[str, Any] = {
            "enableRateLimit": False,
            "timeout": int(self.config.governor.socket_timeout_seconds * 1000),
            "options": dict(self.ccxt_options),
        }
        if private:
            if self.credentials is None:
                raise VenueAuthenticationError(
                    f"{self.info.name} API key and secret are required",
                    venue=self.code,
                )
            config["apiKey"] = self.credentials.api_key
            config["secret"] = self.credentials.secret
            if self.credentials.password:
                config["password"] = self.credentials.password
        return config

    def get_client(self, permission: Permission) -> Any:
        private = permission == Permission.PRIVATE
        if private not in self._clients:
            client = self.client_factory(self._client_config(private))
            if self.sandbox:
                client.set_sandbox_mode(True)
            self._clients[private] = client
        return self._clients[private]

    # -- governed calls ----------------------------------------------------

    def translate_error(self, error: Exception, endpoint: str) -> Exception:
        """Map a ccxt exception onto our error taxonomy."""
        message = str(error)
        if isinstance(error, ccxt.RateLimitExceeded) or isinstance(error, ccxt.DDoSProtection):
            return RateLimitExceeded(message, endpoint=endpoint, venue=self.code)
        if isinstance(error, (ccxt.AuthenticationError, ccxt.PermissionDenied,
                              ccxt.AccountSuspended)):
            return VenueAuthenticationError(message, venue=self.code)
        if isinstance(error, ccxt.InsufficientFunds):
            return InsufficientFunds(message, venue=self.code)
        if isinstance(error, ccxt.InvalidOrder):
            return self.translate_business(message)
        if isinstance(error, ccxt.NetworkError):
            return TransientNetworkError(message, endpoint=endpoint, venue=self.code)
        if isinstance(error, ccxt.BaseError):
            lowered = message.lower()
            if any(fragment in lowered for fragment, _ in self.business_errors):
                return self.translate_business(message)
            error = VenueError(message, venue=self.code)
            error.recoverable = False
            return error
        return error

    def translate_business(self, message: str) -> VenueBusinessError:
        lowered = message.lower()
        for fragment, error_cls in self.business_errors:
            if fragment in lowered:
                return error_cls(message, venue=self.code)
        return VenueBusinessError(message, venue=self.code)

    def _call(
        self,
        endpoint: str,
        method: str,
        *args: Any,
        permission: Permission = Permission.PUBLIC,
        weight: Optional[int] = None,
        **kwargs: Any
    ) -> Any:
        """Invoke a ccxt client method under the governor."""
        client = self.get_client(permission)
        fn = getattr(client, method)

        def invoke() -> Any:
            try:
                return fn(*args, **kwargs)
            except ccxt.BaseError as e:
                raise self.translate_error(e, endpoint) from e

        if weight is None:
            weight = self.weights.get(endpoint, 1)
        return self.governor.execute(endpoint, invoke, weight=weight)

    # -- markets -----------------------------------------------------------

    def _load_markets(self, reload: bool = False) -> dict[str, Any]:
        return self._call("markets", "load_markets", reload)

    def _fetch_markets(self) -> list[Market]:
        markets = self._load_markets(reload=True)
        return [
            Market(name=symbol, base=m["base"], quote=m["quote"])
            for symbol, m in markets.items()
            if m.get("spot", True) and m.get("active") is not False
        ]

    def _to_decimals(self, value: Any, client: Any) -> int:
        if value is None:
            return 8
        if getattr(client, "precisionMode", None) == TICK_SIZE:
            return parse_precision(str(value))
        return int(value)

    def _fetch_precisions(self) -> dict[str, Precision]:
        markets = self._load_markets(reload=True)
        client = self.get_client(Permission.PUBLIC)
        precisions = {}
        for symbol, m in markets.items():
            precision = m.get("precision") or {}
            cost = (m.get("limits") or {}).get("cost") or {}
            precisions[symbol] = Precision(
                price=self._to_decimals(precision.get("price"), client),
                size=self._to_decimals(precision.get("amount"), client),
                min_notional=float(cost.get("min") or 0.0),
            )
        return precisions

    # -- market data -------------------------------------------------------

    def get_book(self, market: str, side: str) -> RawBook:
        book = self._call("depth", "fetch_order_book", market, BOOK_DEPTH)
        return [(float(level[0]), float(level[1])) for level in book.get(side, [])]

    def get_ticker(self, market: str) -> float:
        ticker = self._call("ticker", "fetch_ticker", market)
        return round_to(float(ticker["last"]), self.get_price_precision(market))

    def get_24h(self, market: str) -> Stats:
        ticker = self._call("ticker", "fetch_ticker", market)
        info = self.get_market(market)
        quote_volume = float(ticker.get("quoteVolume") or 0.0)
        if info.quote == "BTC":
            btc_volume = quote_volume
        elif info.base == "BTC":
            btc_volume = float(ticker.get("baseVolume") or 0.0)
        else:
            btc_volume = self._quote_to_btc(info.quote, quote_volume)
        return Stats(
            market=market,
            high=float(ticker.get("high") or 0.0),
            low=float(ticker.get("low") or 0.0),
            btc_volume=btc_volume,
        )

    def _quote_to_btc(self, quote: str, amount: float) -> float:
        symbol = self.format_market("BTC", quote)
        try:
            price = self.get_ticker(symbol)
        except VenueError:
            return 0.0
        return amount / price if price else 0.0

    # -- orders ------------------------------------------------------------

    def _to_order(self, raw: dict[str, Any], filled: bool = False) -> Order:
        size = raw.get("filled") if filled else raw.get("amount")
        price = raw.get("average") if filled else None
        return Order(
            side=OrderSide(raw["side"].lower()) if raw.get("side") else OrderSide.NONE,
            market=raw["symbol"],
            size=float(size or raw.get("amount") or 0.0),
            price=float(price or raw.get("price") or 0.0),
            created_at=from_millis(raw.get("timestamp")),
            id=str(raw.get("id") or ""),
            client_id=raw.get("clientOrderId"),
            stop_price=raw.get("stopPrice") or raw.get("triggerPrice"),
        )

    def get_opened(self, market: Optional[str] = None) -> list[Order]:
        raw = self._call("openOrders", "fetch_open_orders", market,
                         permission=Permission.PRIVATE,
                         weight=self.weights.get("openOrders" if market else "openOrders:all", 1))
        return [self._to_order(o) for o in raw]

    def get_closed(
        self,
        markets: Optional[Collection[str]] = None,
        since: Optional[datetime] = None,
    ) -> list[Order]:
        since_ms = int(since.timestamp() * 1000) if since else None
        if self.history_requires_market:
            raw = []
            for market in sorted(markets or ()):
                raw.extend(self._call("allOrders", "fetch_closed_orders", market, since_ms,
                                      permission=Permission.PRIVATE))
        else:
            raw = self._call("allOrders", "fetch_closed_orders", None, since_ms,
                             permission=Permission.PRIVATE)
            if markets:
                raw = [o for o in raw if o.get("symbol") in markets]
        return [
            self._to_order(o, filled=True)
            for o in raw
            if o.get("status") == "closed" and float(o.get("filled") or 0) > 0
        ]

    def _order_params(self, request: OrderRequest) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if request.client_id:
            params["clientOrderId"] = request.client_id
        return params

    def _submit(self, request: OrderRequest) -> str:
        params = self._order_params(request)
        if request.variant == OrderVariant.OCO:
            return self._submit_oco(request, params)
        if request.variant == OrderVariant.STOP_LOSS:
            params["stopLossPrice"] = request.stop_price
        price = request.price if request.kind == OrderType.LIMIT else None
        order = self._call(
            "order",
            "create_order",
            request.market,
            request.kind.value,
            request.side.value,
            request.size,
            price,
            params,
            permission=Permission.PRIVATE,
        )
        return str(order["id"])

    def _submit_oco(self, request: OrderRequest, params: dict[str, Any]) -> str:
        raise StopLossNotSupported(
            f"{self.info.name} does not support OCO orders",
            venue=self.code,
            market=request.market,
        )

    def cancel_order(self, order: Order) -> None:
        self._call("order", "cancel_order", order.id, order.market,
                   permission=Permission.PRIVATE)
