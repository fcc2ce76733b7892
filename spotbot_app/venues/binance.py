"""Binance and Binance US."""

from typing import Any, Optional

from ..errors import (
    BelowMinNotional,
    StopLossNotSupported,
    TooManyAlgoOrders,
    WouldTriggerImmediately,
)
from ..governor import WeightScaled
from ..models.market import Endpoint, ExchangeInfo, Permission
from ..utils.precision import round_to
from .ccxt_venue import CcxtVenue
from .retry import OrderRequest

_INTERVAL_SECONDS = {"SECOND": 1, "MINUTE": 60, "HOUR": 3600, "DAY": 86400}


def _decimal(value: float, prec: int) -> str:
    return f"{round_to(value, prec):.{max(prec, 0)}f}"


def weight_budget(exchange_info: dict[str, Any]) -> Optional[float]:
    """REQUEST_WEIGHT budget per second from an exchangeInfo response."""
    for limit in exchange_info.get("rateLimits") or []:
        if limit.get("rateLimitType") != "REQUEST_WEIGHT":
            continue
        seconds = _INTERVAL_SECONDS.get(limit.get("interval", ""), 0) * int(limit.get("intervalNum", 1))
        if seconds > 0 and limit.get("limit"):
            return float(limit["limit"]) / seconds
    return None


class Binance(CcxtVenue):
    info = ExchangeInfo(
        code="BINA",
        name="Binance",
        url="https://www.binance.com",
        rest=Endpoint(rest="https://api.binance.com", websocket="wss://stream.binance.com:9443"),
        sandbox=Endpoint(rest="https://testnet.binance.vision", websocket="wss://testnet.binance.vision"),
    )

    ccxt_id = "binance"
    ccxt_options = {"defaultType": "spot"}
    supports_stop_loss = True
    supports_oco = True
    history_requires_market = True
    leveraged_suffixes = ("UP", "DOWN", "BEAR", "BULL")
    held_whole = ("BNB",)
    weights = {
        "depth": 5,
        "ticker": 2,
        "openOrders": 6,
        "openOrders:all": 80,
        "allOrders": 20,
        "markets": 20,
        "exchangeInfo": 20,
    }
    business_errors = (
        ("would trigger immediately", WouldTriggerImmediately),
        ("max_num_algo_orders", TooManyAlgoOrders),
        ("stop loss orders are not supported", StopLossNotSupported),
        ("loss orders are not supported", StopLossNotSupported),
        ("notional", BelowMinNotional),
    )

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        policy = self.governor.policy
        if isinstance(policy, WeightScaled) and policy.fetch_budget is None:
            policy.fetch_budget = lambda: weight_budget(self.fetch_exchange_info())

    @classmethod
    def pacing_policy(cls) -> WeightScaled:
        return WeightScaled(default_budget=20.0)

    def fetch_exchange_info(self) -> dict[str, Any]:
        """Exchange info, fetched once to size the weight budget."""
        return self._call("exchangeInfo", "publicGetExchangeInfo", weight=self.weights["exchangeInfo"])

    def _submit_oco(self, request: OrderRequest, params: dict[str, Any]) -> str:
        precision = self.get_precision(request.market)
        price = _decimal(request.price, precision.price)
        stop = _decimal(request.stop_price or 0.0, precision.price)
        body = {
            "symbol": request.market.replace("/", ""),
            "side": request.side.value.upper(),
            "quantity": _decimal(request.size, precision.size),
            "price": price,
            "stopPrice": stop,
            "stopLimitPrice": stop,
            "stopLimitTimeInForce": "GTC",
        }
        if request.client_id:
            body["listClientOrderId"] = request.client_id
        response = self._call("orderList", "privatePostOrderOco", body,
                              permission=Permission.PRIVATE)
        return str(response["orderListId"])


class BinanceUS(Binance):
    info = ExchangeInfo(
        code="BIUS",
        name="Binance US",
        url="https://www.binance.us",
        rest=Endpoint(rest="https://api.binance.us", websocket="wss://stream.binance.us:9443"),
        country="US",
    )

    ccxt_id = "binanceus"
