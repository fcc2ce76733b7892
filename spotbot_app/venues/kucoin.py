"""KuCoin."""

from ..errors import BelowMinNotional, StopLossNotSupported
from ..governor import FixedRate
from ..models.market import Endpoint, ExchangeInfo
from .ccxt_venue import CcxtVenue


class Kucoin(CcxtVenue):
    info = ExchangeInfo(
        code="KUCN",
        name="KuCoin",
        url="https://www.kucoin.com",
        rest=Endpoint(rest="https://api.kucoin.com"),
        sandbox=Endpoint(rest="https://openapi-sandbox.kucoin.com"),
    )

    ccxt_id = "kucoin"
    supports_stop_loss = True
    leveraged_suffixes = ("3L", "3S")
    business_errors = (
        ("stop order is not supported", StopLossNotSupported),
        ("funds should more than", BelowMinNotional),
        ("size should be greater", BelowMinNotional),
    )

    @classmethod
    def pacing_policy(cls) -> FixedRate:
        return FixedRate(rps=30)
