"""Huobi (HTX)."""

from ..errors import BelowMinNotional
from ..governor import FixedRate
from ..models.market import Endpoint, ExchangeInfo
from .ccxt_venue import CcxtVenue


class Huobi(CcxtVenue):
    info = ExchangeInfo(
        code="HUBI",
        name="Huobi",
        url="https://www.htx.com",
        rest=Endpoint(rest="https://api.huobi.pro", websocket="wss://api.huobi.pro/ws"),
        country="SC",
    )

    ccxt_id = "htx"
    leveraged_suffixes = ("3L", "3S")
    business_errors = (
        ("order-value-min-error", BelowMinNotional),
        ("order-limitorder-amount-min-error", BelowMinNotional),
    )

    @classmethod
    def pacing_policy(cls) -> FixedRate:
        return FixedRate(rps=10)
