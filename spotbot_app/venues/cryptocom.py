"""Crypto.com Exchange."""

from ..errors import BelowMinNotional
from ..governor import GlobalCooldown
from ..models.market import Endpoint, ExchangeInfo
from .ccxt_venue import CcxtVenue


class CryptoCom(CcxtVenue):
    info = ExchangeInfo(
        code="CRO",
        name="Crypto.com",
        url="https://crypto.com/exchange",
        rest=Endpoint(rest="https://api.crypto.com/exchange/v1",
                      websocket="wss://stream.crypto.com/exchange/v1/user"),
        sandbox=Endpoint(rest="https://uat-api.3ona.co/exchange/v1"),
    )

    ccxt_id = "cryptocom"
    business_errors = (
        ("min_notional", BelowMinNotional),
    )

    @classmethod
    def pacing_policy(cls) -> GlobalCooldown:
        return GlobalCooldown(rps=3, cooldown_seconds=60)
