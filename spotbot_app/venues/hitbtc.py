"""HitBTC."""

from ..errors import BelowMinNotional
from ..governor import FixedRate
from ..models.market import Endpoint, ExchangeInfo
from .ccxt_venue import CcxtVenue


class HitBTC(CcxtVenue):
    info = ExchangeInfo(
        code="HITB",
        name="HitBTC",
        url="https://hitbtc.com",
        rest=Endpoint(rest="https://api.hitbtc.com/api/3", websocket="wss://api.hitbtc.com/api/3/ws"),
        sandbox=Endpoint(rest="https://api.demo.hitbtc.com/api/3"),
    )

    ccxt_id = "hitbtc"
    business_errors = (
        ("quantity too low", BelowMinNotional),
    )

    @classmethod
    def pacing_policy(cls) -> FixedRate:
        return FixedRate(rps=10)
