"""Bitstamp."""

from ..errors import BelowMinNotional, OrderNotPlaced
from ..governor import FixedRate
from ..models.market import Endpoint, ExchangeInfo
from .ccxt_venue import CcxtVenue


class Bitstamp(CcxtVenue):
    info = ExchangeInfo(
        code="BTSP",
        name="Bitstamp",
        url="https://www.bitstamp.net",
        rest=Endpoint(rest="https://www.bitstamp.net/api/v2", websocket="wss://ws.bitstamp.net"),
        country="LU",
    )

    ccxt_id = "bitstamp"
    match_size = True
    business_errors = (
        ("order could not be placed", OrderNotPlaced),
        ("minimum order size", BelowMinNotional),
    )

    @classmethod
    def pacing_policy(cls) -> FixedRate:
        return FixedRate(rps=10)
