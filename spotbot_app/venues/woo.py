"""WOO X."""

from ..errors import BelowMinNotional
from ..governor import EndpointIntensity
from ..models.market import Endpoint, ExchangeInfo
from .ccxt_venue import CcxtVenue


class Woo(CcxtVenue):
    info = ExchangeInfo(
        code="WOO",
        name="WOO X",
        url="https://woo.org",
        rest=Endpoint(rest="https://api.woo.org", websocket="wss://wss.woo.org/ws/stream"),
        sandbox=Endpoint(rest="https://api.staging.woo.org"),
    )

    ccxt_id = "woo"
    business_errors = (
        ("notional", BelowMinNotional),
    )

    @classmethod
    def pacing_policy(cls) -> EndpointIntensity:
        return EndpointIntensity()
