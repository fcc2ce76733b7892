"""
Market, venue metadata and 24h statistics models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..utils.precision import round_to


class Permission(str, Enum):
    """Credential scope requested from a venue client."""
    PUBLIC = "public"
    PRIVATE = "private"
    BOOK = "book"


@dataclass(frozen=True)
class Market:
    """Tradable pair, immutable once fetched."""
    name: str           # Venue-native symbol, e.g. BTC/USDT
    base: str           # Asset being bought/sold
    quote: str          # Asset used to pay


@dataclass(frozen=True)
class Stats:
    """Rolling 24h statistics for one market."""
    market: str
    high: float
    low: float
    btc_volume: float = 0.0

    def avg(self, prec: int) -> float:
        """Midpoint of the 24h range, rounded to price precision."""
        return round_to((self.high + self.low) / 2, prec)


@dataclass(frozen=True)
class Endpoint:
    """Base URIs for one environment (live or sandbox)."""
    rest: str
    websocket: Optional[str] = None


@dataclass(frozen=True)
class ExchangeInfo:
    """Static venue metadata, never mutated after construction."""
    code: str                                    # Short code, e.g. BINA
    name: str                                    # Display name
    url: str                                     # Public website
    rest: Endpoint                               # Live API
    sandbox: Optional[Endpoint] = None           # Test environment, if any
    country: str = ""

    def endpoint(self, sandbox: bool = False) -> Endpoint:
        if sandbox and self.sandbox is not None:
            return self.sandbox
        return self.rest


@dataclass(frozen=True)
class Precision:
    """Venue-native precision and limits for one market."""
    price: int                  # Decimals allowed in a price
    size: int                   # Decimals allowed in a quantity
    min_notional: float = 0.0   # Minimum size x price, 0 when unknown
