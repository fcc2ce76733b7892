"""
Venue-reported orders and the helpers used to diff poll snapshots.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from .metadata import OrderMetadata


class OrderSide(str, Enum):
    """Order side."""
    NONE = "none"
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order kind submitted to a venue."""
    NONE = "none"
    LIMIT = "limit"
    MARKET = "market"


@dataclass(frozen=True)
class Order:
    """Read-only snapshot of an order as reported by the venue."""
    side: OrderSide
    market: str
    size: float
    price: float
    created_at: Optional[datetime] = None
    id: str = ""
    client_id: Optional[str] = None
    stop_price: Optional[float] = None      # Set for stop-loss / OCO stop legs

    @property
    def value(self) -> float:
        return self.size * self.price

    @property
    def is_stop(self) -> bool:
        """True for a stop-loss order or an engine-placed stop-leg sell."""
        if self.stop_price:
            return True
        metadata = self.metadata
        return metadata is not None and metadata.stop_leg

    @property
    def metadata(self) -> Optional[OrderMetadata]:
        """Engine metadata decoded from the client order id, if any."""
        return OrderMetadata.decode(self.client_id)

    @property
    def key(self) -> str:
        """Identity used to diff snapshots; venues without ids fall back to shape."""
        if self.id:
            return self.id
        return f"{self.market}:{self.side.value}:{self.size}:{self.price}"


def index_by_price(orders: Iterable[Order], price: float) -> int:
    """Position of the first order at ``price``, -1 when absent."""
    for i, order in enumerate(orders):
        if order.price == price:
            return i
    return -1


def by_side(orders: Iterable[Order], side: OrderSide) -> list[Order]:
    return [o for o in orders if o.side == side]
