"""
Order-book levels and planned orders (calls).

An aggregated book never holds two levels at the same price. Calls are
built from levels by the buy planner and mutated in place (sized, deviated,
marked to skip) before submission.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from ..utils.precision import round_to
from .order import OrderType


class BookSide(str, Enum):
    """Side of the order book."""
    BIDS = "bids"
    ASKS = "asks"


@dataclass(frozen=True)
class BookLevel:
    """One (aggregated) price level of a book."""
    market: str
    price: float
    size: float

    @property
    def value(self) -> float:
        return self.price * self.size


def _parse_price(text: Optional[str]) -> Optional[float]:
    if text is None or not str(text).strip():
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if value > 0 else None


@dataclass
class Call:
    """A planned buy order."""
    market: str
    price: float                    # Support level price (0 only on market orders)
    size: float                     # Quantity to buy
    skip: bool = False
    reason: str = ""
    stop: Optional[str] = None      # Optional stop price, as entered
    target: Optional[str] = None    # Optional take-profit price, as entered
    limit: Optional[float] = None   # Deviated limit price, set at submission time

    @classmethod
    def from_level(cls, level: BookLevel, size: float, **kwargs) -> "Call":
        return cls(market=level.market, price=level.price, size=size, **kwargs)

    def ignore(self, reason: str) -> None:
        """Mark this call so it is never submitted."""
        self.skip = True
        self.reason = reason

    @property
    def stop_price(self) -> Optional[float]:
        return _parse_price(self.stop)

    @property
    def target_price(self) -> Optional[float]:
        return _parse_price(self.target)

    @property
    def has_stop(self) -> bool:
        return self.stop_price is not None

    @property
    def has_target(self) -> bool:
        return self.target_price is not None

    @property
    def effective_price(self) -> float:
        """Price the order will actually be placed at."""
        if self.limit:
            return self.limit
        return self.price

    def corrupt(self, kind: OrderType) -> Optional[str]:
        """Reason this call must not be sent, or None when it is sound."""
        if self.size <= 0:
            return "nothing to buy"
        if kind == OrderType.LIMIT and self.price <= 0:
            return "limit order without a limit"
        target = self.target_price
        if target is not None and target < self.price:
            return f"sell target {target:.8f} is lower than buy zone {self.price:.8f}"
        return None

    def deviate(self, mult: float, prec: int) -> None:
        """
        Compute the limit price from the support price and a deviation
        multiplier. A call without a price keeps no limit.
        """
        if self.price <= 0:
            self.limit = None
            return
        self.limit = round_to(self.price * mult, prec) if mult and mult != 1 else round_to(self.price, prec)


def call_index(calls: Iterable[Call], price: float, size: Optional[float] = None) -> int:
    """
    Position of the first live call placed at ``price`` (and ``size`` when
    given), -1 when absent.
    """
    for i, call in enumerate(calls):
        if call.skip:
            continue
        if call.effective_price != price:
            continue
        if size is not None and call.size != size:
            continue
        return i
    return -1


def live_calls(calls: Iterable[Call]) -> list[Call]:
    return [c for c in calls if not c.skip]
