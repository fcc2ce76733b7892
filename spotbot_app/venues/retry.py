"""
Bounded, tagged retry policy for venue business rejections.

Each rule reads "on error class X (for order variant V), apply adjustment Y,
at most N times". Adjustments are pure: they return a new request, or None
when the rejection cannot be worked around, in which case the original
error surfaces.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional, TypeVar

from ..errors import (
    BelowMinNotional,
    OrderNotPlaced,
    StopLossNotSupported,
    TooManyAlgoOrders,
    VenueBusinessError,
    WouldTriggerImmediately,
)
from ..logging.config import get_venue_logger
from ..models.market import Precision
from ..models.order import OrderSide, OrderType
from ..utils.precision import ceil_to, multiply

logger = get_venue_logger(__name__)

T = TypeVar("T")


class OrderVariant(str, Enum):
    """Shape of an order request."""
    ORDER = "order"             # Plain limit or market order
    STOP_LOSS = "stop_loss"     # Stop order, limit or market once triggered
    OCO = "oco"                 # Target limit + stop, one cancels the other


@dataclass(frozen=True)
class OrderRequest:
    """Everything needed to submit one order."""
    variant: OrderVariant
    side: OrderSide
    market: str
    size: float
    price: float = 0.0                      # Limit / target price, 0 for market
    kind: OrderType = OrderType.LIMIT
    stop_price: Optional[float] = None
    client_id: Optional[str] = None

    def describe(self) -> dict:
        return {
            "variant": self.variant.value,
            "side": self.side.value,
            "market": self.market,
            "size": self.size,
            "price": self.price,
            "kind": self.kind.value,
            "stop_price": self.stop_price,
        }


Adjustment = Callable[[OrderRequest, VenueBusinessError, Precision], Optional[OrderRequest]]


@dataclass(frozen=True)
class RetryRule:
    """On ``error``, for any of ``variants``, apply ``adjust`` at most ``max_attempts`` times."""
    name: str
    error: type
    adjust: Adjustment
    max_attempts: int
    variants: frozenset = field(default_factory=lambda: frozenset(OrderVariant))

    def matches(self, error: VenueBusinessError, request: OrderRequest) -> bool:
        return isinstance(error, self.error) and request.variant in self.variants


def lower_stop(request: OrderRequest, error: VenueBusinessError,
               precision: Precision) -> Optional[OrderRequest]:
    """Move the stop (and a stop-limit price) 1% further away from the ticker."""
    if request.stop_price is None:
        return None
    stop = multiply(request.stop_price, 0.99, precision.price)
    if stop <= 0:
        return None
    price = request.price
    if request.variant == OrderVariant.STOP_LOSS and request.kind == OrderType.LIMIT and price:
        price = multiply(price, 0.99, precision.price)
    return replace(request, stop_price=stop, price=price)


def stop_to_plain(request: OrderRequest, error: VenueBusinessError,
                  precision: Precision) -> Optional[OrderRequest]:
    """
    Downgrade a stop order: a market-on-trigger stop becomes a stop-limit,
    a stop-limit becomes a plain limit at the stop price.
    """
    if request.variant != OrderVariant.STOP_LOSS or request.stop_price is None:
        return None
    if request.kind == OrderType.MARKET:
        return replace(request, kind=OrderType.LIMIT, price=request.stop_price)
    return replace(
        request,
        variant=OrderVariant.ORDER,
        kind=OrderType.LIMIT,
        price=request.stop_price,
        stop_price=None,
    )


def split_oco(request: OrderRequest, error: VenueBusinessError,
              precision: Precision) -> Optional[OrderRequest]:
    """
    Keep the target leg of a rejected OCO as a plain limit order. The stop
    leg is enforced by the sell engine from the order metadata.
    """
    if request.variant != OrderVariant.OCO:
        return None
    return replace(
        request,
        variant=OrderVariant.ORDER,
        kind=OrderType.LIMIT,
        stop_price=None,
    )


def resubmit(request: OrderRequest, error: VenueBusinessError,
             precision: Precision) -> Optional[OrderRequest]:
    return request


def raise_to_min_notional(request: OrderRequest, error: VenueBusinessError,
                          precision: Precision) -> Optional[OrderRequest]:
    """Raise the size until size x price covers the minimum notional."""
    minimum = getattr(error, "min_notional", None) or precision.min_notional
    price = request.price or request.stop_price or 0
    if not minimum or price <= 0:
        return None
    size = ceil_to(minimum / price, precision.size)
    if size <= request.size:
        return None
    return replace(request, size=size)


DEFAULT_RULES = (
    RetryRule("lower-stop", WouldTriggerImmediately, lower_stop, 10,
              frozenset({OrderVariant.STOP_LOSS, OrderVariant.OCO})),
    RetryRule("stop-to-plain", StopLossNotSupported, stop_to_plain, 2,
              frozenset({OrderVariant.STOP_LOSS})),
    RetryRule("split-oco", StopLossNotSupported, split_oco, 1,
              frozenset({OrderVariant.OCO})),
    RetryRule("split-oco", TooManyAlgoOrders, split_oco, 1,
              frozenset({OrderVariant.OCO})),
    RetryRule("resubmit", OrderNotPlaced, resubmit, 10),
    RetryRule("min-notional", BelowMinNotional, raise_to_min_notional, 1,
              frozenset({OrderVariant.ORDER})),
)


class BusinessRetryPolicy:
    """Applies retry rules to a submission until it succeeds or the rules run out."""

    def __init__(self, rules: tuple = DEFAULT_RULES):
        self.rules = rules

    def rule_for(self, error: VenueBusinessError, request: OrderRequest) -> Optional[RetryRule]:
        for rule in self.rules:
            if rule.matches(error, request):
                return rule
        return None

    def run(
        self,
        request: OrderRequest,
        submit: Callable[[OrderRequest], T],
        precision: Precision,
    ) -> tuple[T, OrderRequest]:
        """
        Submit ``request``, adjusting and resubmitting on business errors.

        Returns:
            The submission result and the request that was finally accepted

        Raises:
            VenueBusinessError: When no rule applies or a rule is exhausted
        """
        attempts: dict[str, int] = {}
        while True:
            try:
                return submit(request), request
            except VenueBusinessError as e:
                rule = self.rule_for(e, request)
                if rule is None:
                    raise
                used = attempts.get(rule.name, 0)
                if used >= rule.max_attempts:
                    raise
                adjusted = rule.adjust(request, e, precision)
                if adjusted is None:
                    raise
                attempts[rule.name] = used + 1
                logger.info(
                    "Adjusting rejected order",
                    rule=rule.name,
                    attempt=used + 1,
                    error=str(e),
                    before=request.describe(),
                    after=adjusted.describe(),
                )
                request = adjusted
