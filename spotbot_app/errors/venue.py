"""
Venue error classifications for outbound exchange calls.

Every exception raised by the wire layer is translated into one of these
before it leaves a venue adapter, so callers never see library-specific
exception types.
"""

from typing import Optional, Dict, Any


class VenueError(Exception):
    """Base class for failures reported by, or while talking to, a venue."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 venue: Optional[str] = None, market: Optional[str] = None):
        super().__init__(message)
        self.context = context or {}
        self.venue = venue
        self.market = market
        self.recoverable = True

    def with_context(self, **context: Any) -> "VenueError":
        """Attach call-site context (market, side, price...) and return self."""
        if "market" in context and self.market is None:
            self.market = context["market"]
        self.context.update(context)
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.market:
            return f"{message} (market: {self.market})"
        return message


class RateLimitExceeded(VenueError):
    """HTTP 429 or an equivalent "too many requests" rejection."""

    def __init__(self, message: str, endpoint: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.endpoint = endpoint


class TransientNetworkError(VenueError):
    """DNS failure, connection reset or socket timeout."""

    def __init__(self, message: str, endpoint: Optional[str] = None,
                 attempts: int = 1, **kwargs):
        super().__init__(message, **kwargs)
        self.endpoint = endpoint
        self.attempts = attempts


class VenueAuthenticationError(VenueError):
    """Missing or rejected API credentials. Fatal at setup time."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.recoverable = False


class VenueBusinessError(VenueError):
    """A well-formed rejection of an order request by the venue."""

    def __init__(self, message: str, side: Optional[str] = None,
                 price: Optional[float] = None, size: Optional[float] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.side = side
        self.price = price
        self.size = size


class BelowMinNotional(VenueBusinessError):
    """Order value is below the venue minimum notional."""

    def __init__(self, message: str, min_notional: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.min_notional = min_notional


class TooManyAlgoOrders(VenueBusinessError):
    """Venue limit on concurrently open stop/OCO orders was reached."""


class WouldTriggerImmediately(VenueBusinessError):
    """Stop price is on the wrong side of the ticker."""


class StopLossNotSupported(VenueBusinessError):
    """Venue (or this market) rejects the requested stop order type."""


class OrderNotPlaced(VenueBusinessError):
    """Venue accepted the request but reported that no order was created."""


class InsufficientFunds(VenueBusinessError):
    """Account balance does not cover the order."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.recoverable = False
