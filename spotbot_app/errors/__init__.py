"""
Structured error classification for the trading engine.

This module provides the exception hierarchy used across venue calls,
support resolution and the sell strategy loop.
"""

from .venue import (
    VenueError,
    RateLimitExceeded,
    TransientNetworkError,
    VenueAuthenticationError,
    VenueBusinessError,
    BelowMinNotional,
    TooManyAlgoOrders,
    WouldTriggerImmediately,
    StopLossNotSupported,
    OrderNotPlaced,
    InsufficientFunds,
)
from .aggregation import (
    AggregationExhausted,
    OrderBookTooThin,
    AskingTooMuch,
)
from .system_failures import (
    SystemFailureError,
    StrategyNotImplemented,
    GovernorStateError,
    PersistenceError,
    ConfigurationError,
)

__all__ = [
    # Venue Errors
    "VenueError",
    "RateLimitExceeded",
    "TransientNetworkError",
    "VenueAuthenticationError",
    "VenueBusinessError",
    "BelowMinNotional",
    "TooManyAlgoOrders",
    "WouldTriggerImmediately",
    "StopLossNotSupported",
    "OrderNotPlaced",
    "InsufficientFunds",
    # Aggregation Errors
    "AggregationExhausted",
    "OrderBookTooThin",
    "AskingTooMuch",
    # System Failures
    "SystemFailureError",
    "StrategyNotImplemented",
    "GovernorStateError",
    "PersistenceError",
    "ConfigurationError",
]
