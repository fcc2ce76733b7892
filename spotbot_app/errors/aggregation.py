"""
Aggregation resolver failure classifications.

Both errors are surfaced per market: a multi-market batch logs them and
moves on, a single-market invocation fails the whole command.
"""

from typing import Optional, Dict, Any


class AggregationExhausted(Exception):
    """Base class for a support search that found no usable aggregation."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 market: Optional[str] = None, dip: Optional[float] = None,
                 cnt: Optional[int] = None, agg: Optional[float] = None):
        super().__init__(message)
        self.context = context or {}
        self.market = market
        self.dip = dip
        self.cnt = cnt
        self.agg = agg
        self.recoverable = True


class OrderBookTooThin(AggregationExhausted):
    """Zero levels survived filtering at every bucket width."""


class AskingTooMuch(AggregationExhausted):
    """Some levels survived, but never enough to satisfy the requested count."""

    def __init__(self, message: str, levels: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.levels = levels
