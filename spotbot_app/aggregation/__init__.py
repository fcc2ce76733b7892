"""
Aggregation resolver.

Turns a raw bid book into a small set of actionable support levels by
searching for a suitable bucket width.
"""

from .filters import SupportFilter
from .resolver import AggregationResolver, Resolution

__all__ = ["AggregationResolver", "Resolution", "SupportFilter"]
