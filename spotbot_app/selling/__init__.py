"""
Sell strategy engine.

Tracks fills and cancellations per account and manages the follow-up sell,
stop-loss and OCO orders under the selected strategy.
"""

from .engine import SellEngine
from .notify import EventKind, Notifier, NotifyLevel
from .options import SellOptions

__all__ = ["SellEngine", "SellOptions", "Notifier", "NotifyLevel", "EventKind"]
