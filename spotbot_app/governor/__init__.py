"""
Cross-process request governor.

One governor per venue serializes and paces every outbound call, sharing
its state with sibling processes through lock-protected session files.
"""

from .governor import RequestGovernor
from .pacing import (
    EndpointIntensity,
    FixedRate,
    GlobalCooldown,
    PacingDecision,
    PacingPolicy,
    WeightScaled,
)
from .session import SessionStore

__all__ = [
    "RequestGovernor",
    "SessionStore",
    "PacingPolicy",
    "PacingDecision",
    "FixedRate",
    "WeightScaled",
    "EndpointIntensity",
    "GlobalCooldown",
]
