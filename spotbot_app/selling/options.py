"""Run options of the sell strategy engine."""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from ..config.defaults import SellParams


@dataclass(frozen=True)
class SellOptions:
    """Per-run knobs, defaulting from :class:`SellParams`."""
    mult: float = 1.05                          # Take-profit multiplier
    stop: float = 0.95                          # Stop multiplier
    hold: frozenset = field(default_factory=frozenset)     # Markets/assets to keep
    earn: frozenset = field(default_factory=frozenset)     # Markets/assets to sell at cost
    markets: frozenset = field(default_factory=frozenset)  # Always-watched markets
    dca: bool = False                           # Re-buy after a stop-loss fill
    poll_interval_seconds: float = 60.0
    filled_window_hours: int = 24
    trail_band_pct: float = 1.0
    dca_rebuy_mult: float = 2.0

    @classmethod
    def from_params(cls, params: Optional[SellParams] = None, **overrides: Any) -> "SellOptions":
        params = params or SellParams()
        options = cls(
            mult=params.default_mult,
            stop=params.default_stop,
            poll_interval_seconds=params.poll_interval_seconds,
            filled_window_hours=params.filled_window_hours,
            trail_band_pct=params.trail_band_pct,
            dca_rebuy_mult=params.dca_rebuy_mult,
        )
        for name in ("hold", "earn", "markets"):
            if name in overrides and overrides[name] is not None:
                overrides[name] = frozenset(overrides[name])
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(options, **overrides)
