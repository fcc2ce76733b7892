"""Default configuration parameters for the spotbot trading engine."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GovernorParams:
    """Request pacing and session-file parameters."""
    session_dir_name: str = "com.spotbot.session"   # Under the system temp dir
    socket_timeout_seconds: float = 30.0            # Per outbound call
    cooldown_seconds: float = 60.0                  # One-shot wait after a 429
    transient_retry_attempts: int = 3               # Where a venue opts in
    transient_retry_delay_seconds: float = 5.0


@dataclass(frozen=True)
class AggregationParams:
    """Support search parameters. Empirically tuned, keep verbatim."""
    start_agg: float = 500.0
    ladder: tuple[float, ...] = (0.5, 0.4, 0.5, 0.5, 0.8, 0.5, 0.5)
    agg_decimals: int = 8
    min_agg: float = 1e-8                           # Underflow floor
    min_target_count: int = 4                       # cnt = max(top, this)
    lowest_count: int = 1                           # cnt sweep stops here


@dataclass(frozen=True)
class PlannerParams:
    """Buy planner sizing parameters."""
    dca_step: float = 0.2                           # Per currently open sell
    reserve_min_size: dict[str, float] = field(
        default_factory=lambda: {"BTC": 0.0001, "ETH": 0.001}
    )
    hold_fraction: float = 0.2                      # Sold share of a held asset


@dataclass(frozen=True)
class SellParams:
    """Sell strategy engine parameters."""
    default_mult: float = 1.05                      # Take-profit multiplier
    default_stop: float = 0.95                      # Stop multiplier
    poll_interval_seconds: float = 60.0
    filled_window_hours: int = 24                   # Closed-order look-back
    trail_band_pct: float = 1.0                     # Ticker within this % of limit triggers re-pricing
    dca_rebuy_mult: float = 2.0                     # Re-buy size after a stop-loss fill
    precision_refresh_minutes: int = 60


@dataclass(frozen=True)
class FeedParams:
    """Push-feed parameters for venues that stream order updates."""
    reconnect_delay_seconds: float = 5.0
    maintenance_interval_seconds: float = 60.0


@dataclass(frozen=True)
class NotifyParams:
    """Notification filtering."""
    level: int = 2                                  # 0 none, 1 errors, 2 default, 3 all


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    governor: GovernorParams
    aggregation: AggregationParams
    planner: PlannerParams
    sell: SellParams
    feed: FeedParams
    notify: NotifyParams


def get_default_config() -> DefaultConfig:
    """Get default configuration instance."""
    return DefaultConfig(
        governor=GovernorParams(),
        aggregation=AggregationParams(),
        planner=PlannerParams(),
        sell=SellParams(),
        feed=FeedParams(),
        notify=NotifyParams(),
    )
