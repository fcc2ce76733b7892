"""
Per-venue pacing policies.

A policy turns (endpoint, weight, persisted state) into a requests-per-second
figure for the call about to be made, and updates the persisted state when
the venue answers with a rate-limit error. Policies are consulted with the
venue lock held and must not perform network calls inside ``decide``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from ..logging.config import get_governor_logger
from .session import SessionStore

logger = get_governor_logger(__name__)

# Path intensities, in seconds per request
LOW = 1
TWO = 2
SUPER = 60


@dataclass(frozen=True)
class PacingDecision:
    """Rate to apply to one outbound call."""
    rps: float
    cooled: bool = False        # A one-shot cooldown was consumed

    @property
    def spacing(self) -> float:
        """Minimum seconds since the previous request."""
        if self.rps <= 0:
            return 0.0
        return 1.0 / self.rps


class PacingPolicy(ABC):
    """Strategy deciding how fast one venue may be called."""

    # Rate-limited calls are retried until they succeed
    retry_forever: bool = False

    def prepare(self) -> None:
        """Hook run before the venue lock is taken."""

    @abstractmethod
    def decide(self, endpoint: str, weight: int, store: SessionStore) -> PacingDecision:
        """Compute the rate for this call. Called with the venue lock held."""

    def on_rate_limit(self, endpoint: str, store: SessionStore) -> None:
        """Record a rate-limit response. Called with the venue lock held."""


class FixedRate(PacingPolicy):
    """Constant requests-per-second."""

    def __init__(self, rps: float):
        if rps <= 0:
            raise ValueError("rps must be positive")
        self.rps = rps

    def decide(self, endpoint: str, weight: int, store: SessionStore) -> PacingDecision:
        return PacingDecision(rps=self.rps)


class WeightScaled(PacingPolicy):
    """
    Budget-per-weight pacing.

    The venue publishes a request-weight budget per second; a call of weight
    ``w`` runs at ``budget / w`` requests per second. The budget is fetched
    once, on first use, and cached for the lifetime of the policy.
    """

    def __init__(self, fetch_budget: Optional[Callable[[], float]] = None,
                 default_budget: float = 20.0):
        self.fetch_budget = fetch_budget
        self.default_budget = default_budget
        self._budget: Optional[float] = None

    @property
    def budget(self) -> float:
        return self._budget if self._budget is not None else self.default_budget

    def prepare(self) -> None:
        """
        Fetch the budget on first use. The default applies while the fetch
        runs, so the fetch itself is paced like any other call.
        """
        if self._budget is not None:
            return
        self._budget = self.default_budget
        if self.fetch_budget is None:
            return
        try:
            fetched = self.fetch_budget()
        except Exception as e:
            logger.warning(
                "Cannot fetch request weight budget, using default",
                error=str(e),
                default_budget=self.default_budget,
            )
            return
        if fetched and fetched > 0:
            self._budget = fetched

    def decide(self, endpoint: str, weight: int, store: SessionStore) -> PacingDecision:
        return PacingDecision(rps=self.budget / max(weight, 1))


class EndpointIntensity(PacingPolicy):
    """
    Learned per-path intensity with a one-shot global cooldown.

    Every path starts at LOW. A rate-limit error raises the path's intensity
    by one (a first offence registers it at TWO) and arms a cooldown: the
    next call on any path waits SUPER seconds, after which normal pacing
    resumes. A rate-limit error that immediately follows a cooldown does
    not raise the intensity again.
    """

    retry_forever = True

    def __init__(self):
        self._just_cooled = False

    def decide(self, endpoint: str, weight: int, store: SessionStore) -> PacingDecision:
        info = store.read_info()
        if info.cooldown:
            info.cooldown = False
            store.write_info(info)
            self._just_cooled = True
            return PacingDecision(rps=1.0 / SUPER, cooled=True)
        self._just_cooled = False
        intensity = info.intensity(endpoint) or LOW
        return PacingDecision(rps=1.0 / intensity)

    def on_rate_limit(self, endpoint: str, store: SessionStore) -> None:
        info = store.read_info()
        current = info.intensity(endpoint)
        if current is None:
            info.calls[endpoint] = TWO
        elif not self._just_cooled:
            info.calls[endpoint] = current + 1
        info.cooldown = True
        store.write_info(info)
        logger.warning(
            "Endpoint rate limited",
            endpoint=endpoint,
            intensity=info.calls[endpoint],
        )


class GlobalCooldown(PacingPolicy):
    """Fixed rate plus a single cooldown flag, consulted once and cleared."""

    retry_forever = True

    def __init__(self, rps: float, cooldown_seconds: float = SUPER):
        self.rps = rps
        self.cooldown_seconds = cooldown_seconds

    def decide(self, endpoint: str, weight: int, store: SessionStore) -> PacingDecision:
        info = store.read_info()
        if info.cooldown:
            info.cooldown = False
            store.write_info(info)
            return PacingDecision(rps=1.0 / self.cooldown_seconds, cooled=True)
        return PacingDecision(rps=self.rps)

    def on_rate_limit(self, endpoint: str, store: SessionStore) -> None:
        info = store.read_info()
        info.cooldown = True
        store.write_info(info)
