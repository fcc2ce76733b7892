"""
Request governor bracketing every outbound call to one venue.

``acquire`` reserves the next free request slot under the venue lock and
sleeps until it arrives; ``release`` persists the completion time. The lock
is only held while the slot is computed and written, never while sleeping
or while the call itself is in flight. Sibling processes see the reserved
slot on disk and queue behind it.
"""

import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar
from urllib.parse import urlsplit

from ..config.defaults import GovernorParams
from ..errors import RateLimitExceeded, TransientNetworkError
from ..logging.config import get_governor_logger, log_governor_wait
from ..utils.time import from_timestamp
from .pacing import PacingDecision, PacingPolicy
from .session import SessionStore

T = TypeVar("T")


def strip_query(endpoint: str) -> str:
    """Endpoint path without scheme, host or query string."""
    if not endpoint:
        return ""
    path = urlsplit(endpoint).path
    return path or endpoint.split("?", 1)[0]


class RequestGovernor:
    """Serializes and paces outbound calls to one venue across processes."""

    def __init__(
        self,
        venue_code: str,
        policy: PacingPolicy,
        store: Optional[SessionStore] = None,
        params: Optional[GovernorParams] = None,
        transient_retries: int = 0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.venue_code = venue_code
        self.policy = policy
        self.store = store or SessionStore(venue_code)
        self.params = params or GovernorParams()
        self.transient_retries = transient_retries
        self.clock = clock
        self.sleep = sleep
        self.logger = get_governor_logger(__name__, venue=venue_code)
        self.last_decision: Optional[PacingDecision] = None

    def acquire(self, endpoint: str = "", weight: int = 1) -> float:
        """
        Wait until this venue may be called again.

        Args:
            endpoint: Endpoint path or URL of the call about to be made
            weight: Venue-defined weight of the call

        Returns:
            Seconds slept
        """
        path = strip_query(endpoint)
        self.policy.prepare()

        with self.store.lock():
            decision = self.policy.decide(path, weight, self.store)
            now = self.clock()
            last = self.store.read_last_request()
            slot = now
            if last is not None:
                slot = max(now, last.timestamp() + decision.spacing)
            self.store.write_last_request(from_timestamp(slot))

        self.last_decision = decision
        wait = slot - now
        log_governor_wait(self.logger, path, weight, decision.rps, wait, decision.cooled)
        if wait > 0:
            self.sleep(wait)
        return max(wait, 0.0)

    def release(self) -> None:
        """Persist now as the last request time."""
        with self.store.lock():
            self.store.write_last_request(from_timestamp(self.clock()))

    def on_rate_limit(self, endpoint: str) -> None:
        """Feed a rate-limit response back into the pacing policy."""
        with self.store.lock():
            self.policy.on_rate_limit(strip_query(endpoint), self.store)

    @contextmanager
    def request(self, endpoint: str = "", weight: int = 1) -> Iterator[None]:
        """Bracket one outbound call with acquire/release."""
        self.acquire(endpoint, weight)
        try:
            yield
        finally:
            self.release()

    def execute(
        self,
        endpoint: str,
        fn: Callable[..., T],
        *args: Any,
        weight: int = 1,
        **kwargs: Any
    ) -> T:
        """
        Run ``fn`` under the governor, applying the venue's retry policy.

        Rate-limit errors are retried indefinitely when the pacing policy is
        built around retry, otherwise retried once after the cooldown delay
        and then surfaced. Transient network errors are retried after a fixed
        delay when the venue opted into ``transient_retries``.
        """
        rate_limited = 0
        transient = 0
        while True:
            self.acquire(endpoint, weight)
            try:
                return fn(*args, **kwargs)
            except RateLimitExceeded as e:
                rate_limited += 1
                self.on_rate_limit(endpoint)
                if not self.policy.retry_forever:
                    if rate_limited > 1:
                        raise
                    self.logger.warning(
                        "Rate limited, retrying once",
                        endpoint=strip_query(endpoint),
                        delay_seconds=self.params.cooldown_seconds,
                    )
                    self.sleep(self.params.cooldown_seconds)
                else:
                    self.logger.warning(
                        "Rate limited, backing off",
                        endpoint=strip_query(endpoint),
                        attempt=rate_limited,
                        error=str(e),
                    )
            except TransientNetworkError as e:
                transient += 1
                e.attempts = transient
                if transient > self.transient_retries:
                    raise
                self.logger.warning(
                    "Transient network error, retrying",
                    endpoint=strip_query(endpoint),
                    attempt=transient,
                    delay_seconds=self.params.transient_retry_delay_seconds,
                    error=str(e),
                )
                self.sleep(self.params.transient_retry_delay_seconds)
            finally:
                self.release()
