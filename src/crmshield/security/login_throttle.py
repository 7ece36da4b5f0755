"""Login attempt counter.

A second, coarser limiter that sits in front of the credential check
itself. It is independent of ``RateLimiter`` because the login path is
reachable through more than one entry point; both are kept.
"""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from crmshield.core.logging import get_logger
from crmshield.security.config import LoginThrottleConfig

logger = get_logger(__name__)


@dataclass
class LoginAttempt:
    """Attempts seen for one identifier.

    Attributes:
        count: Attempts counted in the current window
        last_attempt_at: Epoch seconds of the most recent counted attempt
    """

    count: int
    last_attempt_at: float


class LoginAttemptTracker:
    """Counts login attempts per identifier (client IP or email).

    Every attempt counts, successful or not. Once ``max_attempts`` have been
    counted, further attempts are refused until ``window_seconds`` pass with
    no counted attempt.

    Example:
        tracker = LoginAttemptTracker()
        if not tracker.check("203.0.113.7"):
            raise TooManyLoginAttemptsError()
    """

    def __init__(
        self,
        config: LoginThrottleConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or LoginThrottleConfig()
        self._clock = clock
        self._attempts: dict[str, LoginAttempt] = {}

    def _cleanup(self, now: float) -> None:
        stale = [
            key
            for key, attempt in self._attempts.items()
            if now - attempt.last_attempt_at > self.config.window_seconds
        ]
        for key in stale:
            del self._attempts[key]

    def check(self, identifier: str) -> bool:
        """Count an attempt and report whether it may proceed.

        Args:
            identifier: Client IP or email

        Returns:
            True if the attempt is allowed
        """
        now = self._clock()
        self._cleanup(now)

        attempt = self._attempts.get(identifier)
        if attempt is None or now - attempt.last_attempt_at > self.config.window_seconds:
            self._attempts[identifier] = LoginAttempt(count=1, last_attempt_at=now)
            return True

        if attempt.count >= self.config.max_attempts:
            logger.warning("login_throttled", identifier=identifier, attempts=attempt.count)
            return False

        attempt.count += 1
        attempt.last_attempt_at = now
        return True

    def retry_after(self, identifier: str) -> int:
        """Seconds until ``identifier`` is unblocked, or 0."""
        attempt = self._attempts.get(identifier)
        if attempt is None or attempt.count < self.config.max_attempts:
            return 0
        remaining = attempt.last_attempt_at + self.config.window_seconds - self._clock()
        return max(0, math.ceil(remaining))

    def reset(self, identifier: str) -> None:
        """Forget all attempts for ``identifier``."""
        self._attempts.pop(identifier, None)
