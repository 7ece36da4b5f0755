"""Fixed-window rate limiting.

Counts requests per ``"{client_id}:{route_path}"`` key in non-overlapping
windows whose reset time is fixed when the window opens. A burst straddling a
window boundary can briefly see up to twice the quota; that is accepted for
this deployment.

Storage is pluggable through ``RateLimitStore`` so a shared cache can replace
the in-memory store without touching callers.
"""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from crmshield.core.logging import get_logger
from crmshield.security.config import RateLimitConfig, RateLimitPolicy, match_longest_prefix

logger = get_logger(__name__)


@dataclass
class FixedWindowEntry:
    """Counter for one key.

    Attributes:
        count: Requests seen in the current window, including rejected ones
        window_reset_at: Epoch seconds at which the window closes
    """

    count: int
    window_reset_at: float


@dataclass
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed
        limit: The quota for this route
        remaining: Requests left in the window (0 when rejected)
        reset_time: Epoch seconds when the window resets
        retry_after: Whole seconds until the client can retry (if not allowed)
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after: int | None = None


class RateLimitStore(Protocol):
    """Protocol for rate limit storage backends."""

    async def sweep(self, now: float) -> int:
        """Delete every entry whose window has closed.

        Returns:
            Number of entries removed
        """
        ...

    async def increment(self, key: str, window_seconds: int, now: float) -> FixedWindowEntry:
        """Increment the counter for ``key``, opening a new window if needed.

        Returns:
            The entry after incrementing
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove the entry for ``key``."""
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """In-memory rate limit storage.

    Suitable for single-instance deployments; each process has its own view.
    Increments do not await between read and write, so they are atomic under
    asyncio's single-threaded scheduling. A multi-threaded host would need a
    lock around ``increment``.
    """

    def __init__(self) -> None:
        self._entries: dict[str, FixedWindowEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> FixedWindowEntry | None:
        """Return the entry for ``key`` if present."""
        return self._entries.get(key)

    async def sweep(self, now: float) -> int:
        expired_keys = [
            key for key, entry in self._entries.items() if entry.window_reset_at <= now
        ]
        for key in expired_keys:
            del self._entries[key]
        return len(expired_keys)

    async def increment(self, key: str, window_seconds: int, now: float) -> FixedWindowEntry:
        entry = self._entries.get(key)
        if entry is None or entry.window_reset_at <= now:
            entry = FixedWindowEntry(count=0, window_reset_at=now + window_seconds)
            self._entries[key] = entry
        entry.count += 1
        return entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)


class RateLimiter:
    """Per-route fixed-window rate limiter.

    Example:
        limiter = RateLimiter(InMemoryRateLimitStore())
        result = await limiter.check("203.0.113.7", "/api/auth/login")
        if not result.allowed:
            raise RateLimitedError(retry_after=result.retry_after)
    """

    def __init__(
        self,
        store: RateLimitStore | None = None,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            store: Storage backend for counters
            config: Policies and switches
            clock: Returns the current time in epoch seconds
        """
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.config = config or RateLimitConfig()
        self._clock = clock

    def policy_for(self, route_path: str) -> RateLimitPolicy:
        """Resolve the policy for a route by longest registered prefix."""
        return match_longest_prefix(
            route_path, self.config.route_policies, self.config.default_policy
        )

    @staticmethod
    def build_key(client_id: str, route_path: str) -> str:
        return f"{client_id}:{route_path}"

    async def check(self, client_id: str, route_path: str) -> RateLimitResult:
        """Count a request and decide whether it is allowed.

        Expired entries across the whole store are swept first. The request
        that pushes the count past the quota is the one rejected.

        Args:
            client_id: Client identifier (usually the IP)
            route_path: Request path

        Returns:
            RateLimitResult with the check outcome
        """
        policy = self.policy_for(route_path)
        now = self._clock()

        if not self.config.enabled:
            return RateLimitResult(
                allowed=True,
                limit=policy.max_requests,
                remaining=policy.max_requests,
                reset_time=now + policy.window_seconds,
            )

        await self.store.sweep(now)

        key = self.build_key(client_id, route_path)
        entry = await self.store.increment(key, policy.window_seconds, now)

        if entry.count > policy.max_requests:
            retry_after = max(1, math.ceil(entry.window_reset_at - now))
            logger.info("rate_limit_exceeded", key=key, retry_after=retry_after)
            return RateLimitResult(
                allowed=False,
                limit=policy.max_requests,
                remaining=0,
                reset_time=entry.window_reset_at,
                retry_after=retry_after,
            )

        return RateLimitResult(
            allowed=True,
            limit=policy.max_requests,
            remaining=policy.max_requests - entry.count,
            reset_time=entry.window_reset_at,
        )

    async def reset(self, client_id: str, route_path: str) -> None:
        """Drop the counter for a client and route immediately."""
        await self.store.delete(self.build_key(client_id, route_path))
