"""
Caller admission: configuration check, identity hashing and rate limiting.
"""

import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import structlog
from fastapi import Depends, Request

from ..config import Settings, get_settings
from .exceptions import ConfigurationError, RateLimitError
from .identity import get_client_address, hash_identity

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400
PURGE_CHECK_INTERVAL_S = 60


@dataclass
class CallerWindow:
    """Rate limit state of a single caller key."""
    daily_window_start: float
    last_seen: float
    last_request: Optional[float] = None
    daily_count: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


@dataclass
class AdmissionDecision:
    """Outcome of running both gates for one request."""
    allowed: bool
    gate: Optional[str] = None  # "interval", "daily" or "error" when denied
    retry_after: Optional[int] = None


class RateLimiter:
    """
    Per-caller admission control with two independent gates.

    The interval gate runs first, so a caller it rejects does not spend
    daily quota. Callers idle for longer than the purge horizon are evicted.
    Windows are measured on a monotonic clock, so wall-clock steps do not
    move either gate.
    """

    def __init__(
        self,
        interval_seconds: int,
        max_reads_per_day: int,
        purge_after_seconds: float,
        day_seconds: int = SECONDS_PER_DAY,
        purge_check_interval: float = PURGE_CHECK_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval_seconds = interval_seconds
        self.max_reads_per_day = max_reads_per_day
        self.purge_after_seconds = purge_after_seconds
        self.day_seconds = day_seconds
        self.purge_check_interval = purge_check_interval
        self.windows: Dict[str, CallerWindow] = {}
        self._clock = clock
        self._last_purge = clock()

    def __len__(self) -> int:
        return len(self.windows)

    async def check(self, key: str, now: Optional[float] = None) -> AdmissionDecision:
        """
        Run the interval gate then the daily gate for a caller.

        Never raises: any unexpected failure denies the request.
        """
        try:
            if now is None:
                now = self._clock()

            self.purge_if_due(now)

            window = self.windows.get(key)
            if window is None:
                window = CallerWindow(daily_window_start=now, last_seen=now)
                self.windows[key] = window
            window.last_seen = now

            async with window.lock:
                return self._evaluate(window, now)

        except Exception as e:
            logger.error(
                "Rate limit state check failed, denying request",
                caller=key[:8] + "...",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return AdmissionDecision(allowed=False, gate="error", retry_after=self.interval_seconds)

    def _evaluate(self, window: CallerWindow, now: float) -> AdmissionDecision:
        if window.last_request is not None:
            elapsed = now - window.last_request
            if elapsed < self.interval_seconds:
                return AdmissionDecision(
                    allowed=False,
                    gate="interval",
                    retry_after=max(1, math.ceil(self.interval_seconds - elapsed)),
                )
        window.last_request = now

        if now > window.daily_window_start + self.day_seconds:
            window.daily_count = 0
            window.daily_window_start = now

        if window.daily_count >= self.max_reads_per_day:
            return AdmissionDecision(
                allowed=False,
                gate="daily",
                retry_after=max(1, math.ceil(window.daily_window_start + self.day_seconds - now)),
            )

        window.daily_count += 1
        return AdmissionDecision(allowed=True)

    def purge_if_due(self, now: float) -> int:
        """Evict idle callers, at most once per purge check interval."""
        if now - self._last_purge < self.purge_check_interval:
            return 0
        self._last_purge = now
        return self.purge(now)

    def purge(self, now: float) -> int:
        """Evict callers with no activity within the purge horizon."""
        cutoff = now - self.purge_after_seconds
        stale_keys = [
            key for key, window in self.windows.items()
            if window.last_seen < cutoff and not window.lock.locked()
        ]
        for key in stale_keys:
            del self.windows[key]

        if stale_keys:
            logger.info(
                "Purged idle callers",
                evicted=len(stale_keys),
                remaining=len(self.windows),
            )
        return len(stale_keys)

    async def check_rate_limit(self, key: str, now: Optional[float] = None) -> None:
        """
        Check rate limits for a caller key.

        Raises RateLimitError if either gate rejects the request.
        """
        decision = await self.check(key, now)
        if decision.allowed:
            logger.debug("Rate limit check passed", caller=key[:8] + "...")
            return

        if decision.gate == "interval":
            message = f"Rate limit exceeded: only 1 request per {self.interval_seconds}s allowed."
        elif decision.gate == "daily":
            message = f"Rate limit exceeded: only {self.max_reads_per_day} requests per day allowed."
        else:
            message = "Rate limit state unavailable, request denied."

        logger.warning(
            "Rate limit exceeded",
            caller=key[:8] + "...",
            gate=decision.gate,
            retry_after=decision.retry_after,
        )
        raise RateLimitError(
            message=message,
            retry_after=decision.retry_after,
            gate=decision.gate,
        )


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get or create global rate limiter."""
    global _rate_limiter

    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = RateLimiter(
            interval_seconds=settings.security.rate_limit_interval_s,
            max_reads_per_day=settings.security.max_reads_per_day,
            purge_after_seconds=settings.security.ips_purge_time_days * SECONDS_PER_DAY,
        )

    return _rate_limiter


def require_valid_config() -> Settings:
    """
    Reject every request while the deployment is misconfigured.
    """
    settings = get_settings()

    missing = settings.missing_credentials()
    if missing:
        logger.error("Credentials are missing", missing=missing)
        raise ConfigurationError("Your credentials are missing.", details={"missing": missing})

    invalid = settings.invalid_tunables()
    if invalid:
        logger.error("Configuration values out of range", invalid=invalid)
        raise ConfigurationError(
            "Invalid configuration detected. Please refer to the documentation.",
            details={"invalid": invalid},
        )

    return settings


async def identify_caller(request: Request, settings: Settings = Depends(require_valid_config)) -> str:
    """Derive the hashed caller key of the request."""
    address = get_client_address(request, settings.security.trusted_proxies)
    return hash_identity(address, settings.security.hash_key)


async def admit_caller(request: Request, caller_key: str = Depends(identify_caller)) -> str:
    """
    Run both rate limit gates for the caller.

    Should be the dependency of every gated endpoint.
    """
    rate_limiter = get_rate_limiter()
    metrics = getattr(request.app.state, "metrics", None)

    try:
        await rate_limiter.check_rate_limit(caller_key)
    except RateLimitError as e:
        if metrics is not None:
            metrics.record_rate_limit_rejection(e.details.get("gate", "unknown"))
        raise
    finally:
        if metrics is not None:
            metrics.update_tracked_callers(len(rate_limiter))

    return caller_key
