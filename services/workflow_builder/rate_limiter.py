"""
Rate Limiting for Claude API Calls

Two limiters live here:

- TokenBucketRateLimiter: process-wide, shared by every pipeline run, keeps
  the transport under the account's requests-per-minute budget.
- FixedIntervalLimiter: created per run, spaces out the module generation
  calls of a single run by a fixed delay.
"""

import asyncio
import time
import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from core.config import settings

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting"""
    requests_per_minute: int = 20
    burst_limit: int = 5
    base_delay: float = 2.0
    max_delay: float = 30.0
    jitter_factor: float = 0.25  # ±25% random variation

    @classmethod
    def from_settings(cls) -> "RateLimitConfig":
        return cls(
            requests_per_minute=settings.claude_requests_per_minute,
            burst_limit=settings.claude_burst_limit,
            base_delay=settings.claude_rate_limit_delay,
            max_delay=settings.max_rate_limit_delay,
        )


class TokenBucketRateLimiter:
    """
    Token bucket rate limiter for Claude API calls.

    Tokens refill continuously at requests_per_minute / 60 per second up to
    burst_limit. Callers that find the bucket empty sleep outside the lock
    and try again.
    """

    def __init__(self, config: RateLimitConfig, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self._clock = clock
        self.tokens = float(config.burst_limit)
        self.last_refill = clock()
        self.request_times = deque(maxlen=max(1, config.requests_per_minute))
        self.lock = asyncio.Lock()

        self.total_requests = 0
        self.rate_limited_requests = 0
        self.last_rate_limit_time = 0.0

    async def acquire_token(self, wait: bool = True) -> bool:
        """
        Acquire a token for making a request.

        Args:
            wait: If True, wait until a token is available. If False, return immediately.

        Returns:
            True if token acquired, False if no token available and wait=False
        """
        while True:
            async with self.lock:
                current_time = self._clock()
                self._refill_tokens(current_time)

                if self.tokens >= 1:
                    self.tokens -= 1
                    self.total_requests += 1
                    self.request_times.append(current_time)
                    return True

                if not wait:
                    return False

                wait_time = self._calculate_wait_time()

            jitter = random.uniform(1 - self.config.jitter_factor, 1 + self.config.jitter_factor)
            wait_time = min(self.config.max_delay, wait_time * jitter)
            logger.info(f"Rate limit hit, waiting {wait_time:.2f}s for next token")
            await asyncio.sleep(wait_time)

    def _refill_tokens(self, current_time: float):
        time_passed = max(0.0, current_time - self.last_refill)
        tokens_to_add = (time_passed / 60.0) * self.config.requests_per_minute
        self.tokens = min(float(self.config.burst_limit), self.tokens + tokens_to_add)
        self.last_refill = current_time

    def _calculate_wait_time(self) -> float:
        """Seconds until the bucket holds one whole token again"""
        if self.config.requests_per_minute <= 0:
            return self.config.max_delay
        missing = 1 - self.tokens
        return max(self.config.base_delay, missing * 60.0 / self.config.requests_per_minute)

    async def wait_for_token(self) -> None:
        await self.acquire_token(wait=True)

    def record_rate_limit(self, timestamp: Optional[float] = None):
        """Record that the API answered 429 despite the local budget"""
        self.rate_limited_requests += 1
        self.last_rate_limit_time = timestamp if timestamp is not None else self._clock()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "config": {
                "requests_per_minute": self.config.requests_per_minute,
                "burst_limit": self.config.burst_limit,
                "base_delay": self.config.base_delay,
                "max_delay": self.config.max_delay
            },
            "current_state": {
                "available_tokens": self.tokens,
                "total_requests": self.total_requests,
                "rate_limited_requests": self.rate_limited_requests,
                "requests_in_window": len(self.request_times)
            }
        }


class FixedIntervalLimiter:
    """
    Enforces a fixed pause between consecutive calls of one pipeline run.

    The first call goes through immediately; every later call waits the full
    interval. One instance belongs to exactly one run.
    """

    def __init__(self, interval_seconds: float, sleep: SleepFunc = asyncio.sleep):
        self.interval_seconds = max(0.0, interval_seconds)
        self._sleep = sleep
        self.calls = 0

    def pending_delay(self) -> float:
        """Delay the next wait() will apply"""
        return self.interval_seconds if self.calls > 0 else 0.0

    async def wait(self) -> float:
        """Sleep if needed, then count the call. Returns the seconds slept."""
        delay = self.pending_delay()
        if delay > 0:
            logger.info(f"Waiting {delay:.1f}s before next module call")
            await self._sleep(delay)
        self.calls += 1
        return delay


_global_rate_limiter: Optional[TokenBucketRateLimiter] = None


def get_global_rate_limiter() -> TokenBucketRateLimiter:
    """Get the process-wide rate limiter, creating it from settings on first use"""
    global _global_rate_limiter

    if _global_rate_limiter is None:
        config = RateLimitConfig.from_settings()
        _global_rate_limiter = TokenBucketRateLimiter(config)
        logger.info(f"Global rate limiter initialized: {config}")

    return _global_rate_limiter


def set_global_rate_limiter_config(config: RateLimitConfig):
    global _global_rate_limiter
    _global_rate_limiter = TokenBucketRateLimiter(config)
    logger.info(f"Global rate limiter configuration updated: {config}")


async def wait_for_claude_token():
    """Wait for a Claude API token to become available"""
    await get_global_rate_limiter().acquire_token(wait=True)


def record_claude_rate_limit():
    get_global_rate_limiter().record_rate_limit()
