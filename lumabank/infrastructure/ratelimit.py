"""Per-actor fixed-window rate limiting"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from lumabank.config import Settings
from lumabank.domain.exceptions import RateLimitExceeded


@dataclass(frozen=True)
class RateLimitRule:
    max_requests: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_in: int  # seconds until the window resets


class InMemoryWindowStore:
    """
    Counter store keyed by "action:actor".

    Windows expire on their own; a shared expiring key-value store with the
    same increment() contract can replace this for multi-process deployments.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def increment(self, key: str, window_seconds: int) -> Tuple[int, float]:
        """Count one hit and return (count in current window, seconds until reset)"""
        now = self._clock()
        with self._lock:
            self._purge(now)
            count, reset_at = self._entries.get(key, (0, now + window_seconds))
            count += 1
            self._entries[key] = (count, reset_at)
            return count, reset_at - now

    def _purge(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._entries.items() if now >= reset_at]
        for key in expired:
            del self._entries[key]


class RateLimiter:
    """Applies per-action rules to an actor key"""

    def __init__(
        self,
        rules: Dict[str, RateLimitRule],
        store: Optional[InMemoryWindowStore] = None,
        enabled: bool = True,
    ):
        self.rules = rules
        self.store = store or InMemoryWindowStore()
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiter":
        rules = {
            "auth": RateLimitRule(settings.rate_limit_auth, settings.rate_limit_auth_window_seconds),
            "registration": RateLimitRule(
                settings.rate_limit_registration, settings.rate_limit_registration_window_seconds
            ),
            "transfer": RateLimitRule(settings.rate_limit_transfer, settings.rate_limit_transfer_window_seconds),
            "deposit": RateLimitRule(settings.rate_limit_deposit, settings.rate_limit_deposit_window_seconds),
            "email": RateLimitRule(settings.rate_limit_email, settings.rate_limit_email_window_seconds),
        }
        return cls(rules, enabled=settings.rate_limit_enabled)

    def hit(self, action: str, actor: str) -> RateLimitDecision:
        """
        Count a request against an action's window.

        Raises:
            RateLimitExceeded: the actor used up the window
        """
        rule = self.rules[action]
        if not self.enabled:
            return RateLimitDecision(True, rule.max_requests, rule.max_requests, rule.window_seconds)

        count, reset_in = self.store.increment(f"{action}:{actor}", rule.window_seconds)
        reset_seconds = max(1, int(round(reset_in)))
        if count > rule.max_requests:
            raise RateLimitExceeded(retry_after=reset_seconds, limit=rule.max_requests)
        return RateLimitDecision(True, rule.max_requests, rule.max_requests - count, reset_seconds)
