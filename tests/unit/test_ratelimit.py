"""Unit tests for fixed-window rate limiting"""

import pytest

from lumabank.domain.exceptions import RateLimitExceeded
from lumabank.infrastructure.ratelimit import InMemoryWindowStore, RateLimiter, RateLimitRule


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter({"transfer": RateLimitRule(max_requests=2, window_seconds=60)}, store=InMemoryWindowStore(clock))


def test_requests_within_limit_are_allowed(limiter: RateLimiter):
    first = limiter.hit("transfer", "user-1")
    second = limiter.hit("transfer", "user-1")
    assert first.remaining == 1
    assert second.remaining == 0
    assert second.limit == 2


def test_request_over_limit_raises_with_retry_after(limiter: RateLimiter, clock: FakeClock):
    limiter.hit("transfer", "user-1")
    limiter.hit("transfer", "user-1")
    clock.now += 20
    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.hit("transfer", "user-1")
    assert exc_info.value.retry_after == 40
    assert exc_info.value.limit == 2


def test_actors_are_counted_separately(limiter: RateLimiter):
    limiter.hit("transfer", "user-1")
    limiter.hit("transfer", "user-1")
    assert limiter.hit("transfer", "user-2").remaining == 1


def test_window_resets_after_expiry(limiter: RateLimiter, clock: FakeClock):
    limiter.hit("transfer", "user-1")
    limiter.hit("transfer", "user-1")
    clock.now += 61
    assert limiter.hit("transfer", "user-1").remaining == 1


def test_disabled_limiter_never_blocks(clock: FakeClock):
    limiter = RateLimiter(
        {"transfer": RateLimitRule(max_requests=1, window_seconds=60)},
        store=InMemoryWindowStore(clock),
        enabled=False,
    )
    for _ in range(5):
        assert limiter.hit("transfer", "user-1").allowed
