"""Tests for the sliding window rate limiter."""

import pytest

from jogata.models.failure import RateLimitExceededError
from jogata.services.rate_limits import (
    AUTH_BUCKET,
    PACK_BUCKET,
    SlidingWindowTracker,
    get_rate_limiter,
    reset_rate_limiter,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(clock: FakeClock) -> SlidingWindowTracker:
    return SlidingWindowTracker(clock=clock)


class TestSlidingWindowTracker:
    def test_allows_up_to_limit(self, tracker: SlidingWindowTracker) -> None:
        for _ in range(3):
            tracker.check(PACK_BUCKET, "10.0.0.1", 3, 60)

        with pytest.raises(RateLimitExceededError) as exc_info:
            tracker.check(PACK_BUCKET, "10.0.0.1", 3, 60)

        error = exc_info.value
        assert error.status_code == 429
        assert error.code == "PACK_RATE_LIMIT_EXCEEDED"
        assert (error.limit, error.window_seconds) == (3, 60)

    def test_window_slides(self, tracker: SlidingWindowTracker, clock: FakeClock) -> None:
        tracker.check(AUTH_BUCKET, "10.0.0.1", 2, 60)
        clock.advance(30)
        tracker.check(AUTH_BUCKET, "10.0.0.1", 2, 60)

        clock.advance(30)

        # The first hit is now exactly one window old
        tracker.check(AUTH_BUCKET, "10.0.0.1", 2, 60)
        with pytest.raises(RateLimitExceededError):
            tracker.check(AUTH_BUCKET, "10.0.0.1", 2, 60)

    def test_rejections_do_not_consume_quota(
        self, tracker: SlidingWindowTracker, clock: FakeClock
    ) -> None:
        tracker.check(PACK_BUCKET, "10.0.0.1", 1, 60)
        for _ in range(5):
            with pytest.raises(RateLimitExceededError):
                tracker.check(PACK_BUCKET, "10.0.0.1", 1, 60)

        clock.advance(60)

        tracker.check(PACK_BUCKET, "10.0.0.1", 1, 60)

    def test_buckets_and_clients_are_independent(self, tracker: SlidingWindowTracker) -> None:
        tracker.check(PACK_BUCKET, "10.0.0.1", 1, 60)

        tracker.check(AUTH_BUCKET, "10.0.0.1", 1, 60)
        tracker.check(PACK_BUCKET, "10.0.0.2", 1, 60)

    def test_remaining(self, tracker: SlidingWindowTracker, clock: FakeClock) -> None:
        assert tracker.remaining(PACK_BUCKET, "10.0.0.1", 3, 60) == 3

        tracker.check(PACK_BUCKET, "10.0.0.1", 3, 60)
        tracker.check(PACK_BUCKET, "10.0.0.1", 3, 60)
        assert tracker.remaining(PACK_BUCKET, "10.0.0.1", 3, 60) == 1

        clock.advance(61)
        assert tracker.remaining(PACK_BUCKET, "10.0.0.1", 3, 60) == 3

    def test_client_hash_hides_address(self) -> None:
        hashed = SlidingWindowTracker.hash_client("192.168.1.20")

        assert len(hashed) == 12
        assert "192" not in hashed
        assert hashed == SlidingWindowTracker.hash_client("192.168.1.20")


class TestGlobalTracker:
    def test_singleton_until_reset(self) -> None:
        first = get_rate_limiter()

        assert get_rate_limiter() is first
        reset_rate_limiter()
        assert get_rate_limiter() is not first
