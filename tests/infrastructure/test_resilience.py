"""Tests for resilience infrastructure components."""

import threading
import time

import pytest

from product_ranking_pipeline.exceptions import CircuitBreakerOpen
from product_ranking_pipeline.infrastructure import CircuitBreaker, RateLimiter, RetryPolicy


class TestCircuitBreaker:
    """Tests for CircuitBreaker behaviour."""

    def test_starts_closed(self) -> None:
        """Circuit breaker starts in closed state."""
        cb = CircuitBreaker(threshold=3)
        assert cb.is_open is False
        assert cb.consecutive_failures == 0

    def test_opens_at_threshold(self) -> None:
        """Circuit breaker opens when failures reach threshold."""
        cb = CircuitBreaker(threshold=3)
        cb.record_failure()
        cb.record_failure()
        assert cb.is_open is False
        cb.record_failure()
        assert cb.is_open is True

    def test_success_resets_failures(self) -> None:
        """A successful classification resets the failure count."""
        cb = CircuitBreaker(threshold=3)
        cb.record_failure()
        cb.record_failure()
        cb.record_success()
        assert cb.consecutive_failures == 0
        assert cb.is_open is False

    def test_check_raises_when_open(self) -> None:
        """check() raises CircuitBreakerOpen while the circuit is open."""
        cb = CircuitBreaker(threshold=2, recovery_timeout_seconds=60)
        cb.record_failure()
        cb.record_failure()
        with pytest.raises(CircuitBreakerOpen) as exc_info:
            cb.check()
        assert exc_info.value.failure_count == 2
        assert exc_info.value.threshold == 2

    def test_reset_clears_state(self) -> None:
        cb = CircuitBreaker(threshold=1)
        cb.record_failure()
        cb.reset()
        assert cb.is_open is False
        cb.check()

    def test_half_open_allows_one_probe_after_timeout(self) -> None:
        """Half-open allows a single probe once the cooldown has passed."""
        cb = CircuitBreaker(threshold=1, recovery_timeout_seconds=0, half_open_max_calls=1)
        cb.record_failure()
        cb.check()
        assert cb.state == "half_open"
        with pytest.raises(CircuitBreakerOpen):
            cb.check()
        cb.record_success()
        assert cb.state == "closed"

    def test_failed_probe_reopens(self) -> None:
        cb = CircuitBreaker(threshold=3, recovery_timeout_seconds=0)
        for _ in range(3):
            cb.record_failure()
        cb.check()
        cb.record_failure()
        assert cb.state == "open"

    def test_failures_from_many_threads_are_all_counted(self) -> None:
        """Failures recorded concurrently are not lost."""
        cb = CircuitBreaker(threshold=1000)
        threads = [threading.Thread(target=cb.record_failure) for _ in range(50)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert cb.consecutive_failures == 50


class TestRateLimiter:
    """Tests for RateLimiter behaviour."""

    def test_enforces_minimum_delay(self) -> None:
        """Rate limiter enforces minimum delay between requests."""
        rl = RateLimiter(max_rpm=600, min_delay_seconds=0.1)

        start = time.monotonic()
        rl.wait_if_needed()
        rl.wait_if_needed()
        elapsed = time.monotonic() - start

        assert elapsed >= 0.1

    def test_tracks_requests_per_minute(self) -> None:
        rl = RateLimiter(max_rpm=5, min_delay_seconds=0)
        for _ in range(3):
            rl.wait_if_needed()
        assert rl.requests_this_minute == 3

    def test_zero_rpm_disables_minute_limit(self) -> None:
        rl = RateLimiter(max_rpm=0, min_delay_seconds=0)
        for _ in range(10):
            rl.wait_if_needed()
        assert rl.requests_this_minute == 0


class TestRetryPolicy:
    """Tests for RetryPolicy backoff behaviour."""

    def test_backoff_grows_exponentially_and_caps(self) -> None:
        policy = RetryPolicy(backoff_factor=0.5, max_backoff_seconds=3.0, jitter_seconds=0)
        assert [policy.compute_backoff(attempt) for attempt in range(4)] == [0.5, 1.0, 2.0, 3.0]

    def test_retry_after_overrides_backoff(self) -> None:
        policy = RetryPolicy(max_retries=1, backoff_factor=0.1, jitter_seconds=0)
        assert policy.compute_backoff(attempt=0, retry_after=5) == 5.0

    def test_jitter_is_bounded(self) -> None:
        policy = RetryPolicy(backoff_factor=1.0, jitter_seconds=0.2)
        delay = policy.compute_backoff(attempt=0)
        assert 1.0 <= delay <= 1.2
