"""Sentiment classifier implementations.

Usage example:
    import requests

    from product_ranking_pipeline.infrastructure.io.sentiment import HttpSentimentClassifier
    from product_ranking_pipeline.infrastructure.resilience import CircuitBreaker, RateLimiter

    classifier = HttpSentimentClassifier(
        session=requests.Session(),
        url="https://sentiment.internal/v1/classify",
        rate_limiter=RateLimiter(max_rpm=300),
        circuit_breaker=CircuitBreaker(threshold=5),
    )
    result = classifier.classify("Setup was quick and the support team was great")
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing_extensions import override

import requests

from ...domain.models import SentimentResult
from ...domain.sentiment import classify_by_keywords
from ...exceptions import AuthenticationError, ClassificationError, RateLimitError
from ...observability import get_logger
from ...protocols import (
    CircuitBreaker,
    HttpResponse,
    HttpSession,
    RateLimiter,
    RetryPolicy,
    SentimentClassifier,
)
from ..resilience import CircuitBreaker as CircuitBreakerImpl
from ..resilience import RateLimiter as RateLimiterImpl
from ..resilience import RetryPolicy as RetryPolicyImpl
from .validation import IncomingDataError, parse_sentiment_response

logger = get_logger("product_ranking_pipeline.infrastructure.sentiment")


class KeywordSentimentClassifier(SentimentClassifier):
    """In-process keyword classifier; never fails and needs no network."""

    @override
    def classify(self, text: str) -> SentimentResult:
        return classify_by_keywords(text)


def build_http_sentiment_classifier(
    *,
    url: str,
    api_key: str,
    max_rpm: int,
    min_delay_seconds: float,
    circuit_breaker_threshold: int,
    circuit_breaker_timeout_seconds: float,
    max_retries: int,
    backoff_factor: float,
    max_backoff_seconds: float,
    timeout_seconds: float,
    max_concurrency: int,
) -> HttpSentimentClassifier:
    session = requests.Session()
    if api_key:
        session.headers["Authorization"] = f"Bearer {api_key}"
    return HttpSentimentClassifier(
        session=session,
        url=url,
        rate_limiter=RateLimiterImpl(max_rpm=max_rpm, min_delay_seconds=min_delay_seconds),
        circuit_breaker=CircuitBreakerImpl(
            threshold=circuit_breaker_threshold,
            recovery_timeout_seconds=circuit_breaker_timeout_seconds,
        ),
        retry_policy=RetryPolicyImpl(
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            max_backoff_seconds=max_backoff_seconds,
        ),
        timeout_seconds=timeout_seconds,
        max_concurrency=max_concurrency,
    )


def parse_retry_after(headers: Mapping[str, str] | None) -> int | None:
    """Parse Retry-After header into seconds, if available."""
    if not headers:
        return None
    value = headers.get("Retry-After")
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        dt = parsedate_to_datetime(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        delta = (dt - datetime.now(UTC)).total_seconds()
        return max(0, int(delta))
    except (AttributeError, OverflowError, TypeError, ValueError):
        return None


def _response_details(response: HttpResponse) -> str:
    """Return a compact status/body summary for error reporting."""
    try:
        body = response.text
    except (UnicodeDecodeError, ValueError, requests.RequestException):
        body = "<unreadable>"
    body = " ".join(body.split())
    if len(body) > 300:
        body = body[:300] + "..."
    return f"status={response.status_code}, body={body}"


class HttpSentimentClassifier(SentimentClassifier):
    """Client for an external sentiment service (``POST {"text": ...}``).

    Error handling:
    - 401/403 raise AuthenticationError (fatal for the run)
    - retryable statuses and transient network errors back off and retry
    - an open circuit raises CircuitBreakerOpen before any request is made
    - anything else unusable for one fragment raises ClassificationError
    - at most ``max_concurrency`` requests are in flight across all threads
    """

    def __init__(
        self,
        *,
        session: HttpSession,
        url: str,
        rate_limiter: RateLimiter | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float = 10.0,
        max_concurrency: int = 4,
    ) -> None:
        self.session = session
        self.url = url
        self.rate_limiter = rate_limiter or RateLimiterImpl()
        self.circuit_breaker = circuit_breaker or CircuitBreakerImpl()
        self.retry_policy = retry_policy or RetryPolicyImpl()
        self.timeout_seconds = timeout_seconds
        self._slots = threading.BoundedSemaphore(max(1, max_concurrency))

    @override
    def classify(self, text: str) -> SentimentResult:
        with self._slots:
            return self._classify(text)

    def _classify(self, text: str) -> SentimentResult:
        attempt = 0
        while True:
            self.circuit_breaker.check()
            self.rate_limiter.wait_if_needed()

            try:
                response = self.session.post(
                    self.url, json={"text": text}, timeout=self.timeout_seconds
                )
            except self.retry_policy.retry_exceptions as exc:
                if attempt < self.retry_policy.max_retries:
                    time.sleep(self.retry_policy.compute_backoff(attempt))
                    attempt += 1
                    continue
                self.circuit_breaker.record_failure()
                raise ClassificationError(f"network error: {exc}") from exc
            except requests.RequestException as exc:
                self.circuit_breaker.record_failure()
                raise ClassificationError(f"request failed: {exc}") from exc

            if response.status_code in (401, 403):
                self.circuit_breaker.record_failure()
                raise AuthenticationError(response.status_code, _response_details(response))

            if response.status_code in self.retry_policy.retry_statuses:
                retry_after = parse_retry_after(response.headers)
                if attempt < self.retry_policy.max_retries:
                    time.sleep(self.retry_policy.compute_backoff(attempt, retry_after))
                    attempt += 1
                    continue
                self.circuit_breaker.record_failure()
                details = _response_details(response)
                if response.status_code == 429:
                    logger.warning("Classifier rate limit response: %s", details)
                    raise RateLimitError(retry_after or 60)
                raise ClassificationError(details)

            if response.status_code >= 400:
                self.circuit_breaker.record_failure()
                raise ClassificationError(_response_details(response))

            try:
                result = parse_sentiment_response(response.json())
            except (ValueError, IncomingDataError) as exc:
                self.circuit_breaker.record_failure()
                raise ClassificationError("classifier returned an unusable reply") from exc

            self.circuit_breaker.record_success()
            return result
