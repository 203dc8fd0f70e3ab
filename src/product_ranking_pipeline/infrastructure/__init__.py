"""Concrete infrastructure implementations and shared helpers."""

from .io.filesystem import LocalFileSystem
from .io.sentiment import (
    HttpSentimentClassifier,
    KeywordSentimentClassifier,
    build_http_sentiment_classifier,
)
from .resilience import CircuitBreaker, RateLimiter, RetryPolicy
from .snapshot_store import FileSnapshotStore

__all__ = [
    "CircuitBreaker",
    "FileSnapshotStore",
    "HttpSentimentClassifier",
    "KeywordSentimentClassifier",
    "LocalFileSystem",
    "RateLimiter",
    "RetryPolicy",
    "build_http_sentiment_classifier",
]
