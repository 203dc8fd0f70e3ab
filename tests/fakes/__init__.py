"""Exports for test fakes."""

from .filesystem import InMemoryFileSystem
from .progress import FakeProgressReporter
from .resilience import FakeCircuitBreaker, FakeRateLimiter, FakeRetryPolicy
from .sentiment import FakeResponse, FakeSentimentClassifier, FakeSession
from .snapshot_store import InMemorySnapshotStore, StaticSignalSource

__all__ = [
    "FakeCircuitBreaker",
    "FakeProgressReporter",
    "FakeRateLimiter",
    "FakeResponse",
    "FakeRetryPolicy",
    "FakeSentimentClassifier",
    "FakeSession",
    "InMemoryFileSystem",
    "InMemorySnapshotStore",
    "StaticSignalSource",
]
