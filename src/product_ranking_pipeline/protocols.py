"""Protocol definitions for dependency injection.

These protocols define the abstract interfaces that ranking components depend on,
enabling isolated unit testing with in-memory implementations.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import pandas as pd

    from .domain.models import (
        Product,
        ProductTrendPoint,
        SentimentResult,
        SurveyResponse,
        WeeklyRanking,
    )


@runtime_checkable
class SentimentClassifier(Protocol):
    """Classifies one text fragment. May raise ClassificationError per call."""

    def classify(self, text: str) -> SentimentResult:
        """Return the sentiment of ``text``."""
        ...


@runtime_checkable
class SignalSource(Protocol):
    """Supplies products and their survey responses."""

    def load_products(self) -> Sequence[Product]:
        """Return every known product."""
        ...

    def load_responses(self) -> Mapping[str, Sequence[SurveyResponse]]:
        """Return responses grouped by product id."""
        ...


@runtime_checkable
class SnapshotStore(Protocol):
    """Keyed store of weekly ranking snapshots."""

    def save(self, ranking: WeeklyRanking) -> str:
        """Persist ``ranking`` wholesale and return its week identifier."""
        ...

    def get(self, week_id: str, category: str) -> WeeklyRanking | None:
        """Return the snapshot for a week, or None when there is none yet."""
        ...

    def get_current(self, category: str, now: datetime | None = None) -> WeeklyRanking | None:
        """Return the snapshot for the week containing ``now``."""
        ...

    def get_history(self, category: str, limit: int | None = None) -> list[WeeklyRanking]:
        """Return snapshots newest week first."""
        ...

    def get_product_trend(self, product_id: str, category: str) -> list[ProductTrendPoint]:
        """Return the product's rank and score in every stored week."""
        ...

    def get_previous_rank(
        self, product_id: str, category: str, now: datetime | None = None
    ) -> int | None:
        """Return the product's rank in the week before ``now``'s week."""
        ...

    def list_categories(self, week_id: str) -> list[str]:
        """Return categories that have a snapshot for ``week_id``."""
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Abstract filesystem for reading/writing pipeline data."""

    def read_csv(self, path: Path) -> pd.DataFrame:
        """Read CSV file into DataFrame."""
        ...

    def write_csv(self, df: pd.DataFrame, path: Path) -> None:
        """Write DataFrame to CSV file."""
        ...

    def read_json(self, path: Path) -> dict[str, object]:
        """Read JSON file."""
        ...

    def write_json(self, data: Mapping[str, object], path: Path) -> None:
        """Write JSON file atomically (readers never see a partial document)."""
        ...

    def read_text(self, path: Path) -> str:
        """Read text file."""
        ...

    def exists(self, path: Path) -> bool:
        """Check if path exists."""
        ...

    def mkdir(self, path: Path, parents: bool = True) -> None:
        """Create directory."""
        ...

    def list_files(self, path: Path, pattern: str = "*") -> list[Path]:
        """List files matching pattern in directory."""
        ...

    def list_dirs(self, path: Path) -> list[Path]:
        """List immediate subdirectories."""
        ...

    def exclusive_lock(self, path: Path) -> AbstractContextManager[None]:
        """Hold ``path`` as a lock file, shared across processes, until the block exits."""
        ...


@runtime_checkable
class HttpResponse(Protocol):
    """The parts of an HTTP response the classifier client reads."""

    status_code: int
    text: str
    headers: Mapping[str, str]

    def json(self) -> object:
        """Decode the body as JSON."""
        ...


@runtime_checkable
class HttpSession(Protocol):
    """Abstract HTTP session for JSON POST requests."""

    def post(self, url: str, *, json: object, timeout: float) -> HttpResponse:
        """Send ``json`` to ``url`` and return the response."""
        ...


@runtime_checkable
class RateLimiter(Protocol):
    """Abstract rate limiter for outbound requests."""

    def wait_if_needed(self) -> None:
        """Block until a request is allowed."""
        ...


@runtime_checkable
class CircuitBreaker(Protocol):
    """Abstract circuit breaker for outbound requests."""

    def check(self) -> None:
        """Raise if the circuit is open."""
        ...

    def record_success(self) -> None:
        """Record a successful request."""
        ...

    def record_failure(self) -> None:
        """Record a failed request."""
        ...


@runtime_checkable
class RetryPolicy(Protocol):
    """Abstract retry policy for transient failures."""

    max_retries: int
    retry_statuses: tuple[int, ...]
    retry_exceptions: tuple[type[Exception], ...]

    def compute_backoff(self, attempt: int, retry_after: int | None = None) -> float:
        """Return a delay for the next retry attempt."""
        ...


@runtime_checkable
class ProgressReporter(Protocol):
    """CLI-owned progress reporting interface."""

    def start(self, label: str, total: int | None) -> None:
        """Start a progress session."""
        ...

    def advance(self, count: int) -> None:
        """Advance progress by count."""
        ...

    def finish(self) -> None:
        """Finish a progress session."""
        ...
