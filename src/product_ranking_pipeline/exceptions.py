"""Custom exceptions for the product ranking pipeline.

These exceptions provide clear error handling and enable testing of error paths.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    pass


class ClassificationError(PipelineError):
    """Raised when the sentiment classifier cannot classify one text fragment.

    Ranking runs isolate this per fragment unless fail-fast is configured.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Sentiment classification failed: {reason}")


class AuthenticationError(PipelineError):
    """Raised when the classifier service rejects our credentials (401/403).

    This is a fatal error - the run should stop immediately.
    """

    def __init__(self, status_code: int, details: str = "") -> None:
        self.status_code = status_code
        message = f"Classifier authentication failed (HTTP {status_code})."
        if details:
            message = f"{message} {details}"
        super().__init__(
            f"{message}\nPlease check CLASSIFIER_API_KEY in .env is correct and not expired."
        )


class RateLimitError(ClassificationError):
    """Raised when the classifier is still rate limiting (429) after retries.

    Treated like any other per-fragment classification failure.
    """

    def __init__(self, retry_after: int = 60) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after} seconds")


class CircuitBreakerOpen(PipelineError):
    """Raised when circuit breaker trips due to repeated failures.

    The category run should stop rather than keep hammering the classifier.
    """

    def __init__(self, failure_count: int, threshold: int) -> None:
        self.failure_count = failure_count
        self.threshold = threshold
        super().__init__(
            f"Circuit breaker tripped: {failure_count} consecutive failures "
            f"(threshold: {threshold}). Stopping classifier calls."
        )


class SnapshotWriteError(PipelineError):
    """Raised when a ranking snapshot cannot be persisted.

    The previous snapshot for the key is left untouched.
    """

    def __init__(self, category: str, week_id: str, reason: str) -> None:
        self.category = category
        self.week_id = week_id
        super().__init__(f"Failed to write ranking snapshot {category}/{week_id}: {reason}")


class StaleSnapshotError(PipelineError):
    """Raised when a save would replace a newer snapshot with an older one."""

    def __init__(self, category: str, week_id: str, stored_at: str, incoming_at: str) -> None:
        self.category = category
        self.week_id = week_id
        super().__init__(
            f"Refusing stale write for {category}/{week_id}: stored snapshot generated at "
            f"{stored_at}, incoming snapshot generated at {incoming_at}."
        )


class SnapshotDecodeError(PipelineError):
    """Raised when a stored snapshot document fails validation."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Ranking snapshot is not a valid document: {path}")


class InvalidCategoryError(PipelineError):
    """Raised when a category key is not an upper-case identifier like TECH_SAAS."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Invalid category key {value!r}; expected letters, digits and underscores "
            "in upper case (e.g. TECH_SAAS)."
        )


class FileLockTimeoutError(PipelineError):
    """Raised when an exclusive lock file stays held past the timeout."""

    def __init__(self, path: str, timeout_seconds: float) -> None:
        self.path = path
        super().__init__(f"Timed out after {timeout_seconds:g}s waiting for lock {path}")


class WeekIdentifierError(ValueError):
    """Raised when a week identifier does not look like YYYY-Www."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid week identifier {value!r}; expected e.g. 2026-W07.")


class SignalSourceError(PipelineError):
    """Raised when product or response input files are missing or malformed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot load survey signals from {path}: {reason}")


class RankingProfileError(ValueError):
    """Raised when ranking weights, thresholds or tiers are inconsistent."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid ranking profile: {reason}")


class ConfigFileNotFoundError(PipelineError):
    """Raised when an explicit config file path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(PipelineError):
    """Raised when a config file is not valid TOML."""

    def __init__(self, path: str, details: str) -> None:
        super().__init__(f"Config file {path} is not valid TOML: {details}")


class ConfigFileValidationError(PipelineError):
    """Raised when a config file fails schema validation."""

    def __init__(self, path: str, details: str) -> None:
        super().__init__(f"Config file {path} failed validation: {details}")


class JsonObjectExpectedError(ValueError):
    """Raised when a JSON payload is not an object."""

    def __init__(self, source: str) -> None:
        super().__init__(f"Expected a JSON object from {source}.")


class MissingMetricsError(ValueError):
    """Raised when a ranking score has no matching metrics record."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"No metrics supplied for scored product {product_id}.")
