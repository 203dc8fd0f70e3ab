"""Composition root for wiring CLI dependencies."""

from __future__ import annotations

from pathlib import Path

from .application.signal_source import FileSignalSource
from .cli import CliDependencies, create_app
from .cli_progress import CliProgressReporter
from .config import PipelineConfig
from .infrastructure import (
    FileSnapshotStore,
    KeywordSentimentClassifier,
    LocalFileSystem,
    build_http_sentiment_classifier,
)
from .protocols import SentimentClassifier


def build_sentiment_classifier(config: PipelineConfig) -> SentimentClassifier:
    """Return the HTTP classifier when a service URL is configured, else the keyword one."""
    if not config.classifier_url:
        return KeywordSentimentClassifier()
    return build_http_sentiment_classifier(
        url=config.classifier_url,
        api_key=config.classifier_api_key,
        max_rpm=config.classifier_max_rpm,
        min_delay_seconds=config.classifier_min_delay_seconds,
        circuit_breaker_threshold=config.classifier_circuit_breaker_threshold,
        circuit_breaker_timeout_seconds=config.classifier_circuit_breaker_timeout_seconds,
        max_retries=config.classifier_max_retries,
        backoff_factor=config.classifier_backoff_factor,
        max_backoff_seconds=config.classifier_backoff_max_seconds,
        timeout_seconds=config.classifier_timeout_seconds,
        max_concurrency=config.sentiment_max_concurrency,
    )


def build_cli_dependencies(
    *,
    config: PipelineConfig,
    build_classifier: bool,
) -> CliDependencies:
    """Build concrete dependencies for CLI commands.

    Args:
        config: Pipeline configuration (paths, classifier wiring).
        build_classifier: Whether the command needs a sentiment classifier.
    """
    fs = LocalFileSystem()
    source = FileSignalSource(
        products_path=Path(config.products_path),
        responses_path=Path(config.responses_path),
        fs=fs,
    )
    store = FileSnapshotStore(root=Path(config.snapshot_root), fs=fs)
    classifier = build_sentiment_classifier(config) if build_classifier else None
    return CliDependencies(
        fs=fs,
        store=store,
        source=source,
        classifier=classifier,
        progress=CliProgressReporter(),
    )


app = create_app(build_cli_dependencies)
