"""Centralised, injectable configuration for the product ranking pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Self

from dotenv import load_dotenv

from .application.ranking_run import RankingRunOptions
from .config_file import PipelineConfigFile
from .domain.ranking_profiles import (
    ConfidenceTier,
    EligibilityThresholds,
    RankingProfile,
    RankingWeights,
    default_confidence_tiers,
)


class PositiveIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a positive integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive integer.")


class NonNegativeIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be zero or a positive integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be an integer >= 0.")


class BooleanEnvVarError(ValueError):
    """Raised when an environment variable must be a supported boolean."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a boolean value (true/false, 1/0, yes/no, on/off).")


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration object for ranking runs and queries.

    Load from environment with `PipelineConfig.from_env()` or construct directly for testing.
    """

    # Inputs and storage
    products_path: str = "data/products.csv"
    responses_path: str = "data/responses.json"
    snapshot_root: str = "data/rankings"

    # Ranking
    top_n: int = 10
    min_total_responses: int = 1
    min_recent_responses: int = 0
    ranking_weights: RankingWeights = field(default_factory=RankingWeights)
    confidence_tiers: tuple[ConfidenceTier, ...] = field(default_factory=default_confidence_tiers)
    fallback_multiplier: float = 0.5

    # Concurrency
    category_max_workers: int = 4
    product_max_workers: int = 4
    sentiment_max_concurrency: int = 4
    sentiment_fail_fast: bool = False

    # Sentiment classifier service (keyword classifier when no URL is set)
    classifier_url: str = ""
    classifier_api_key: str = ""
    classifier_timeout_seconds: float = 10.0
    classifier_max_rpm: int = 600
    classifier_min_delay_seconds: float = 0.05
    classifier_max_retries: int = 3
    classifier_backoff_factor: float = 0.5
    classifier_backoff_max_seconds: float = 30.0
    classifier_circuit_breaker_threshold: int = 5
    classifier_circuit_breaker_timeout_seconds: float = 60.0

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            PipelineConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            products_path=os.getenv("PRODUCTS_PATH", "").strip() or "data/products.csv",
            responses_path=os.getenv("RESPONSES_PATH", "").strip() or "data/responses.json",
            snapshot_root=os.getenv("SNAPSHOT_ROOT", "").strip() or "data/rankings",
            top_n=_parse_positive_int(os.getenv("RANKING_TOP_N", ""), 10, env_name="RANKING_TOP_N"),
            min_total_responses=_parse_non_negative_int(
                os.getenv("MIN_TOTAL_RESPONSES", ""), 1, env_name="MIN_TOTAL_RESPONSES"
            ),
            min_recent_responses=_parse_non_negative_int(
                os.getenv("MIN_RECENT_RESPONSES", ""), 0, env_name="MIN_RECENT_RESPONSES"
            ),
            category_max_workers=_parse_positive_int(
                os.getenv("CATEGORY_MAX_WORKERS", ""), 4, env_name="CATEGORY_MAX_WORKERS"
            ),
            product_max_workers=_parse_positive_int(
                os.getenv("PRODUCT_MAX_WORKERS", ""), 4, env_name="PRODUCT_MAX_WORKERS"
            ),
            sentiment_max_concurrency=_parse_positive_int(
                os.getenv("SENTIMENT_MAX_CONCURRENCY", ""), 4, env_name="SENTIMENT_MAX_CONCURRENCY"
            ),
            sentiment_fail_fast=_parse_optional_bool(
                os.getenv("SENTIMENT_FAIL_FAST", ""), env_name="SENTIMENT_FAIL_FAST"
            )
            or False,
            classifier_url=os.getenv("CLASSIFIER_URL", "").strip(),
            classifier_api_key=os.getenv("CLASSIFIER_API_KEY", "").strip(),
            classifier_timeout_seconds=float(os.getenv("CLASSIFIER_TIMEOUT_SECONDS", "10")),
            classifier_max_rpm=int(os.getenv("CLASSIFIER_MAX_RPM", "600")),
            classifier_min_delay_seconds=float(os.getenv("CLASSIFIER_MIN_DELAY_SECONDS", "0.05")),
            classifier_max_retries=int(os.getenv("CLASSIFIER_MAX_RETRIES", "3")),
            classifier_backoff_factor=float(os.getenv("CLASSIFIER_BACKOFF_FACTOR", "0.5")),
            classifier_backoff_max_seconds=float(
                os.getenv("CLASSIFIER_BACKOFF_MAX_SECONDS", "30")
            ),
            classifier_circuit_breaker_threshold=int(
                os.getenv("CLASSIFIER_CIRCUIT_BREAKER_THRESHOLD", "5")
            ),
            classifier_circuit_breaker_timeout_seconds=float(
                os.getenv("CLASSIFIER_CIRCUIT_BREAKER_TIMEOUT_SECONDS", "60")
            ),
        )

    def with_overrides(
        self,
        *,
        products_path: str | None = None,
        responses_path: str | None = None,
        snapshot_root: str | None = None,
        top_n: int | None = None,
        min_total_responses: int | None = None,
        min_recent_responses: int | None = None,
        sentiment_fail_fast: bool | None = None,
    ) -> Self:
        """Return a new config with specified overrides (for CLI options)."""
        return replace(
            self,
            products_path=self.products_path if products_path is None else products_path.strip(),
            responses_path=self.responses_path
            if responses_path is None
            else responses_path.strip(),
            snapshot_root=self.snapshot_root if snapshot_root is None else snapshot_root.strip(),
            top_n=self.top_n if top_n is None else top_n,
            min_total_responses=self.min_total_responses
            if min_total_responses is None
            else min_total_responses,
            min_recent_responses=self.min_recent_responses
            if min_recent_responses is None
            else min_recent_responses,
            sentiment_fail_fast=self.sentiment_fail_fast
            if sentiment_fail_fast is None
            else sentiment_fail_fast,
        )

    def with_file_overrides(self, file_config: PipelineConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        return replace(
            self,
            products_path=self.products_path
            if file_config.products_path is None
            else file_config.products_path,
            responses_path=self.responses_path
            if file_config.responses_path is None
            else file_config.responses_path,
            snapshot_root=self.snapshot_root
            if file_config.snapshot_root is None
            else file_config.snapshot_root,
            top_n=self.top_n if file_config.top_n is None else file_config.top_n,
            min_total_responses=self.min_total_responses
            if file_config.min_total_responses is None
            else file_config.min_total_responses,
            min_recent_responses=self.min_recent_responses
            if file_config.min_recent_responses is None
            else file_config.min_recent_responses,
            ranking_weights=self.ranking_weights
            if file_config.ranking_weights is None
            else file_config.ranking_weights,
            confidence_tiers=self.confidence_tiers
            if file_config.confidence_tiers is None
            else file_config.confidence_tiers,
            fallback_multiplier=self.fallback_multiplier
            if file_config.fallback_multiplier is None
            else file_config.fallback_multiplier,
            category_max_workers=self.category_max_workers
            if file_config.category_max_workers is None
            else file_config.category_max_workers,
            product_max_workers=self.product_max_workers
            if file_config.product_max_workers is None
            else file_config.product_max_workers,
            sentiment_max_concurrency=self.sentiment_max_concurrency
            if file_config.sentiment_max_concurrency is None
            else file_config.sentiment_max_concurrency,
            sentiment_fail_fast=self.sentiment_fail_fast
            if file_config.sentiment_fail_fast is None
            else file_config.sentiment_fail_fast,
            classifier_url=self.classifier_url
            if file_config.classifier_url is None
            else file_config.classifier_url,
        )

    def ranking_profile(self) -> RankingProfile:
        """Build the weights/thresholds/tiers bundle used by scoring and eligibility."""
        return RankingProfile(
            weights=self.ranking_weights,
            thresholds=EligibilityThresholds(
                min_total_responses=self.min_total_responses,
                min_recent_responses=self.min_recent_responses,
            ),
            confidence_tiers=self.confidence_tiers,
            fallback_multiplier=self.fallback_multiplier,
        )

    def run_options(self) -> RankingRunOptions:
        return RankingRunOptions(
            top_n=self.top_n,
            profile=self.ranking_profile(),
            category_workers=self.category_max_workers,
            product_workers=self.product_max_workers,
            sentiment_workers=self.sentiment_max_concurrency,
            sentiment_fail_fast=self.sentiment_fail_fast,
        )


def _parse_positive_int(value: str, default: int, *, env_name: str) -> int:
    """Parse a positive integer from an environment variable, falling back to ``default``."""
    text = value.strip()
    if not text:
        return default
    try:
        parsed = int(text)
    except ValueError as exc:
        raise PositiveIntegerEnvVarError(env_name) from exc
    if parsed < 1:
        raise PositiveIntegerEnvVarError(env_name)
    return parsed


def _parse_non_negative_int(value: str, default: int, *, env_name: str) -> int:
    text = value.strip()
    if not text:
        return default
    try:
        parsed = int(text)
    except ValueError as exc:
        raise NonNegativeIntegerEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeIntegerEnvVarError(env_name)
    return parsed


def _parse_optional_bool(value: str, *, env_name: str) -> bool | None:
    """Parse an optional boolean from an environment variable."""
    text = value.strip().lower()
    if not text:
        return None
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise BooleanEnvVarError(env_name)
