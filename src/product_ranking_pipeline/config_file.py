"""Typed parsing and validation for pipeline config files.

Example file:

    schema_version = 1

    [pipeline]
    snapshot_root = "data/rankings"
    top_n = 10

    [ranking]
    min_total_responses = 5

    [ranking.weights]
    nps = 0.30
    sentiment = 0.20
    engagement = 0.15
    volume = 0.15
    recency = 0.10
    trend = 0.10

    [[ranking.confidence_tiers]]
    min_responses = 50
    multiplier = 1.0

    [[ranking.confidence_tiers]]
    min_responses = 0
    multiplier = 0.6
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .domain.ranking_profiles import ConfidenceTier, RankingProfile, RankingWeights
from .exceptions import (
    ConfigFileNotFoundError,
    ConfigFileParseError,
    ConfigFileValidationError,
    RankingProfileError,
)
from .protocols import FileSystem

_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class PipelineConfigFile:
    """Validated pipeline config values loaded from a TOML file."""

    products_path: str | None = None
    responses_path: str | None = None
    snapshot_root: str | None = None
    top_n: int | None = None
    category_max_workers: int | None = None
    product_max_workers: int | None = None
    sentiment_max_concurrency: int | None = None
    sentiment_fail_fast: bool | None = None
    classifier_url: str | None = None
    min_total_responses: int | None = None
    min_recent_responses: int | None = None
    ranking_weights: RankingWeights | None = None
    confidence_tiers: tuple[ConfidenceTier, ...] | None = None
    fallback_multiplier: float | None = None


class _PipelineSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    products_path: str | None = None
    responses_path: str | None = None
    snapshot_root: str | None = None
    top_n: int | None = None
    category_max_workers: int | None = None
    product_max_workers: int | None = None
    sentiment_max_concurrency: int | None = None
    sentiment_fail_fast: bool | None = None
    classifier_url: str | None = None

    @field_validator("products_path", "responses_path", "snapshot_root", "classifier_url")
    @classmethod
    def _validate_non_empty_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        if not text:
            raise ValueError
        return text

    @field_validator(
        "top_n", "category_max_workers", "product_max_workers", "sentiment_max_concurrency"
    )
    @classmethod
    def _validate_positive_int(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 1:
            raise ValueError
        return value


class _WeightsModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    nps: float
    sentiment: float
    engagement: float
    volume: float
    recency: float
    trend: float


class _ConfidenceTierModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    min_responses: int
    multiplier: float

    @field_validator("min_responses")
    @classmethod
    def _validate_min_responses(cls, value: int) -> int:
        if value < 0:
            raise ValueError
        return value


class _RankingSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    min_total_responses: int | None = None
    min_recent_responses: int | None = None
    weights: _WeightsModel | None = None
    confidence_tiers: tuple[_ConfidenceTierModel, ...] | None = None
    fallback_multiplier: float | None = None

    @field_validator("min_total_responses", "min_recent_responses")
    @classmethod
    def _validate_non_negative_int(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError
        return value

    @field_validator("fallback_multiplier")
    @classmethod
    def _validate_multiplier(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 0.0 or value > 1.0:
            raise ValueError
        return value


class _ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    pipeline: _PipelineSectionModel = _PipelineSectionModel()
    ranking: _RankingSectionModel | None = None

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError
        return value


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def _build_ranking_parts(
    section: _RankingSectionModel,
) -> tuple[RankingWeights | None, tuple[ConfidenceTier, ...] | None]:
    weights = None
    if section.weights is not None:
        weights = RankingWeights(**section.weights.model_dump())
    tiers = None
    if section.confidence_tiers is not None:
        tiers = tuple(
            ConfidenceTier(min_responses=tier.min_responses, multiplier=tier.multiplier)
            for tier in section.confidence_tiers
        )
        # Raises RankingProfileError for unordered tiers or out-of-range multipliers.
        RankingProfile(confidence_tiers=tiers)
    return weights, tiers


def load_pipeline_config_file(*, path: Path, fs: FileSystem) -> PipelineConfigFile:
    """Load and validate a pipeline TOML config file."""
    if not fs.exists(path):
        raise ConfigFileNotFoundError(str(path))

    raw_payload = fs.read_text(path)
    try:
        payload: object = tomllib.loads(raw_payload)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _ConfigFileModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), _format_validation_error(exc)) from exc

    ranking = model.ranking or _RankingSectionModel()
    try:
        weights, tiers = _build_ranking_parts(ranking)
    except RankingProfileError as exc:
        raise ConfigFileValidationError(str(path), f"ranking: {exc}") from exc

    section = model.pipeline
    return PipelineConfigFile(
        products_path=section.products_path,
        responses_path=section.responses_path,
        snapshot_root=section.snapshot_root,
        top_n=section.top_n,
        category_max_workers=section.category_max_workers,
        product_max_workers=section.product_max_workers,
        sentiment_max_concurrency=section.sentiment_max_concurrency,
        sentiment_fail_fast=section.sentiment_fail_fast,
        classifier_url=section.classifier_url,
        min_total_responses=ranking.min_total_responses,
        min_recent_responses=ranking.min_recent_responses,
        ranking_weights=weights,
        confidence_tiers=tiers,
        fallback_multiplier=ranking.fallback_multiplier,
    )
