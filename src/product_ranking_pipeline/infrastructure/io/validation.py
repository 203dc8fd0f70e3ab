"""Pydantic-based validation helpers for inbound IO payloads."""

from __future__ import annotations

from datetime import UTC, datetime
from types import MappingProxyType
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from ...domain.models import (
    ProductRankingMetrics,
    RankingEntry,
    ScoreBreakdown,
    Sentiment,
    SentimentBreakdown,
    SentimentResult,
    SurveyResponse,
    TrendDirection,
    WeeklyRanking,
)
from ...io_contracts import (
    SNAPSHOT_SCHEMA_VERSION,
    ProductRankingMetricsIO,
    RankingEntryIO,
    SentimentResponseIO,
    SurveyResponsesFileIO,
    WeeklyRankingIO,
)


SchemaT = TypeVar("SchemaT")
EnumT = TypeVar("EnumT", Sentiment, TrendDirection)


class IncomingDataError(ValueError):
    """Raised when inbound data fails validation."""


def validate_as(schema: type[SchemaT], payload: object) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_python(payload)
    except ValidationError as exc:
        message = f"Invalid payload for {schema}."
        raise IncomingDataError(message) from exc


def validate_json_as(schema: type[SchemaT], payload: str | bytes | bytearray) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_json(payload)
    except ValidationError as exc:
        message = f"Invalid JSON payload for {schema}."
        raise IncomingDataError(message) from exc


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are read as UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise IncomingDataError(f"Invalid timestamp {value!r}.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _parse_optional_timestamp(value: str | None) -> datetime | None:
    if value is None or not value.strip():
        return None
    return parse_timestamp(value)


def _parse_enum(enum_type: type[EnumT], value: str) -> EnumT:
    try:
        return enum_type(value.strip().lower())
    except ValueError as exc:
        raise IncomingDataError(f"Unknown {enum_type.__name__} value {value!r}.") from exc


def parse_survey_responses(payload: object) -> list[SurveyResponse]:
    responses_file = validate_as(SurveyResponsesFileIO, payload)
    return [
        SurveyResponse(
            product_id=item["productId"],
            submitted_at=parse_timestamp(item["submittedAt"]),
            answers=MappingProxyType(dict(item["answers"])),
        )
        for item in responses_file["responses"]
    ]


def parse_sentiment_response(payload: object) -> SentimentResult:
    reply = validate_as(SentimentResponseIO, payload)
    label = reply.get("sentiment")
    if label is None:
        raise IncomingDataError("Classifier reply has no sentiment label.")
    return SentimentResult(
        sentiment=_parse_enum(Sentiment, label),
        score=float(reply.get("score", 0.0)),
        confidence=float(reply.get("confidence", 0.0)),
    )


def _parse_metrics(payload: ProductRankingMetricsIO) -> ProductRankingMetrics:
    breakdown = payload["sentimentBreakdown"]
    return ProductRankingMetrics(
        product_id=payload["productId"],
        product_name=payload["productName"],
        category=payload["category"],
        nps_score=payload["npsScore"],
        total_responses=payload["totalResponses"],
        sentiment_score=payload["sentimentScore"],
        sentiment_breakdown=SentimentBreakdown(
            positive=breakdown["positive"],
            neutral=breakdown["neutral"],
            negative=breakdown["negative"],
        ),
        survey_completion_rate=payload["surveyCompletionRate"],
        feedback_volume=payload["feedbackVolume"],
        recent_response_count=payload["recentResponseCount"],
        last_response_at=_parse_optional_timestamp(payload["lastResponseAt"]),
        days_since_last_response=payload["daysSinceLastResponse"],
        week_over_week_change=payload["weekOverWeekChange"],
        trend_direction=_parse_enum(TrendDirection, payload["trendDirection"]),
        confidence_score=payload["confidenceScore"],
        has_minimum_data=payload["hasMinimumData"],
    )


def _parse_entry(payload: RankingEntryIO) -> RankingEntry:
    breakdown = payload["scoreBreakdown"]
    return RankingEntry(
        rank=payload["rank"],
        product_id=payload["productId"],
        product_name=payload["productName"],
        score=payload["score"],
        metrics=_parse_metrics(payload["metrics"]),
        score_breakdown=ScoreBreakdown(
            nps=breakdown["nps"],
            sentiment=breakdown["sentiment"],
            engagement=breakdown["engagement"],
            volume=breakdown["volume"],
            recency=breakdown["recency"],
            trend=breakdown["trend"],
        ),
        previous_rank=payload["previousRank"],
    )


def parse_weekly_ranking(payload: object) -> WeeklyRanking:
    document = validate_as(WeeklyRankingIO, payload)
    if document["schemaVersion"] != SNAPSHOT_SCHEMA_VERSION:
        raise IncomingDataError(f"Unsupported snapshot schema {document['schemaVersion']}.")
    return WeeklyRanking(
        category=document["category"],
        category_name=document["categoryName"],
        week_start=parse_timestamp(document["weekStart"]),
        week_end=parse_timestamp(document["weekEnd"]),
        generated_at=parse_timestamp(document["generatedAt"]),
        total_products_evaluated=document["totalProductsEvaluated"],
        rankings=tuple(_parse_entry(entry) for entry in document["rankings"]),
    )
