"""Boundary-neutral IO contracts for persisted snapshots and inbound signals.

Snapshot documents use camelCase keys so dashboards can read them as-is.

Usage example:
    from product_ranking_pipeline.io_contracts import ScoreBreakdownIO

    breakdown: ScoreBreakdownIO = {
        "nps": 0.1,
        "sentiment": 0.12,
        "engagement": 0.08,
        "volume": 0.05,
        "recency": 0.09,
        "trend": 0.05,
    }
"""

from __future__ import annotations

from typing_extensions import TypedDict

SNAPSHOT_SCHEMA_VERSION = 1

AnswerIO = str | int | float


class SentimentBreakdownIO(TypedDict):
    """Counts of classified fragments per label."""

    positive: int
    neutral: int
    negative: int


class ProductRankingMetricsIO(TypedDict):
    """Metrics snapshot embedded in each ranking entry."""

    productId: str
    productName: str
    category: str
    npsScore: float
    totalResponses: int
    sentimentScore: float
    sentimentBreakdown: SentimentBreakdownIO
    surveyCompletionRate: float
    feedbackVolume: int
    recentResponseCount: int
    lastResponseAt: str | None
    daysSinceLastResponse: int
    weekOverWeekChange: float
    trendDirection: str
    confidenceScore: float
    hasMinimumData: bool


class ScoreBreakdownIO(TypedDict):
    """Weighted component contributions."""

    nps: float
    sentiment: float
    engagement: float
    volume: float
    recency: float
    trend: float


class RankingEntryIO(TypedDict):
    """One ranked product in a snapshot document."""

    rank: int
    productId: str
    productName: str
    score: float
    metrics: ProductRankingMetricsIO
    scoreBreakdown: ScoreBreakdownIO
    previousRank: int | None


class WeeklyRankingIO(TypedDict):
    """Persisted snapshot document for one (category, week)."""

    schemaVersion: int
    category: str
    categoryName: str
    weekStart: str
    weekEnd: str
    generatedAt: str
    totalProductsEvaluated: int
    rankings: list[RankingEntryIO]


class SurveyResponseIO(TypedDict):
    """Inbound survey response."""

    productId: str
    submittedAt: str
    answers: dict[str, AnswerIO]


class SurveyResponsesFileIO(TypedDict):
    """Inbound responses file."""

    responses: list[SurveyResponseIO]


class SentimentResponseIO(TypedDict, total=False):
    """Classifier service reply."""

    sentiment: str
    score: float
    confidence: float
