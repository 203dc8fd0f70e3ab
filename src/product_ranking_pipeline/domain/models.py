"""Domain records for the weekly ranking engine.

Usage example:
    from datetime import UTC, datetime

    from product_ranking_pipeline.domain.models import Product, SurveyResponse

    product = Product(id="p-1", name="Acme CRM", category="TECH_SAAS")
    response = SurveyResponse(
        product_id="p-1",
        submitted_at=datetime(2026, 10, 12, 9, 30, tzinfo=UTC),
        answers={"q_nps_score": 9, "q_feedback": "Fast and easy to set up"},
    )
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from types import MappingProxyType

AnswerValue = str | int | float


class Sentiment(StrEnum):
    """Classifier output labels."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class TrendDirection(StrEnum):
    """Week-over-week NPS movement."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


def _empty_answers() -> Mapping[str, AnswerValue]:
    return MappingProxyType({})


@dataclass(frozen=True)
class Product:
    """A product as supplied by the signal source."""

    id: str
    name: str
    category: str | None = None


@dataclass(frozen=True)
class SurveyResponse:
    """One submitted survey response for a product."""

    product_id: str
    submitted_at: datetime
    answers: Mapping[str, AnswerValue] = field(default_factory=_empty_answers)


@dataclass(frozen=True)
class SentimentResult:
    """Classification for one text fragment."""

    sentiment: Sentiment
    score: float = 0.0
    confidence: float = 0.0


@dataclass(frozen=True)
class SentimentBreakdown:
    """Counts of classified fragments per label."""

    positive: int = 0
    neutral: int = 0
    negative: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative


@dataclass(frozen=True)
class ProductRankingMetrics:
    """Everything measured about one product in one ranking run."""

    product_id: str
    product_name: str
    category: str
    nps_score: float  # -100..100
    total_responses: int
    sentiment_score: float  # 0..1
    sentiment_breakdown: SentimentBreakdown
    survey_completion_rate: float  # 0..1
    feedback_volume: int
    recent_response_count: int  # trailing 7 days
    last_response_at: datetime | None
    days_since_last_response: int  # 999 when there are no responses
    week_over_week_change: float  # signed percent
    trend_direction: TrendDirection
    confidence_score: float  # 0..1, descriptive only
    has_minimum_data: bool


@dataclass(frozen=True)
class ScoreBreakdown:
    """Weighted contribution of each component to the pre-multiplier score."""

    nps: float
    sentiment: float
    engagement: float
    volume: float
    recency: float
    trend: float

    @property
    def total(self) -> float:
        return self.nps + self.sentiment + self.engagement + self.volume + self.recency + self.trend


@dataclass(frozen=True)
class RankingScore:
    """Confidence-adjusted score for one product."""

    product_id: str
    total_score: float
    breakdown: ScoreBreakdown
    confidence_multiplier: float


@dataclass(frozen=True)
class RankingEntry:
    """One ranked row in a weekly snapshot."""

    rank: int
    product_id: str
    product_name: str
    score: float
    metrics: ProductRankingMetrics
    score_breakdown: ScoreBreakdown
    previous_rank: int | None = None


@dataclass(frozen=True)
class WeeklyRanking:
    """Persisted top-N snapshot for one category and one week."""

    category: str
    category_name: str
    week_start: datetime
    week_end: datetime
    generated_at: datetime
    total_products_evaluated: int
    rankings: tuple[RankingEntry, ...]

    def entry_for(self, product_id: str) -> RankingEntry | None:
        """Return the entry for ``product_id`` if it made the top N."""
        for entry in self.rankings:
            if entry.product_id == product_id:
                return entry
        return None


@dataclass(frozen=True)
class ProductTrendPoint:
    """A product's position in one historical snapshot."""

    week_start: datetime
    week_id: str
    rank: int | None
    score: float


@dataclass(frozen=True)
class RankingChange:
    """Movement of a product between last week's and this week's snapshots."""

    current_rank: int | None
    previous_rank: int | None

    @property
    def is_ranked(self) -> bool:
        return self.current_rank is not None

    @property
    def is_new_entry(self) -> bool:
        return self.current_rank is not None and self.previous_rank is None

    @property
    def rank_change(self) -> int | None:
        """Positive when the product moved up the table."""
        if self.current_rank is None or self.previous_rank is None:
            return None
        return self.previous_rank - self.current_rank


@dataclass(frozen=True)
class RankingsSummary:
    """Overview of the current week across categories."""

    total_categories: int
    categories_with_rankings: int
    total_ranked_products: int
    last_generated: datetime | None
