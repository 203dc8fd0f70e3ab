"""Pure metric calculations over a product's survey responses.

Everything here is deterministic given the responses, the classifier labels and
``now``. Classifier calls live in ``application.metrics``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import (
    AnswerValue,
    Product,
    ProductRankingMetrics,
    Sentiment,
    SentimentBreakdown,
    SurveyResponse,
    TrendDirection,
)
from .ranking_profiles import EligibilityThresholds

NPS_KEY_MARKERS = ("nps", "recommend")
PROMOTER_MIN = 9
DETRACTOR_MAX = 6

SENTIMENT_TEXT_MIN_LENGTH = 10  # strictly longer than this is classified
FEEDBACK_TEXT_MIN_LENGTH = 20  # strictly longer than this counts as written feedback
NOMINAL_QUESTIONS_PER_SURVEY = 3
NEUTRAL_SENTIMENT_SCORE = 0.5

NO_RESPONSE_DAYS = 999
WEEKLY_WINDOW = timedelta(days=7)
RECENT_WINDOW = timedelta(days=30)
TREND_THRESHOLD_PERCENT = 5.0

CONFIDENCE_VOLUME_SATURATION = 100
CONFIDENCE_RECENCY_DAYS = 30
CONFIDENCE_ACTIVITY_CAP = 20


@dataclass(frozen=True)
class Engagement:
    """Completion and written-feedback measures."""

    completion_rate: float
    feedback_volume: int


def _is_number(value: AnswerValue) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def find_nps_rating(answers: Mapping[str, AnswerValue]) -> float | None:
    """Return the rating from the first NPS/recommend question, if it is numeric."""
    for key, value in answers.items():
        lowered = key.lower()
        if any(marker in lowered for marker in NPS_KEY_MARKERS):
            return float(value) if _is_number(value) else None
    return None


def calculate_nps(responses: Iterable[SurveyResponse]) -> float:
    """Net Promoter Score (-100..100) over responses that carry a rating; 0 if none do."""
    ratings = [
        rating
        for rating in (find_nps_rating(response.answers) for response in responses)
        if rating is not None
    ]
    if not ratings:
        return 0.0
    promoters = sum(1 for rating in ratings if rating >= PROMOTER_MIN)
    detractors = sum(1 for rating in ratings if rating <= DETRACTOR_MAX)
    return (promoters - detractors) / len(ratings) * 100


def collect_text_fragments(responses: Iterable[SurveyResponse]) -> list[str]:
    """Free-text answers long enough to be worth classifying, in response order."""
    return [
        answer
        for response in responses
        for answer in response.answers.values()
        if isinstance(answer, str) and len(answer) > SENTIMENT_TEXT_MIN_LENGTH
    ]


def summarise_sentiment(labels: Sequence[Sentiment]) -> tuple[float, SentimentBreakdown]:
    """Share of positive labels plus counts; neutral 0.5 when there was no text."""
    if not labels:
        return NEUTRAL_SENTIMENT_SCORE, SentimentBreakdown()
    breakdown = SentimentBreakdown(
        positive=sum(1 for label in labels if label is Sentiment.POSITIVE),
        neutral=sum(1 for label in labels if label is Sentiment.NEUTRAL),
        negative=sum(1 for label in labels if label is Sentiment.NEGATIVE),
    )
    return breakdown.positive / len(labels), breakdown


def calculate_engagement(responses: Sequence[SurveyResponse]) -> Engagement:
    if not responses:
        return Engagement(completion_rate=0.0, feedback_volume=0)
    average_answers = sum(len(response.answers) for response in responses) / len(responses)
    feedback_volume = sum(
        1
        for response in responses
        if any(
            isinstance(answer, str) and len(answer) > FEEDBACK_TEXT_MIN_LENGTH
            for answer in response.answers.values()
        )
    )
    return Engagement(
        completion_rate=min(average_answers / NOMINAL_QUESTIONS_PER_SURVEY, 1.0),
        feedback_volume=feedback_volume,
    )


def latest_response_at(responses: Iterable[SurveyResponse]) -> datetime | None:
    return max((response.submitted_at for response in responses), default=None)


def days_since(moment: datetime | None, now: datetime) -> int:
    """Whole days elapsed since ``moment``; the no-response sentinel when it is None."""
    if moment is None:
        return NO_RESPONSE_DAYS
    return max(0, int((now - moment).total_seconds() // 86400))


def responses_since(
    responses: Iterable[SurveyResponse], cutoff: datetime
) -> list[SurveyResponse]:
    return [response for response in responses if response.submitted_at >= cutoff]


def week_over_week_change(current_nps: float, previous_nps: float | None) -> float:
    """Percent change in NPS; 0 when there is no usable baseline."""
    if previous_nps is None or previous_nps == 0:
        return 0.0
    return (current_nps - previous_nps) / abs(previous_nps) * 100


def trend_direction(change: float) -> TrendDirection:
    if change > TREND_THRESHOLD_PERCENT:
        return TrendDirection.UP
    if change < -TREND_THRESHOLD_PERCENT:
        return TrendDirection.DOWN
    return TrendDirection.STABLE


def calculate_confidence(
    total_responses: int, recent_responses: int, days_since_last: int
) -> float:
    """Descriptive confidence in 0..1 blending volume, recency and activity."""
    volume = min(total_responses / CONFIDENCE_VOLUME_SATURATION, 1.0)
    recency = max(0.0, 1 - days_since_last / CONFIDENCE_RECENCY_DAYS)
    activity = 0.0
    if total_responses > 0:
        activity = min(recent_responses / min(total_responses, CONFIDENCE_ACTIVITY_CAP), 1.0)
    return volume * 0.5 + recency * 0.3 + activity * 0.2


def has_minimum_data(
    total_responses: int, recent_responses: int, thresholds: EligibilityThresholds
) -> bool:
    return (
        total_responses >= thresholds.min_total_responses
        and recent_responses >= thresholds.min_recent_responses
    )


def build_metrics(
    *,
    product: Product,
    category: str,
    responses: Sequence[SurveyResponse],
    previous_week_responses: Sequence[SurveyResponse] | None,
    sentiment_labels: Sequence[Sentiment],
    thresholds: EligibilityThresholds,
    now: datetime,
) -> ProductRankingMetrics:
    """Assemble a metrics record from responses and already-classified text.

    Args:
        product: The product being measured.
        category: The product's category (already checked to be present).
        responses: Full response history for the product.
        previous_week_responses: Responses from the week before the trailing 7 days,
            or None when no baseline is available.
        sentiment_labels: One label per fragment from ``collect_text_fragments``.
        thresholds: Minimum-data gate.
        now: Reference time for all windows.
    """
    weekly = responses_since(responses, now - WEEKLY_WINDOW)
    recent = responses_since(responses, now - RECENT_WINDOW)
    last_at = latest_response_at(responses)
    days_since_last = days_since(last_at, now)

    current_nps = calculate_nps(weekly)
    previous_nps = (
        calculate_nps(previous_week_responses) if previous_week_responses is not None else None
    )
    change = week_over_week_change(current_nps, previous_nps)

    sentiment_score, breakdown = summarise_sentiment(sentiment_labels)
    engagement = calculate_engagement(responses)

    return ProductRankingMetrics(
        product_id=product.id,
        product_name=product.name,
        category=category,
        nps_score=calculate_nps(responses),
        total_responses=len(responses),
        sentiment_score=sentiment_score,
        sentiment_breakdown=breakdown,
        survey_completion_rate=engagement.completion_rate,
        feedback_volume=engagement.feedback_volume,
        recent_response_count=len(weekly),
        last_response_at=last_at,
        days_since_last_response=days_since_last,
        week_over_week_change=change,
        trend_direction=trend_direction(change),
        confidence_score=calculate_confidence(len(responses), len(recent), days_since_last),
        has_minimum_data=has_minimum_data(len(responses), len(recent), thresholds),
    )
