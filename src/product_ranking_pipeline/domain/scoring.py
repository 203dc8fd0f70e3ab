"""Score normalisation: metrics in, confidence-adjusted ranking score out.

Each component is mapped to 0..1, weighted, summed and then damped by a
confidence multiplier chosen from the response volume.

Usage example:
    from product_ranking_pipeline.domain.ranking_profiles import DEFAULT_RANKING_PROFILE
    from product_ranking_pipeline.domain.scoring import calculate_ranking_score

    score = calculate_ranking_score(metrics, DEFAULT_RANKING_PROFILE)
    assert 0.0 <= score.total_score <= 1.0
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .models import ProductRankingMetrics, RankingScore, ScoreBreakdown
from .ranking_profiles import DEFAULT_RANKING_PROFILE, RankingProfile

FEEDBACK_VOLUME_SATURATION = 50
VOLUME_LOG_CEILING = 1000
RECENCY_DECAY_DAYS = 10
COMPLETION_SHARE = 0.6
FEEDBACK_SHARE = 0.4


@dataclass(frozen=True)
class NormalisedComponents:
    """Unweighted component scores, each in 0..1."""

    nps: float
    sentiment: float
    engagement: float
    volume: float
    recency: float
    trend: float


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def normalise_nps(nps_score: float) -> float:
    """Map -100..100 onto 0..1."""
    return _clamp((nps_score + 100) / 200)


def normalise_engagement(completion_rate: float, feedback_volume: int) -> float:
    return _clamp(
        completion_rate * COMPLETION_SHARE
        + min(feedback_volume / FEEDBACK_VOLUME_SATURATION, 1.0) * FEEDBACK_SHARE
    )


def normalise_volume(total_responses: int) -> float:
    """Logarithmic so very large response counts stop dominating."""
    return _clamp(math.log10(total_responses + 1) / math.log10(VOLUME_LOG_CEILING))


def normalise_recency(days_since_last_response: int) -> float:
    return _clamp(math.exp(-days_since_last_response / RECENCY_DECAY_DAYS))


def normalise_trend(week_over_week_change: float) -> float:
    """-100%..+100% maps linearly onto 0..1 around a neutral 0.5."""
    return _clamp(0.5 + week_over_week_change / 200)


def normalise(metrics: ProductRankingMetrics) -> NormalisedComponents:
    return NormalisedComponents(
        nps=normalise_nps(metrics.nps_score),
        sentiment=_clamp(metrics.sentiment_score),
        engagement=normalise_engagement(metrics.survey_completion_rate, metrics.feedback_volume),
        volume=normalise_volume(metrics.total_responses),
        recency=normalise_recency(metrics.days_since_last_response),
        trend=normalise_trend(metrics.week_over_week_change),
    )


def confidence_multiplier(
    total_responses: int, profile: RankingProfile = DEFAULT_RANKING_PROFILE
) -> float:
    """First tier (highest minimum first) the product qualifies for."""
    for tier in profile.confidence_tiers:
        if total_responses >= tier.min_responses:
            return tier.multiplier
    return profile.fallback_multiplier


def calculate_ranking_score(
    metrics: ProductRankingMetrics, profile: RankingProfile = DEFAULT_RANKING_PROFILE
) -> RankingScore:
    components = normalise(metrics)
    weights = profile.weights
    breakdown = ScoreBreakdown(
        nps=components.nps * weights.nps,
        sentiment=components.sentiment * weights.sentiment,
        engagement=components.engagement * weights.engagement,
        volume=components.volume * weights.volume,
        recency=components.recency * weights.recency,
        trend=components.trend * weights.trend,
    )
    multiplier = confidence_multiplier(metrics.total_responses, profile)
    return RankingScore(
        product_id=metrics.product_id,
        total_score=breakdown.total * multiplier,
        breakdown=breakdown,
        confidence_multiplier=multiplier,
    )
