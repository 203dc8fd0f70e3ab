"""Serialisation of domain snapshots into persisted documents."""

from __future__ import annotations

from ...domain.models import (
    ProductRankingMetrics,
    RankingEntry,
    ScoreBreakdown,
    WeeklyRanking,
)
from ...io_contracts import (
    SNAPSHOT_SCHEMA_VERSION,
    ProductRankingMetricsIO,
    RankingEntryIO,
    ScoreBreakdownIO,
    WeeklyRankingIO,
)


def metrics_to_document(metrics: ProductRankingMetrics) -> ProductRankingMetricsIO:
    breakdown = metrics.sentiment_breakdown
    return {
        "productId": metrics.product_id,
        "productName": metrics.product_name,
        "category": metrics.category,
        "npsScore": float(metrics.nps_score),
        "totalResponses": metrics.total_responses,
        "sentimentScore": float(metrics.sentiment_score),
        "sentimentBreakdown": {
            "positive": breakdown.positive,
            "neutral": breakdown.neutral,
            "negative": breakdown.negative,
        },
        "surveyCompletionRate": float(metrics.survey_completion_rate),
        "feedbackVolume": metrics.feedback_volume,
        "recentResponseCount": metrics.recent_response_count,
        "lastResponseAt": (
            metrics.last_response_at.isoformat() if metrics.last_response_at else None
        ),
        "daysSinceLastResponse": metrics.days_since_last_response,
        "weekOverWeekChange": float(metrics.week_over_week_change),
        "trendDirection": metrics.trend_direction.value,
        "confidenceScore": float(metrics.confidence_score),
        "hasMinimumData": metrics.has_minimum_data,
    }


def breakdown_to_document(breakdown: ScoreBreakdown) -> ScoreBreakdownIO:
    return {
        "nps": breakdown.nps,
        "sentiment": breakdown.sentiment,
        "engagement": breakdown.engagement,
        "volume": breakdown.volume,
        "recency": breakdown.recency,
        "trend": breakdown.trend,
    }


def entry_to_document(entry: RankingEntry) -> RankingEntryIO:
    return {
        "rank": entry.rank,
        "productId": entry.product_id,
        "productName": entry.product_name,
        "score": entry.score,
        "metrics": metrics_to_document(entry.metrics),
        "scoreBreakdown": breakdown_to_document(entry.score_breakdown),
        "previousRank": entry.previous_rank,
    }


def ranking_to_document(ranking: WeeklyRanking) -> WeeklyRankingIO:
    """Build the stable, versioned document persisted for one (category, week)."""
    return {
        "schemaVersion": SNAPSHOT_SCHEMA_VERSION,
        "category": ranking.category,
        "categoryName": ranking.category_name,
        "weekStart": ranking.week_start.isoformat(),
        "weekEnd": ranking.week_end.isoformat(),
        "generatedAt": ranking.generated_at.isoformat(),
        "totalProductsEvaluated": ranking.total_products_evaluated,
        "rankings": [entry_to_document(entry) for entry in ranking.rankings],
    }
