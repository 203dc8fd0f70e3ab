"""Minimum-data gate applied before scoring."""

from __future__ import annotations

from collections.abc import Iterable

from .models import ProductRankingMetrics
from .ranking_profiles import EligibilityThresholds


def is_eligible(metrics: ProductRankingMetrics, thresholds: EligibilityThresholds) -> bool:
    return (
        metrics.has_minimum_data
        and metrics.total_responses >= thresholds.min_total_responses
        and metrics.recent_response_count >= thresholds.min_recent_responses
    )


def filter_eligible(
    metrics: Iterable[ProductRankingMetrics], thresholds: EligibilityThresholds
) -> list[ProductRankingMetrics]:
    """Keep products with enough data to rank, preserving input order."""
    return [item for item in metrics if is_eligible(item, thresholds)]
