"""Flat CSV export of one weekly ranking for dashboards and spreadsheets."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..domain.models import RankingEntry, WeeklyRanking
from ..domain.weeks import week_identifier
from ..observability import get_logger
from ..protocols import FileSystem

logger = get_logger("product_ranking_pipeline.export")

RANKING_EXPORT_COLUMNS = (
    "week_id",
    "category",
    "category_name",
    "rank",
    "previous_rank",
    "product_id",
    "product_name",
    "score",
    "nps_score",
    "sentiment_score",
    "total_responses",
    "recent_response_count",
    "trend_direction",
    "week_over_week_change",
    "score_nps",
    "score_sentiment",
    "score_engagement",
    "score_volume",
    "score_recency",
    "score_trend",
)


def _entry_row(ranking: WeeklyRanking, week_id: str, entry: RankingEntry) -> dict[str, object]:
    metrics = entry.metrics
    breakdown = entry.score_breakdown
    return {
        "week_id": week_id,
        "category": ranking.category,
        "category_name": ranking.category_name,
        "rank": entry.rank,
        "previous_rank": "" if entry.previous_rank is None else entry.previous_rank,
        "product_id": entry.product_id,
        "product_name": entry.product_name,
        "score": round(entry.score, 6),
        "nps_score": round(metrics.nps_score, 2),
        "sentiment_score": round(metrics.sentiment_score, 4),
        "total_responses": metrics.total_responses,
        "recent_response_count": metrics.recent_response_count,
        "trend_direction": metrics.trend_direction.value,
        "week_over_week_change": round(metrics.week_over_week_change, 2),
        "score_nps": round(breakdown.nps, 6),
        "score_sentiment": round(breakdown.sentiment, 6),
        "score_engagement": round(breakdown.engagement, 6),
        "score_volume": round(breakdown.volume, 6),
        "score_recency": round(breakdown.recency, 6),
        "score_trend": round(breakdown.trend, 6),
    }


def ranking_to_frame(ranking: WeeklyRanking) -> pd.DataFrame:
    week_id = week_identifier(ranking.week_start)
    rows = [_entry_row(ranking, week_id, entry) for entry in ranking.rankings]
    return pd.DataFrame(rows, columns=list(RANKING_EXPORT_COLUMNS))


def export_ranking_csv(ranking: WeeklyRanking, out_path: str | Path, fs: FileSystem) -> Path:
    """Write ``ranking`` as one row per entry and return the path written."""
    path = Path(out_path)
    fs.write_csv(ranking_to_frame(ranking), path)
    logger.info("Exported %s rows for %s to %s", len(ranking.rankings), ranking.category, path)
    return path
