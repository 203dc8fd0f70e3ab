"""Top-N ranking generation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from ..exceptions import MissingMetricsError
from .models import ProductRankingMetrics, RankingEntry, RankingScore

DEFAULT_TOP_N = 10


@dataclass(frozen=True)
class TopRankings:
    """Ranked entries plus how many products competed for them."""

    entries: tuple[RankingEntry, ...]
    total_products_evaluated: int


def sort_scores(scores: Sequence[RankingScore]) -> list[RankingScore]:
    """Highest score first; equal scores fall back to product id so output is stable."""
    return sorted(scores, key=lambda score: (-score.total_score, score.product_id))


def generate_top_rankings(
    scores: Sequence[RankingScore],
    metrics: Sequence[ProductRankingMetrics],
    top_n: int = DEFAULT_TOP_N,
    previous_ranks: Mapping[str, int] | None = None,
) -> TopRankings:
    """Sort, truncate to ``top_n`` and number the survivors from 1.

    Args:
        scores: One score per eligible product.
        metrics: The metrics each score was computed from.
        top_n: Maximum number of entries to keep.
        previous_ranks: Optional last-week ranks, attached to matching entries.
    """
    by_product = {item.product_id: item for item in metrics}
    prior = previous_ranks or {}
    entries: list[RankingEntry] = []
    for index, score in enumerate(sort_scores(scores)[: max(top_n, 0)]):
        metric = by_product.get(score.product_id)
        if metric is None:
            raise MissingMetricsError(score.product_id)
        entries.append(
            RankingEntry(
                rank=index + 1,
                product_id=score.product_id,
                product_name=metric.product_name,
                score=score.total_score,
                metrics=metric,
                score_breakdown=score.breakdown,
                previous_rank=prior.get(score.product_id),
            )
        )
    return TopRankings(entries=tuple(entries), total_products_evaluated=len(scores))
