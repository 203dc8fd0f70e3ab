"""Read paths over stored ranking snapshots.

All queries go straight to the snapshot store and never recompute rankings.
"""

from __future__ import annotations

from datetime import UTC, datetime

from ..domain.categories import CATEGORY_KEYS
from ..domain.models import ProductTrendPoint, RankingChange, RankingsSummary, WeeklyRanking
from ..domain.weeks import week_identifier
from ..protocols import SnapshotStore


def _resolve_now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


def get_current_ranking(
    store: SnapshotStore, category: str, *, now: datetime | None = None
) -> WeeklyRanking | None:
    return store.get_current(category, _resolve_now(now))


def get_ranking_history(
    store: SnapshotStore, category: str, *, limit: int | None = None
) -> list[WeeklyRanking]:
    """Stored snapshots for ``category``, newest week first."""
    return store.get_history(category, limit)


def get_product_ranking_history(
    store: SnapshotStore, product_id: str, category: str
) -> list[ProductTrendPoint]:
    """Rank and score per stored week, newest first; weeks it missed have rank None."""
    return store.get_product_trend(product_id, category)


def get_previous_rank(
    store: SnapshotStore, product_id: str, category: str, *, now: datetime | None = None
) -> int | None:
    return store.get_previous_rank(product_id, category, _resolve_now(now))


def check_product_ranking_change(
    store: SnapshotStore, product_id: str, category: str, *, now: datetime | None = None
) -> RankingChange:
    """Compare a product's rank this week with last week."""
    moment = _resolve_now(now)
    current = store.get_current(category, moment)
    entry = current.entry_for(product_id) if current else None
    return RankingChange(
        current_rank=entry.rank if entry else None,
        previous_rank=store.get_previous_rank(product_id, category, moment),
    )


def get_all_current_rankings(
    store: SnapshotStore, *, now: datetime | None = None
) -> dict[str, WeeklyRanking]:
    """Current-week snapshots keyed by category, for every category that has one."""
    moment = _resolve_now(now)
    rankings: dict[str, WeeklyRanking] = {}
    for category in store.list_categories(week_identifier(moment)):
        ranking = store.get_current(category, moment)
        if ranking is not None:
            rankings[category] = ranking
    return rankings


def get_rankings_summary(
    store: SnapshotStore, *, now: datetime | None = None
) -> RankingsSummary:
    current = get_all_current_rankings(store, now=now)
    known = set(CATEGORY_KEYS) | set(current)
    return RankingsSummary(
        total_categories=len(known),
        categories_with_rankings=len(current),
        total_ranked_products=sum(len(ranking.rankings) for ranking in current.values()),
        last_generated=max(
            (ranking.generated_at for ranking in current.values()), default=None
        ),
    )
