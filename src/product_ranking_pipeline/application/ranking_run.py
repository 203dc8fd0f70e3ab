"""Weekly ranking generation across categories.

Each category runs metrics -> eligibility -> scoring -> top N -> save. Categories
run concurrently on a bounded pool and a failing category is reported without
stopping the others.

Usage example:
    from datetime import UTC, datetime

    from product_ranking_pipeline.application.ranking_run import (
        RankingRunOptions,
        generate_weekly_rankings,
    )

    result = generate_weekly_rankings(
        source=source,
        classifier=classifier,
        store=store,
        now=datetime.now(UTC),
        options=RankingRunOptions(top_n=10),
    )
    if not result.success:
        for failure in result.failures:
            print(failure.category, failure.error)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..domain.categories import category_name
from ..domain.eligibility import filter_eligible
from ..domain.models import Product, ProductRankingMetrics, SurveyResponse, WeeklyRanking
from ..domain.ranking import DEFAULT_TOP_N, generate_top_rankings
from ..domain.ranking_profiles import DEFAULT_RANKING_PROFILE, RankingProfile
from ..domain.scoring import calculate_ranking_score
from ..domain.weeks import previous_week_identifier, week_end, week_identifier, week_start
from ..exceptions import PipelineError, SnapshotDecodeError
from ..observability import get_logger
from ..protocols import ProgressReporter, SentimentClassifier, SignalSource, SnapshotStore
from .metrics import DEFAULT_SENTIMENT_WORKERS, calculate_product_metrics

logger = get_logger("product_ranking_pipeline.ranking_run")

PREVIOUS_WEEK_START = timedelta(days=14)
PREVIOUS_WEEK_END = timedelta(days=7)


@dataclass(frozen=True)
class RankingRunOptions:
    """Tunables for one ranking run."""

    top_n: int = DEFAULT_TOP_N
    profile: RankingProfile = DEFAULT_RANKING_PROFILE
    category_workers: int = 4
    product_workers: int = 4
    sentiment_workers: int = DEFAULT_SENTIMENT_WORKERS
    sentiment_fail_fast: bool = False


@dataclass(frozen=True)
class CategoryFailure:
    """A category whose ranking could not be generated or saved."""

    category: str
    error: str


@dataclass(frozen=True)
class RankingRunResult:
    """Outcome of generating rankings for every category."""

    rankings: tuple[WeeklyRanking, ...] = ()
    failures: tuple[CategoryFailure, ...] = ()
    skipped_categories: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return not self.failures


def previous_week_window(
    responses: Sequence[SurveyResponse], now: datetime
) -> list[SurveyResponse]:
    """Responses submitted in ``[now - 14d, now - 7d)``."""
    start = now - PREVIOUS_WEEK_START
    end = now - PREVIOUS_WEEK_END
    return [response for response in responses if start <= response.submitted_at < end]


def _previous_ranks(store: SnapshotStore, category: str, now: datetime) -> dict[str, int]:
    week_id = previous_week_identifier(now)
    try:
        previous = store.get(week_id, category)
    except SnapshotDecodeError as exc:
        logger.warning("Ignoring unreadable previous ranking %s/%s: %s", category, week_id, exc)
        return {}
    if previous is None:
        return {}
    return {entry.product_id: entry.rank for entry in previous.rankings}


def _collect_metrics(
    products: Sequence[Product],
    responses: Mapping[str, Sequence[SurveyResponse]],
    *,
    classifier: SentimentClassifier,
    now: datetime,
    options: RankingRunOptions,
) -> list[ProductRankingMetrics]:
    def measure(product: Product) -> ProductRankingMetrics | None:
        product_responses = list(responses.get(product.id, ()))
        return calculate_product_metrics(
            product=product,
            responses=product_responses,
            previous_week_responses=previous_week_window(product_responses, now),
            classifier=classifier,
            now=now,
            thresholds=options.profile.thresholds,
            sentiment_workers=options.sentiment_workers,
            fail_fast=options.sentiment_fail_fast,
        )

    workers = max(1, min(options.product_workers, len(products)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        measured = list(executor.map(measure, products))
    return [item for item in measured if item is not None]


def generate_category_ranking(
    *,
    category: str,
    products: Sequence[Product],
    responses: Mapping[str, Sequence[SurveyResponse]],
    classifier: SentimentClassifier,
    store: SnapshotStore,
    now: datetime,
    options: RankingRunOptions | None = None,
) -> WeeklyRanking | None:
    """Rank one category for the week containing ``now`` and save the snapshot.

    Returns None (and saves nothing) when no product in the category is eligible.
    """
    opts = options or RankingRunOptions()
    members = [product for product in products if product.category == category]
    if not members:
        logger.info("No products in category %s", category)
        return None

    metrics = _collect_metrics(members, responses, classifier=classifier, now=now, options=opts)
    eligible = filter_eligible(metrics, opts.profile.thresholds)
    if not eligible:
        logger.info("No eligible products in %s (%d measured)", category, len(metrics))
        return None

    scores = [calculate_ranking_score(item, opts.profile) for item in eligible]
    top = generate_top_rankings(
        scores,
        eligible,
        top_n=opts.top_n,
        previous_ranks=_previous_ranks(store, category, now),
    )
    ranking = WeeklyRanking(
        category=category,
        category_name=category_name(category),
        week_start=week_start(now),
        week_end=week_end(now),
        generated_at=now,
        total_products_evaluated=top.total_products_evaluated,
        rankings=top.entries,
    )
    store.save(ranking)
    logger.info(
        "Ranked %s for %s: %d of %d eligible products",
        category,
        week_identifier(now),
        len(top.entries),
        top.total_products_evaluated,
    )
    return ranking


def generate_weekly_rankings(
    *,
    source: SignalSource,
    classifier: SentimentClassifier,
    store: SnapshotStore,
    now: datetime,
    options: RankingRunOptions | None = None,
    progress: ProgressReporter | None = None,
) -> RankingRunResult:
    """Rank every category that has products, collecting per-category failures."""
    opts = options or RankingRunOptions()
    products = list(source.load_products())
    responses = source.load_responses()

    uncategorised = [product.id for product in products if not product.category]
    if uncategorised:
        logger.warning(
            "Skipping %d products without a category: %s",
            len(uncategorised),
            ", ".join(uncategorised[:10]),
        )
    categories = sorted({product.category for product in products if product.category})

    rankings: dict[str, WeeklyRanking] = {}
    failures: list[CategoryFailure] = []
    skipped: list[str] = []

    if progress is not None:
        progress.start("Ranking categories", len(categories))
    try:
        workers = max(1, min(opts.category_workers, len(categories) or 1))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(
                    generate_category_ranking,
                    category=category,
                    products=products,
                    responses=responses,
                    classifier=classifier,
                    store=store,
                    now=now,
                    options=opts,
                ): category
                for category in categories
            }
            for future in as_completed(futures):
                category = futures[future]
                try:
                    ranking = future.result()
                except (PipelineError, OSError) as exc:
                    logger.error("Ranking failed for %s: %s", category, exc)
                    failures.append(CategoryFailure(category=category, error=str(exc)))
                else:
                    if ranking is None:
                        skipped.append(category)
                    else:
                        rankings[category] = ranking
                if progress is not None:
                    progress.advance(1)
    finally:
        if progress is not None:
            progress.finish()

    logger.info(
        "Weekly run %s: %d ranked, %d skipped, %d failed",
        week_identifier(now),
        len(rankings),
        len(skipped),
        len(failures),
    )
    return RankingRunResult(
        rankings=tuple(rankings[key] for key in sorted(rankings)),
        failures=tuple(sorted(failures, key=lambda failure: failure.category)),
        skipped_categories=tuple(sorted(skipped)),
    )


def regenerate_category_ranking(
    category: str,
    *,
    source: SignalSource,
    classifier: SentimentClassifier,
    store: SnapshotStore,
    now: datetime,
    options: RankingRunOptions | None = None,
) -> WeeklyRanking | None:
    """Rebuild and overwrite the current week's snapshot for one category."""
    return generate_category_ranking(
        category=category,
        products=list(source.load_products()),
        responses=source.load_responses(),
        classifier=classifier,
        store=store,
        now=now,
        options=options,
    )
