"""Per-product metrics calculation, including concurrent sentiment classification.

Usage example:
    from datetime import UTC, datetime

    from product_ranking_pipeline.application.metrics import calculate_product_metrics
    from product_ranking_pipeline.infrastructure import KeywordSentimentClassifier

    metrics = calculate_product_metrics(
        product=product,
        responses=responses,
        previous_week_responses=None,
        classifier=KeywordSentimentClassifier(),
        now=datetime.now(UTC),
    )
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from ..domain.metrics import build_metrics, collect_text_fragments
from ..domain.models import Product, ProductRankingMetrics, Sentiment, SurveyResponse
from ..domain.ranking_profiles import EligibilityThresholds
from ..exceptions import ClassificationError
from ..observability import get_logger
from ..protocols import SentimentClassifier

logger = get_logger("product_ranking_pipeline.metrics")

DEFAULT_SENTIMENT_WORKERS = 4


def classify_fragments(
    fragments: Sequence[str],
    classifier: SentimentClassifier,
    *,
    max_workers: int = DEFAULT_SENTIMENT_WORKERS,
    fail_fast: bool = False,
    product_id: str = "",
) -> list[Sentiment]:
    """Classify ``fragments`` concurrently and return one label per fragment, in order.

    A ``ClassificationError`` for one fragment counts that fragment as neutral
    unless ``fail_fast`` is set. Any other exception (an open circuit breaker,
    rejected credentials) propagates.
    """
    if not fragments:
        return []

    def classify_one(text: str) -> Sentiment:
        try:
            return classifier.classify(text).sentiment
        except ClassificationError as exc:
            if fail_fast:
                raise
            logger.warning("Treating fragment as neutral for %s: %s", product_id, exc)
            return Sentiment.NEUTRAL

    workers = max(1, min(max_workers, len(fragments)))
    if workers == 1:
        return [classify_one(text) for text in fragments]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(classify_one, fragments))


def calculate_product_metrics(
    *,
    product: Product,
    responses: Sequence[SurveyResponse],
    previous_week_responses: Sequence[SurveyResponse] | None,
    classifier: SentimentClassifier,
    now: datetime,
    thresholds: EligibilityThresholds | None = None,
    sentiment_workers: int = DEFAULT_SENTIMENT_WORKERS,
    fail_fast: bool = False,
) -> ProductRankingMetrics | None:
    """Compute metrics for one product, or None when it has no category."""
    if not product.category:
        logger.warning("Product %s has no category; skipping", product.id)
        return None

    labels = classify_fragments(
        collect_text_fragments(responses),
        classifier,
        max_workers=sentiment_workers,
        fail_fast=fail_fast,
        product_id=product.id,
    )
    return build_metrics(
        product=product,
        category=product.category,
        responses=responses,
        previous_week_responses=previous_week_responses,
        sentiment_labels=labels,
        thresholds=thresholds or EligibilityThresholds(),
        now=now,
    )
