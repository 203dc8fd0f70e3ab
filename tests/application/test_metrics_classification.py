"""Tests for per-product metrics with concurrent sentiment classification."""

from datetime import datetime

import pytest

from product_ranking_pipeline.application.metrics import (
    calculate_product_metrics,
    classify_fragments,
)
from product_ranking_pipeline.domain.models import Sentiment
from product_ranking_pipeline.exceptions import (
    AuthenticationError,
    CircuitBreakerOpen,
    ClassificationError,
)
from tests.fakes import FakeSentimentClassifier
from tests.support.builders import make_product, make_response


class TestClassifyFragments:
    def test_labels_come_back_in_fragment_order(self) -> None:
        fragments = [f"fragment number {index}" for index in range(12)]
        classifier = FakeSentimentClassifier(
            labels={text: Sentiment.POSITIVE for text in fragments[::2]},
            default=Sentiment.NEGATIVE,
        )

        labels = classify_fragments(fragments, classifier, max_workers=4)

        assert labels == [
            Sentiment.POSITIVE if index % 2 == 0 else Sentiment.NEGATIVE for index in range(12)
        ]
        assert sorted(classifier.calls) == sorted(fragments)

    def test_failed_fragment_counts_as_neutral(self) -> None:
        classifier = FakeSentimentClassifier(
            default=Sentiment.POSITIVE, failing={"this one will fail"}
        )

        labels = classify_fragments(
            ["works perfectly well", "this one will fail", "also works fine"], classifier
        )

        assert labels == [Sentiment.POSITIVE, Sentiment.NEUTRAL, Sentiment.POSITIVE]

    def test_fail_fast_propagates_classification_errors(self) -> None:
        classifier = FakeSentimentClassifier(failing={"this one will fail"})

        with pytest.raises(ClassificationError):
            classify_fragments(["this one will fail"], classifier, fail_fast=True)

    @pytest.mark.parametrize(
        "error", [CircuitBreakerOpen(5, 5), AuthenticationError(401, "bad key")]
    )
    def test_service_level_errors_always_propagate(self, error: Exception) -> None:
        classifier = FakeSentimentClassifier(error=error)

        with pytest.raises(type(error)):
            classify_fragments(["some feedback text", "more feedback text"], classifier)

    def test_no_fragments_makes_no_calls(self) -> None:
        classifier = FakeSentimentClassifier()

        assert classify_fragments([], classifier) == []
        assert classifier.calls == []

    def test_single_worker_runs_sequentially(self) -> None:
        fragments = ["first piece of text", "second piece of text"]
        classifier = FakeSentimentClassifier()

        classify_fragments(fragments, classifier, max_workers=1)

        assert classifier.calls == fragments


class TestCalculateProductMetrics:
    def test_uncategorised_product_is_skipped(self, now: datetime) -> None:
        classifier = FakeSentimentClassifier()

        metrics = calculate_product_metrics(
            product=make_product(category=None),
            responses=[make_response(answers={"comment": "long enough to classify"})],
            previous_week_responses=None,
            classifier=classifier,
            now=now,
        )

        assert metrics is None
        assert classifier.calls == []

    def test_sentiment_breakdown_reflects_classifier(self, now: datetime) -> None:
        classifier = FakeSentimentClassifier(
            labels={"loved every minute": Sentiment.POSITIVE},
            failing={"garbled reply text"},
        )
        responses = [
            make_response(now=now, answers={"nps": 9, "comment": "loved every minute"}),
            make_response(now=now, answers={"nps": 7, "comment": "garbled reply text"}),
        ]

        metrics = calculate_product_metrics(
            product=make_product(),
            responses=responses,
            previous_week_responses=None,
            classifier=classifier,
            now=now,
        )

        assert metrics is not None
        assert metrics.sentiment_breakdown.positive == 1
        assert metrics.sentiment_breakdown.neutral == 1
        assert metrics.sentiment_score == pytest.approx(0.5)
        assert metrics.category == "TECH_SAAS"
