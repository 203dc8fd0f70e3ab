"""Tests for the minimum-data gate."""

from product_ranking_pipeline.domain.eligibility import filter_eligible, is_eligible
from product_ranking_pipeline.domain.ranking_profiles import EligibilityThresholds
from tests.support.builders import make_metrics


def test_filter_keeps_input_order() -> None:
    metrics = [make_metrics("p-3"), make_metrics("p-1"), make_metrics("p-2")]

    kept = filter_eligible(metrics, EligibilityThresholds())

    assert [item.product_id for item in kept] == ["p-3", "p-1", "p-2"]


def test_products_without_minimum_data_are_dropped() -> None:
    metrics = [make_metrics("p-1"), make_metrics("p-2", has_minimum_data=False)]

    kept = filter_eligible(metrics, EligibilityThresholds())

    assert [item.product_id for item in kept] == ["p-1"]


def test_total_response_threshold() -> None:
    thresholds = EligibilityThresholds(min_total_responses=5)

    assert is_eligible(make_metrics(total_responses=5), thresholds)
    assert not is_eligible(make_metrics(total_responses=4), thresholds)


def test_recent_response_threshold() -> None:
    thresholds = EligibilityThresholds(min_recent_responses=3)

    assert is_eligible(make_metrics(recent_response_count=3), thresholds)
    assert not is_eligible(make_metrics(recent_response_count=2), thresholds)
