"""Domain model for configurable ranking weights, thresholds and confidence tiers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from ..exceptions import RankingProfileError

_WEIGHT_TOLERANCE = 1e-9


@dataclass(frozen=True)
class RankingWeights:
    """Weights applied to the six normalised components. Must sum to 1.0."""

    nps: float = 0.25
    sentiment: float = 0.20
    engagement: float = 0.20
    volume: float = 0.15
    recency: float = 0.10
    trend: float = 0.10

    def __post_init__(self) -> None:
        values = (self.nps, self.sentiment, self.engagement, self.volume, self.recency, self.trend)
        if any(value < 0.0 for value in values):
            raise RankingProfileError("weights must be non-negative")
        if not math.isclose(math.fsum(values), 1.0, abs_tol=_WEIGHT_TOLERANCE):
            raise RankingProfileError(f"weights sum to {math.fsum(values):.6f}, expected 1.0")


@dataclass(frozen=True)
class EligibilityThresholds:
    """Minimum data a product needs before it can be ranked."""

    min_total_responses: int = 1
    min_recent_responses: int = 0

    def __post_init__(self) -> None:
        if self.min_total_responses < 0 or self.min_recent_responses < 0:
            raise RankingProfileError("eligibility thresholds must be >= 0")


@dataclass(frozen=True)
class ConfidenceTier:
    """A multiplier applied when a product has at least ``min_responses``."""

    min_responses: int
    multiplier: float


def default_confidence_tiers() -> tuple[ConfidenceTier, ...]:
    return (
        ConfidenceTier(min_responses=100, multiplier=1.0),
        ConfidenceTier(min_responses=50, multiplier=0.9),
        ConfidenceTier(min_responses=20, multiplier=0.8),
        ConfidenceTier(min_responses=0, multiplier=0.5),
    )


@dataclass(frozen=True)
class RankingProfile:
    """Everything the normaliser and eligibility filter need, injected as one value."""

    weights: RankingWeights = field(default_factory=RankingWeights)
    thresholds: EligibilityThresholds = field(default_factory=EligibilityThresholds)
    confidence_tiers: tuple[ConfidenceTier, ...] = field(default_factory=default_confidence_tiers)
    fallback_multiplier: float = 0.5

    def __post_init__(self) -> None:
        if not self.confidence_tiers:
            raise RankingProfileError("at least one confidence tier is required")
        minimums = [tier.min_responses for tier in self.confidence_tiers]
        if sorted(minimums, reverse=True) != minimums or len(set(minimums)) != len(minimums):
            raise RankingProfileError("confidence tiers must be strictly descending")
        for tier in self.confidence_tiers:
            if tier.multiplier <= 0.0 or tier.multiplier > 1.0:
                raise RankingProfileError("confidence multipliers must be in (0, 1]")


DEFAULT_RANKING_PROFILE = RankingProfile()
