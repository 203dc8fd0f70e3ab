"""Keyword-based sentiment classification.

A lightweight default for runs without an external classifier service. Each
word containing a positive or negative keyword counts once towards that side.
"""

from __future__ import annotations

from .models import Sentiment, SentimentResult

POSITIVE_KEYWORDS = (
    "love",
    "great",
    "excellent",
    "amazing",
    "awesome",
    "fantastic",
    "wonderful",
    "good",
    "best",
    "perfect",
    "happy",
    "satisfied",
    "pleased",
    "impressed",
    "helpful",
    "easy",
    "fast",
    "quality",
    "recommend",
    "useful",
    "nice",
    "enjoyed",
    "brilliant",
    "outstanding",
    "superb",
    "exceptional",
)

NEGATIVE_KEYWORDS = (
    "hate",
    "bad",
    "terrible",
    "awful",
    "horrible",
    "poor",
    "worst",
    "disappointing",
    "frustrated",
    "angry",
    "annoyed",
    "difficult",
    "slow",
    "complicated",
    "broken",
    "useless",
    "waste",
    "problem",
    "issue",
    "confusing",
    "unclear",
    "unhappy",
    "dissatisfied",
    "failed",
)

POLARITY_THRESHOLD = 0.1


def classify_by_keywords(text: str) -> SentimentResult:
    """Classify ``text`` by counting keyword hits per word."""
    if not text.strip():
        return SentimentResult(sentiment=Sentiment.NEUTRAL, score=0.0, confidence=0.0)

    words = text.lower().split()
    positive = sum(1 for word in words if any(keyword in word for keyword in POSITIVE_KEYWORDS))
    negative = sum(1 for word in words if any(keyword in word for keyword in NEGATIVE_KEYWORDS))
    hits = positive + negative

    score = 0.0 if hits == 0 else (positive - negative) / max(hits, len(words) / 10)
    sentiment = Sentiment.NEUTRAL
    if score > POLARITY_THRESHOLD:
        sentiment = Sentiment.POSITIVE
    elif score < -POLARITY_THRESHOLD:
        sentiment = Sentiment.NEGATIVE

    confidence = 0.3 if hits == 0 else min(hits / 5, 1.0)
    return SentimentResult(sentiment=sentiment, score=score, confidence=confidence)
