"""Keyword sentiment scoring for transcripts."""

import re

from touchpoint.extraction.models import SentimentSignal

NEGATIVE_PATTERN = re.compile(
    r"frustrat|upset|angry|unacceptable|immediately|urgent|problem|issue|not working",
    re.IGNORECASE,
)
POSITIVE_PATTERN = re.compile(r"thank|great|perfect|excellent|appreciate", re.IGNORECASE)

NEGATIVE = SentimentSignal(score=-0.6, confidence=0.85)
POSITIVE = SentimentSignal(score=0.5, confidence=0.75)
NEUTRAL = SentimentSignal(score=0.0, confidence=0.6)


def analyze_sentiment(text: str) -> SentimentSignal:
    """Score a transcript. Negative keywords win over positive ones."""
    if NEGATIVE_PATTERN.search(text):
        return NEGATIVE
    if POSITIVE_PATTERN.search(text):
        return POSITIVE
    return NEUTRAL
