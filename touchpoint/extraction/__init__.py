"""Entity extraction from touchpoint inputs."""

from touchpoint.extraction.extractor import EntityExtractor
from touchpoint.extraction.matchers import CategoryMatcher, default_matchers
from touchpoint.extraction.models import (
    EpisodeSignal,
    ExtractionResult,
    MatchCategory,
    SentimentSignal,
)
from touchpoint.extraction.sentiment import analyze_sentiment

__all__ = [
    "CategoryMatcher",
    "EntityExtractor",
    "EpisodeSignal",
    "ExtractionResult",
    "MatchCategory",
    "SentimentSignal",
    "analyze_sentiment",
    "default_matchers",
]
