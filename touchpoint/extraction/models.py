"""Extraction result models."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from touchpoint.facts.enums import DerivedFrom
from touchpoint.facts.models import Fact
from touchpoint.state.models import PersonalContext


class MatchCategory(str, Enum):
    """Conversation matcher categories, in evaluation order."""

    PET = "pet"
    RELATIONSHIP = "relationship"
    EMOTION = "emotion"
    INTEREST = "interest"
    LIFE_EVENT = "life_event"
    GOAL = "goal"
    LOCATION = "location"
    ISSUE = "issue"


class SentimentSignal(BaseModel):
    """Overall tone of a conversation."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=-1.0, le=1.0, description="-1 negative to 1 positive")
    confidence: float = Field(..., ge=0.0, le=1.0)
    derived_from: str = Field(default="conversation_analysis")

    @property
    def is_negative(self) -> bool:
        return self.score < 0


class EpisodeSignal(BaseModel):
    """Notable touchpoint worth remembering as an episode."""

    id: UUID = Field(default_factory=uuid4)
    type: str = Field(..., description="support_episode, transaction_episode")
    value: str = Field(..., description="One-line summary")
    source: str = Field(..., description="Channel or system it came from")
    importance: float = Field(..., ge=0.0, le=1.0)
    timestamp: datetime = Field(..., description="When it happened")


class ExtractionResult(BaseModel):
    """Candidate facts and signals extracted from one input.

    Nothing here is committed; the caller decides what reaches the store.
    """

    source: DerivedFrom = Field(..., description="Kind of input extracted")
    scope_id: str | None = Field(default=None, description="Scope the facts belong to")
    facts: list[Fact] = Field(default_factory=list)
    personal_context: PersonalContext = Field(default_factory=PersonalContext)
    sentiment: SentimentSignal | None = None
    episodes: list[EpisodeSignal] = Field(default_factory=list)
    matched_categories: list[MatchCategory] = Field(default_factory=list)

    @property
    def ambiguous(self) -> bool:
        """True when a conversation fired no matcher at all."""
        return self.source == DerivedFrom.CONVERSATION and not self.matched_categories
