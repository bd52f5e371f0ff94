"""Composite state models.

CompositeState is rebuilt from the active facts on every projection and
is never mutated in place. PersonalContext holds the conversational,
interpretive side of what is known about a subscriber.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RoamingStatus(str, Enum):
    """Roaming state of the active line."""

    ENABLED = "Enabled"
    DISABLED = "Disabled"


class Pet(BaseModel):
    """Pet the subscriber mentioned."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Pet name")
    species: str = Field(..., description="cat, dog, ...")
    breed: str | None = Field(default=None, description="Breed if mentioned")
    age: str | None = Field(default=None, description="Age as stated")
    significance: str | None = Field(default=None, description="Why it matters")


class Relationship(BaseModel):
    """Person close to the subscriber."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="How the subscriber refers to them")
    relationship_type: str = Field(
        ..., description="parent, sibling, grandparent, friend, partner, ..."
    )
    closeness: str | None = Field(default=None, description="close, very_close, estranged")
    location: str | None = Field(default=None, description="Where they live")
    notes: str | None = Field(default=None, description="Free-form notes")


class EmotionalState(BaseModel):
    """Mood detected in the latest conversation."""

    model_config = ConfigDict(frozen=True)

    mood: str = Field(..., description="happy, stressed, anxious, sad, tired, ...")
    energy_level: str = Field(default="medium", description="high, medium, tired, exhausted")
    stress_level: int = Field(..., ge=1, le=10, description="1-10 scale")
    context: str | None = Field(default=None, description="Where the mood was observed")


class Interest(BaseModel):
    """Hobby or topic the subscriber cares about."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(..., description="games, music, hobby, ...")
    specific_interest: str = Field(..., description="Named interest")
    enthusiasm_level: str = Field(
        default="interested", description="interested, enthusiast, passionate"
    )


class LifeEvent(BaseModel):
    """Personal event the subscriber went through or is planning."""

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(..., description="celebration, family_reunion, ...")
    description: str = Field(..., description="Short description")
    emotional_impact: str = Field(
        default="neutral", description="very_happy, happy, neutral, sad, very_sad"
    )
    date: str | None = Field(default=None, description="When it happens, if known")


class Goal(BaseModel):
    """Something the subscriber wants to achieve."""

    model_config = ConfigDict(frozen=True)

    goal_type: str = Field(default="personal", description="Goal category")
    description: str = Field(..., description="What they want to do")
    progress: str = Field(
        default="in_progress", description="not_started, in_progress, completed"
    )


class PersonalContext(BaseModel):
    """Aggregate of personal-context evidence.

    Every sub-object is independently optional. An empty context means
    "no evidence", which CompositeState expresses as ``None``.
    """

    model_config = ConfigDict(frozen=True)

    pet: Pet | None = None
    relationships: list[Relationship] = Field(default_factory=list)
    emotional_state: EmotionalState | None = None
    interests: list[Interest] = Field(default_factory=list)
    life_events: list[LifeEvent] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return (
            self.pet is None
            and self.emotional_state is None
            and not self.relationships
            and not self.interests
            and not self.life_events
            and not self.goals
        )


class LastTransaction(BaseModel):
    """Most recent completed transaction."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Business event type")
    amount: int | float | None = Field(default=None, description="Amount charged")
    currency: str | None = Field(default=None, description="ISO currency code")
    transaction_id: str | None = Field(default=None, description="Upstream transaction id")
    timestamp: datetime = Field(..., description="When it completed")


class CompositeState(BaseModel):
    """Authoritative current-state snapshot of one subscriber."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="Scope the state was projected for")
    home_market: str = Field(..., description="Home market")
    current_country: str = Field(..., description="Where the subscriber is now")
    active_msisdn: str = Field(..., description="Active phone number")
    roaming_status: RoamingStatus = Field(default=RoamingStatus.DISABLED)
    active_plan: str = Field(..., description="Current plan")
    open_support_issue: str | None = Field(default=None, description="Unresolved issue")
    last_transaction: LastTransaction | None = Field(default=None)
    personal_context: PersonalContext | None = Field(
        default=None, description="None when there is no personal evidence"
    )

    @property
    def is_roaming(self) -> bool:
        return self.roaming_status == RoamingStatus.ENABLED
