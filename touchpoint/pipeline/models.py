"""Pipeline input and output models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from touchpoint.extraction.models import EpisodeSignal, SentimentSignal
from touchpoint.facts.models import Fact
from touchpoint.graph.models import Graph
from touchpoint.ingestion.models import BusinessEvent, Conversation
from touchpoint.pipeline.phases import PipelinePhase
from touchpoint.state.models import CompositeState


class Submission(BaseModel):
    """One customer touchpoint submission.

    Inputs may be given as models or as raw mappings; mappings are
    validated while the pipeline is ingesting.
    """

    business_event: BusinessEvent | dict[str, Any] | None = Field(default=None)
    conversation: Conversation | dict[str, Any] | None = Field(default=None)
    scope_id: str | None = Field(default=None, description="Overrides the inputs' user_id")
    observed_at: datetime | None = Field(
        default=None, description="When the conversation was observed"
    )


class PipelineStepTiming(BaseModel):
    """Timing information for a single pipeline step."""

    step: str = Field(..., description="Step name")
    started_at: datetime
    ended_at: datetime
    duration_ms: float = Field(ge=0)
    skipped: bool = False
    skip_reason: str | None = None


class PipelineResult(BaseModel):
    """Everything a submission produced.

    ``facts`` is the scope's full history after the run; ``committed`` are
    the facts this run added.
    """

    scope_id: str
    phase: PipelinePhase
    state: CompositeState
    facts: list[Fact] = Field(default_factory=list)
    committed: list[Fact] = Field(default_factory=list)
    graph: Graph
    formatted_context: str
    sentiment: SentimentSignal | None = None
    episodes: list[EpisodeSignal] = Field(default_factory=list)
    timings: list[PipelineStepTiming] = Field(default_factory=list)
