"""Entity extraction configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

TranscriptSource = Literal["combined", "dedicated_first", "dedicated_only"]


class ExtractionConfig(BaseModel):
    """Configuration for conversational extraction.

    The transcript source decides which text the personal-context matchers
    read when a conversation carries a dedicated personal transcript:

        combined         main and personal transcript joined
        dedicated_first  personal transcript if present, else combined
        dedicated_only   personal transcript only (empty if absent)

    Location, issue and sentiment matchers always read the combined text.
    """

    transcript_source: TranscriptSource = Field(
        default="dedicated_first",
        description="Text used by personal-context matchers",
    )
    goal_max_length: int = Field(
        default=50,
        gt=0,
        description="Maximum length of an extracted goal description",
    )
