"""Pipeline configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

PipelineMode = Literal["local", "live"]


class PipelineConfig(BaseModel):
    """Configuration for the submission pipeline."""

    mode: PipelineMode = Field(
        default="local",
        description="Run extraction locally or defer to the live backend",
    )
    skip_unchanged_facts: bool = Field(
        default=True,
        description="Do not re-commit a fact whose value equals the active one",
    )
