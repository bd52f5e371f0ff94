"""Submission pipelines, local and live."""

from touchpoint.pipeline.live import LiveContextPipeline
from touchpoint.pipeline.models import PipelineResult, PipelineStepTiming, Submission
from touchpoint.pipeline.phases import PipelinePhase, PipelineTracker
from touchpoint.pipeline.pipeline import ContextPipeline

__all__ = [
    "ContextPipeline",
    "LiveContextPipeline",
    "PipelinePhase",
    "PipelineResult",
    "PipelineStepTiming",
    "PipelineTracker",
    "Submission",
]
