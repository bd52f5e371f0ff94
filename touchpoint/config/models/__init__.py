"""Configuration models for all engine sections."""

from touchpoint.config.models.backend import BackendConfig
from touchpoint.config.models.context import ContextConfig
from touchpoint.config.models.extraction import ExtractionConfig, TranscriptSource
from touchpoint.config.models.graph import GraphConfig
from touchpoint.config.models.observability import LogFormat, ObservabilityConfig
from touchpoint.config.models.pipeline import PipelineConfig, PipelineMode
from touchpoint.config.models.projection import ProjectionConfig

__all__ = [
    "BackendConfig",
    "ContextConfig",
    "ExtractionConfig",
    "GraphConfig",
    "LogFormat",
    "ObservabilityConfig",
    "PipelineConfig",
    "PipelineMode",
    "ProjectionConfig",
    "TranscriptSource",
]
