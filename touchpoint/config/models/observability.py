"""Observability configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

LogFormat = Literal["json", "console"]


class ObservabilityConfig(BaseModel):
    """Logging configuration."""

    log_format: LogFormat = Field(default="json", description="Log renderer")
    redact_pii: bool = Field(default=True, description="Redact PII from logs")
