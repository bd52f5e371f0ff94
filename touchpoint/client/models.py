"""Request and response models of the context backend API."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from touchpoint.facts.enums import DerivedFrom
from touchpoint.facts.models import Fact
from touchpoint.ingestion.models import BusinessEvent

# Backend source channels by conversation channel
SOURCE_CHANNELS: dict[str, str] = {
    "omnichannel_dashboard": "website",
    "in_app_support_chat": "mobile_app",
    "in_app_chat": "mobile_app",
    "whatsapp": "whatsapp",
    "website": "website",
    "web": "website",
    "mobile_app": "mobile_app",
    "customer_care": "customer_care",
    "voice": "voice",
    "system": "system",
}

_BUSINESS_EVENT_SOURCES = frozenset({"business_event", "bss_event", "system"})


def source_channel(channel: str | None) -> str:
    return SOURCE_CHANNELS.get(channel or "", "customer_care")


class BusinessEventIngestRequest(BaseModel):
    """POST /api/v1/memories/ingest"""

    tenant_id: str
    event_type: str
    payload: BusinessEvent


class EpisodeIngestRequest(BaseModel):
    """POST /api/v1/graphiti/episodes"""

    tenant_id: str
    unified_user_id: str
    source_channel: str
    content: str
    episode_name: str | None = None
    reference_time: datetime | None = None
    use_custom_types: bool = True


class ContextRequest(BaseModel):
    """POST /api/v1/graphiti/context"""

    tenant_id: str
    unified_user_id: str
    query: str = "current user context"
    max_facts: int = 20
    include_temporal: bool = True


class IngestResponse(BaseModel):
    """Acknowledgement of an ingestion call."""

    success: bool
    message: str | None = None
    memory_id: str | None = None
    episode_id: str | None = None


class BackendFact(BaseModel):
    """Fact as the backend reports it, without a scope."""

    id: UUID = Field(default_factory=uuid4)
    fact_type: str
    value: Any
    valid_from: datetime
    valid_to: datetime | None = None
    derived_from: DerivedFrom = DerivedFrom.CONVERSATION
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("derived_from", mode="before")
    @classmethod
    def _map_source(cls, value: Any) -> Any:
        if isinstance(value, str) and value not in {d.value for d in DerivedFrom}:
            return (
                DerivedFrom.BUSINESS_EVENT
                if value in _BUSINESS_EVENT_SOURCES
                else DerivedFrom.CONVERSATION
            )
        return value

    def to_fact(self, scope_id: str) -> Fact:
        return Fact(scope_id=scope_id, **self.model_dump())


class HistoryResponse(BaseModel):
    """Fact history, wrapped or bare."""

    facts: list[BackendFact] = Field(default_factory=list)


class ContextResponse(BaseModel):
    """Formatted context built by the backend."""

    formatted_context: str
    facts: list[str] = Field(default_factory=list)
    build_time_ms: float | None = None
