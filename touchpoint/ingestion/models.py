"""Ingestion input models.

Two kinds of customer touchpoint reach the engine: deterministic
business events from billing/provisioning systems and free-text
conversation transcripts from support channels.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from touchpoint.facts.models import ensure_utc


class BusinessEvent(BaseModel):
    """Structured event emitted by a business support system.

    The timestamp is kept as the ISO-8601 string it arrived as, so an
    event encodes back to exactly what was received. Use ``occurred_at``
    for the parsed value.
    """

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(..., min_length=1, description="Event kind, e.g. PLAN_CHANGE")
    user_id: str = Field(..., min_length=1, description="Subscriber the event belongs to")
    msisdn: str | None = Field(default=None, description="Subscriber phone number")
    transaction_id: str | None = Field(default=None, description="Upstream transaction id")
    timestamp: str | None = Field(default=None, description="ISO-8601 occurrence time")
    amount: int | float | None = Field(default=None, description="Transaction amount")
    currency: str | None = Field(default=None, description="ISO currency code")
    source_system: str | None = Field(default=None, description="Emitting system")
    metadata: dict[str, Any] | None = Field(default=None, description="Free-form attributes")

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, value: str | None) -> str | None:
        if value is not None:
            datetime.fromisoformat(value)
        return value

    @property
    def occurred_at(self) -> datetime | None:
        """Parsed event timestamp (UTC when the string carries no offset)."""
        if self.timestamp is None:
            return None
        return ensure_utc(datetime.fromisoformat(self.timestamp))

    @property
    def has_transaction(self) -> bool:
        return self.transaction_id is not None or self.amount is not None


class ConversationMetadata(BaseModel):
    """Envelope of a support conversation."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1, description="Subscriber the conversation is with")
    conversation_id: str | None = Field(default=None, description="Channel conversation id")
    channel: str | None = Field(
        default=None, description="in_app_support_chat, whatsapp, voice, web"
    )
    started_at: datetime | None = Field(default=None, description="Conversation start")
    ended_at: datetime | None = Field(default=None, description="Conversation end")


class Conversation(BaseModel):
    """Free-text conversation transcript.

    ``personal_transcript`` optionally carries a dedicated transcript for
    personal-context extraction. Which text the personal-context matchers
    read is decided by the extractor's transcript source policy.
    """

    model_config = ConfigDict(frozen=True)

    transcript: str = Field(default="", description="Main support transcript")
    personal_transcript: str | None = Field(
        default=None, description="Dedicated personal-context transcript"
    )
    metadata: ConversationMetadata | None = Field(default=None, description="Envelope")

    @property
    def combined_text(self) -> str:
        """Main and personal transcripts joined by a newline."""
        return "\n".join(part for part in (self.transcript, self.personal_transcript) if part)

    @property
    def user_id(self) -> str | None:
        return self.metadata.user_id if self.metadata else None
