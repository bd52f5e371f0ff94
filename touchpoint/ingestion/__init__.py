"""Ingestion inputs: business events and conversations."""

from touchpoint.ingestion.codec import (
    decode_business_event,
    encode_business_event,
    parse_business_event,
    parse_conversation,
)
from touchpoint.ingestion.models import BusinessEvent, Conversation, ConversationMetadata

__all__ = [
    "BusinessEvent",
    "Conversation",
    "ConversationMetadata",
    "decode_business_event",
    "encode_business_event",
    "parse_business_event",
    "parse_conversation",
]
