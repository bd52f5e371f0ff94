"""JSON codec and validation for ingestion inputs.

Pydantic validation errors are translated into MalformedInput so callers
only ever see the engine's own error hierarchy.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from touchpoint.errors import MalformedInput
from touchpoint.ingestion.models import BusinessEvent, Conversation
from touchpoint.observability.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _malformed(kind: str, exc: ValidationError) -> MalformedInput:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or None
    if first["type"] == "missing":
        message = f"{kind} is missing required field '{field}'"
    else:
        message = f"{kind} field '{field}' is invalid: {first['msg']}"
    logger.warning("malformed_input", kind=kind, field=field, error_type=first["type"])
    return MalformedInput(message, field=field, cause=exc)


def _validate(model: type[ModelT], kind: str, data: Any) -> ModelT:
    if isinstance(data, model):
        return data
    try:
        if isinstance(data, str | bytes):
            return model.model_validate_json(data)
        if isinstance(data, Mapping):
            return model.model_validate(dict(data))
    except ValidationError as e:
        raise _malformed(kind, e) from e
    raise MalformedInput(f"{kind} must be a mapping or JSON document")


def parse_business_event(data: Mapping[str, Any] | BusinessEvent) -> BusinessEvent:
    """Validate a business event given as a mapping.

    Raises:
        MalformedInput: If event_type or user_id is missing, or a field
            has the wrong shape
    """
    return _validate(BusinessEvent, "Business event", data)


def parse_conversation(data: Mapping[str, Any] | Conversation) -> Conversation:
    """Validate a conversation given as a mapping."""
    return _validate(Conversation, "Conversation", data)


def encode_business_event(event: BusinessEvent) -> str:
    """Encode a business event as JSON, omitting absent optional fields."""
    return event.model_dump_json(exclude_none=True)


def decode_business_event(payload: str | bytes) -> BusinessEvent:
    """Decode a JSON business event.

    Raises:
        MalformedInput: If the payload is not valid JSON or misses a
            required field
    """
    return _validate(BusinessEvent, "Business event", payload)
