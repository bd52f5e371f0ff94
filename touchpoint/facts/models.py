"""Fact domain models.

A fact is one bitemporal assertion about a scope: a value that holds on
the interval [valid_from, valid_to). A fact with valid_to = None is the
active one for its (scope_id, fact_type).
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from touchpoint.facts.enums import DerivedFrom

QUALIFIER_SEPARATOR = ":"


def qualified_fact_type(predicate: str | Enum, qualifier: str) -> str:
    """Build a per-entity fact type such as ``HAS_RELATIONSHIP:Mom``.

    Multi-valued predicates carry one supersession chain per entity.
    """
    base = predicate.value if isinstance(predicate, Enum) else predicate
    return f"{base}{QUALIFIER_SEPARATOR}{qualifier.strip()}"


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so every comparison is well defined."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Fact(BaseModel):
    """Single bitemporal fact about a user scope."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    scope_id: str = Field(..., min_length=1, description="Isolation key (user)")
    fact_type: str = Field(..., min_length=1, description="Predicate, optionally qualified")
    value: Any = Field(..., description="Fact value (JSON compatible)")
    valid_from: datetime = Field(..., description="When the fact became true")
    valid_to: datetime | None = Field(
        default=None, description="When it stopped being true (None = active)"
    )
    derived_from: DerivedFrom = Field(..., description="Input kind it came from")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Signal certainty")

    @field_validator("fact_type", mode="before")
    @classmethod
    def _enum_to_value(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    @field_validator("valid_from", "valid_to")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_interval(self) -> "Fact":
        if self.valid_to is not None and self.valid_to < self.valid_from:
            raise ValueError("valid_to must not precede valid_from")
        return self

    @property
    def predicate(self) -> str:
        """Fact type without its qualifier."""
        return self.fact_type.split(QUALIFIER_SEPARATOR, 1)[0]

    @property
    def qualifier(self) -> str | None:
        """Entity qualifier of a multi-valued predicate, if any."""
        parts = self.fact_type.split(QUALIFIER_SEPARATOR, 1)
        return parts[1] if len(parts) == 2 else None

    @property
    def is_active(self) -> bool:
        return self.valid_to is None

    def closed_at(self, when: datetime) -> "Fact":
        """Return a copy of this fact whose validity ends at ``when``."""
        return self.model_copy(update={"valid_to": ensure_utc(when)})
