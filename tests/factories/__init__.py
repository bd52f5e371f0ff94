"""Test factories for creating test data."""

from tests.factories.scenarios import (
    FAMILY_USER_ID,
    T0,
    USER_ID,
    BusinessEventFactory,
    ConversationFactory,
    FactFactory,
)

__all__ = [
    "BusinessEventFactory",
    "ConversationFactory",
    "FactFactory",
    "FAMILY_USER_ID",
    "T0",
    "USER_ID",
]
