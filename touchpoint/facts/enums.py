"""Enums for the fact domain."""

from enum import Enum


class DerivedFrom(str, Enum):
    """Which kind of input a fact was extracted from."""

    BUSINESS_EVENT = "business_event"  # Deterministic BSS event
    CONVERSATION = "conversation"  # Pattern match over a transcript


class FactType(str, Enum):
    """Fact types the engine understands.

    Business events also produce one fact per event type (e.g. PLAN_CHANGE)
    and one per unmapped metadata key; those are open-ended strings.
    """

    # Telecom predicates
    USER_IN_COUNTRY = "USER_IN_COUNTRY"
    ACTIVE_PLAN = "ACTIVE_PLAN"
    ROAMING_STATUS = "ROAMING_STATUS"
    HAS_OPEN_ISSUE = "HAS_OPEN_ISSUE"
    COMPLETED_TRANSACTION = "COMPLETED_TRANSACTION"
    ACTIVE_MSISDN = "ACTIVE_MSISDN"
    SOURCE_SYSTEM = "SOURCE_SYSTEM"

    # Personal-context predicates
    HAS_PET = "HAS_PET"
    HAS_RELATIONSHIP = "HAS_RELATIONSHIP"  # Qualified by relationship name
    EMOTIONAL_STATE = "EMOTIONAL_STATE"
    HAS_INTEREST = "HAS_INTEREST"  # Qualified by interest
    EXPERIENCED = "EXPERIENCED"  # Qualified by life event type
    HAS_GOAL = "HAS_GOAL"  # Qualified by goal description


PERSONAL_PREDICATES: frozenset[str] = frozenset({
    FactType.HAS_PET.value,
    FactType.HAS_RELATIONSHIP.value,
    FactType.EMOTIONAL_STATE.value,
    FactType.HAS_INTEREST.value,
    FactType.EXPERIENCED.value,
    FactType.HAS_GOAL.value,
})
