"""Projection of active facts into the composite state."""

from collections.abc import Iterable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from touchpoint.config.models.projection import ProjectionConfig
from touchpoint.facts.enums import FactType
from touchpoint.facts.models import Fact
from touchpoint.facts.store import FactStore
from touchpoint.observability.logging import get_logger
from touchpoint.state.models import (
    CompositeState,
    EmotionalState,
    Goal,
    Interest,
    LastTransaction,
    LifeEvent,
    PersonalContext,
    Pet,
    Relationship,
    RoamingStatus,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def project_state(
    scope_id: str,
    facts: Iterable[Fact],
    config: ProjectionConfig | None = None,
) -> CompositeState:
    """Build the composite state from a scope's facts.

    Only active facts are read. Facts whose type is not a known telecom
    or personal predicate stay history-only. The result depends on the
    facts alone, so projecting an unchanged store twice gives equal output.
    """
    config = config or ProjectionConfig()
    active = sorted(
        (fact for fact in facts if fact.is_active),
        key=lambda fact: (fact.valid_from, fact.fact_type),
    )

    telecom: dict[str, Any] = {}
    pet: Pet | None = None
    emotional_state: EmotionalState | None = None
    relationships: list[Relationship] = []
    interests: list[Interest] = []
    life_events: list[LifeEvent] = []
    goals: list[Goal] = []

    for fact in active:
        predicate = fact.predicate
        if predicate == FactType.USER_IN_COUNTRY:
            telecom["current_country"] = str(fact.value)
        elif predicate == FactType.ACTIVE_PLAN:
            telecom["active_plan"] = str(fact.value)
        elif predicate == FactType.ACTIVE_MSISDN:
            telecom["active_msisdn"] = str(fact.value)
        elif predicate == FactType.ROAMING_STATUS:
            telecom["roaming_status"] = _roaming_status(fact.value)
        elif predicate == FactType.HAS_OPEN_ISSUE:
            telecom["open_support_issue"] = str(fact.value)
        elif predicate == FactType.COMPLETED_TRANSACTION:
            telecom["last_transaction"] = _last_transaction(fact)
        elif predicate == FactType.HAS_PET:
            pet = _load(Pet, fact) or pet
        elif predicate == FactType.EMOTIONAL_STATE:
            emotional_state = _load(EmotionalState, fact) or emotional_state
        elif predicate == FactType.HAS_RELATIONSHIP:
            _append(relationships, _load(Relationship, fact))
        elif predicate == FactType.HAS_INTEREST:
            _append(interests, _load(Interest, fact))
        elif predicate == FactType.EXPERIENCED:
            _append(life_events, _load(LifeEvent, fact))
        elif predicate == FactType.HAS_GOAL:
            _append(goals, _load(Goal, fact))

    personal = PersonalContext(
        pet=pet,
        relationships=relationships,
        emotional_state=emotional_state,
        interests=interests,
        life_events=life_events,
        goals=goals,
    )

    return CompositeState(
        user_id=scope_id,
        home_market=config.home_market,
        current_country=telecom.get("current_country", config.home_market),
        active_msisdn=telecom.get("active_msisdn", config.unknown_msisdn),
        roaming_status=telecom.get("roaming_status", RoamingStatus.DISABLED),
        active_plan=telecom.get("active_plan", config.default_plan),
        open_support_issue=telecom.get("open_support_issue"),
        last_transaction=telecom.get("last_transaction"),
        personal_context=None if personal.is_empty else personal,
    )


class StateProjector:
    """Reads a store and projects the composite state of a scope."""

    def __init__(self, store: FactStore, config: ProjectionConfig | None = None):
        self._store = store
        self._config = config or ProjectionConfig()

    def project(self, scope_id: str) -> CompositeState:
        """Project the current state of a scope from its active facts."""
        facts = self._store.current(scope_id)
        state = project_state(scope_id, facts, self._config)
        logger.debug(
            "state_projected",
            scope_id=scope_id,
            active_facts=len(facts),
            has_personal_context=state.personal_context is not None,
        )
        return state


def _roaming_status(value: Any) -> RoamingStatus:
    if isinstance(value, bool):
        return RoamingStatus.ENABLED if value else RoamingStatus.DISABLED
    if str(value).strip().lower() in ("enabled", "active", "on", "true"):
        return RoamingStatus.ENABLED
    return RoamingStatus.DISABLED


def _last_transaction(fact: Fact) -> LastTransaction:
    if isinstance(fact.value, dict):
        loaded = _load(LastTransaction, fact)
        if loaded is not None:
            return loaded
    return LastTransaction(type=str(fact.value), timestamp=fact.valid_from)


def _load(model: type[ModelT], fact: Fact) -> ModelT | None:
    """Read a structured fact value, skipping values of the wrong shape."""
    try:
        return model.model_validate(fact.value)
    except ValidationError:
        logger.warning(
            "fact_value_unreadable",
            fact_id=str(fact.id),
            fact_type=fact.fact_type,
            model=model.__name__,
        )
        return None


def _append(items: list[ModelT], item: ModelT | None) -> None:
    if item is not None and item not in items:
        items.append(item)
