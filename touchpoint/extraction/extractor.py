"""Entity extraction from business events and conversations."""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from touchpoint.config.models.extraction import ExtractionConfig
from touchpoint.errors import MalformedInput
from touchpoint.extraction.matchers import (
    BUSINESS_EVENT_CONFIDENCE,
    CategoryMatcher,
    default_matchers,
)
from touchpoint.extraction.models import (
    EpisodeSignal,
    ExtractionResult,
    MatchCategory,
)
from touchpoint.extraction.sentiment import analyze_sentiment
from touchpoint.facts.enums import DerivedFrom, FactType
from touchpoint.facts.models import Fact, ensure_utc, qualified_fact_type
from touchpoint.ingestion.codec import parse_business_event, parse_conversation
from touchpoint.ingestion.models import BusinessEvent, Conversation
from touchpoint.observability.logging import get_logger
from touchpoint.observability.metrics import EXTRACTION_MATCHES
from touchpoint.state.models import (
    EmotionalState,
    Goal,
    Interest,
    LifeEvent,
    PersonalContext,
    Pet,
    Relationship,
    RoamingStatus,
)

logger = get_logger(__name__)

PLAN_KEYS = ("current_plan", "plan", "new_plan")
COUNTRY_KEYS = ("current_country", "country")
LIFE_EVENT_KEYS = ("life_event", "life_events", "recent_life_events")
PERSONAL_KEYS = frozenset({"pet", "emotional_state", "relationships", "interests", "goals"})
ROAMING_ACTIVATION = "ROAMING_ACTIVATION"

ExtractionInput = BusinessEvent | Conversation | Mapping[str, Any]


class EntityExtractor:
    """Turn raw touchpoint inputs into candidate facts.

    Business events map field by field onto facts with full confidence.
    Conversations run through the ordered matcher table. Extraction has
    no side effects: nothing is written to a store.
    """

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        matchers: Sequence[CategoryMatcher] | None = None,
    ):
        """Initialize extractor.

        Args:
            config: Extraction configuration
            matchers: Matcher table overriding the default one
        """
        self._config = config or ExtractionConfig()
        self._matchers = tuple(matchers) if matchers is not None else default_matchers(
            self._config
        )

    @property
    def matchers(self) -> tuple[CategoryMatcher, ...]:
        return self._matchers

    def extract(
        self,
        input: ExtractionInput,
        *,
        scope_id: str | None = None,
        observed_at: datetime | None = None,
    ) -> ExtractionResult:
        """Extract candidate facts from a business event or conversation.

        Mappings carrying a ``transcript`` or ``personal_transcript`` key are
        treated as conversations, every other mapping as a business event.

        Raises:
            MalformedInput: If a required field is missing
        """
        if isinstance(input, BusinessEvent):
            return self.extract_event(input, scope_id=scope_id, observed_at=observed_at)
        if isinstance(input, Conversation):
            return self.extract_conversation(input, scope_id=scope_id, observed_at=observed_at)
        if isinstance(input, Mapping):
            if "transcript" in input or "personal_transcript" in input:
                conversation = parse_conversation(input)
                return self.extract_conversation(
                    conversation, scope_id=scope_id, observed_at=observed_at
                )
            event = parse_business_event(input)
            return self.extract_event(event, scope_id=scope_id, observed_at=observed_at)
        raise MalformedInput(f"Unsupported input type: {type(input).__name__}")

    # ------------------------------------------------------------------
    # Business events
    # ------------------------------------------------------------------

    def extract_event(
        self,
        event: BusinessEvent,
        *,
        scope_id: str | None = None,
        observed_at: datetime | None = None,
    ) -> ExtractionResult:
        """Map every business event field onto a deterministic fact."""
        scope = self._resolve_scope(event.user_id, scope_id)
        occurred_at = event.occurred_at or (ensure_utc(observed_at) if observed_at else None)
        if occurred_at is None:
            raise MalformedInput(
                f"Business event {event.event_type} has no timestamp", field="timestamp"
            )

        collected: list[tuple[str, Any]] = []
        personal = _PersonalContextBuilder()

        event_type = event.event_type.strip().upper()
        collected.append((event_type, _describe_event(event)))

        if event.has_transaction:
            collected.append((
                FactType.COMPLETED_TRANSACTION.value,
                {
                    "type": event_type,
                    "amount": event.amount,
                    "currency": event.currency,
                    "transaction_id": event.transaction_id,
                    "timestamp": occurred_at.isoformat(),
                },
            ))
        if event.msisdn:
            collected.append((FactType.ACTIVE_MSISDN.value, event.msisdn))
        if event.source_system:
            collected.append((FactType.SOURCE_SYSTEM.value, event.source_system))

        metadata = dict(event.metadata or {})
        collected.extend(self._metadata_facts(event_type, metadata, personal))

        facts = [
            Fact(
                scope_id=scope,
                fact_type=fact_type,
                value=value,
                valid_from=occurred_at,
                derived_from=DerivedFrom.BUSINESS_EVENT,
                confidence=BUSINESS_EVENT_CONFIDENCE,
            )
            for fact_type, value in _distinct(collected)
        ]

        episodes = [
            EpisodeSignal(
                type="transaction_episode",
                value=_describe_event(event),
                source=event.source_system or "business_event",
                importance=0.6,
                timestamp=occurred_at,
            )
        ]

        logger.info(
            "business_event_extracted",
            scope_id=scope,
            event_type=event_type,
            fact_count=len(facts),
        )

        return ExtractionResult(
            source=DerivedFrom.BUSINESS_EVENT,
            scope_id=scope,
            facts=facts,
            personal_context=personal.build(),
            episodes=episodes,
        )

    def _metadata_facts(
        self,
        event_type: str,
        metadata: dict[str, Any],
        personal: "_PersonalContextBuilder",
    ) -> list[tuple[str, Any]]:
        collected: list[tuple[str, Any]] = []
        consumed: set[str] = set()

        plan_key = next((k for k in PLAN_KEYS if metadata.get(k)), None)
        if plan_key:
            collected.append((FactType.ACTIVE_PLAN.value, metadata[plan_key]))
            consumed.update(PLAN_KEYS)

        if "roaming_pack_active" in metadata:
            enabled = bool(metadata["roaming_pack_active"])
            status = RoamingStatus.ENABLED if enabled else RoamingStatus.DISABLED
            collected.append((FactType.ROAMING_STATUS.value, status.value))
            consumed.add("roaming_pack_active")
        elif event_type == ROAMING_ACTIVATION:
            collected.append((FactType.ROAMING_STATUS.value, RoamingStatus.ENABLED.value))

        country_key = next((k for k in COUNTRY_KEYS if metadata.get(k)), None)
        if country_key:
            collected.append((FactType.USER_IN_COUNTRY.value, metadata[country_key]))
            consumed.update(COUNTRY_KEYS)

        try:
            collected.extend(self._personal_metadata_facts(metadata, personal))
        except ValidationError as e:
            first = e.errors()[0]
            raise MalformedInput(
                f"Business event metadata is invalid: {first['msg']}",
                field="metadata",
                cause=e,
            ) from e
        consumed.update(PERSONAL_KEYS)
        consumed.update(LIFE_EVENT_KEYS)

        for key, value in metadata.items():
            if key in consumed:
                continue
            if isinstance(value, str | int | float | bool) and value != "":
                collected.append((key.upper(), value))
            else:
                logger.debug("metadata_key_skipped", key=key)

        return collected

    def _personal_metadata_facts(
        self,
        metadata: dict[str, Any],
        personal: "_PersonalContextBuilder",
    ) -> list[tuple[str, Any]]:
        collected: list[tuple[str, Any]] = []

        if metadata.get("pet"):
            pet = Pet.model_validate(metadata["pet"])
            personal.add(pet)
            collected.append((FactType.HAS_PET.value, pet.model_dump(exclude_none=True)))

        if metadata.get("emotional_state"):
            state = EmotionalState.model_validate(metadata["emotional_state"])
            personal.add(state)
            collected.append((FactType.EMOTIONAL_STATE.value, state.model_dump(exclude_none=True)))

        for raw in _as_list(metadata.get("relationships")):
            relationship = Relationship.model_validate(raw)
            personal.add(relationship)
            collected.append((
                qualified_fact_type(FactType.HAS_RELATIONSHIP, relationship.name),
                relationship.model_dump(exclude_none=True),
            ))

        for raw in _as_list(metadata.get("interests")):
            interest = Interest.model_validate(raw)
            personal.add(interest)
            collected.append((
                qualified_fact_type(FactType.HAS_INTEREST, interest.specific_interest),
                interest.model_dump(exclude_none=True),
            ))

        for key in LIFE_EVENT_KEYS:
            for raw in _as_list(metadata.get(key)):
                event = LifeEvent.model_validate(raw)
                personal.add(event)
                collected.append((
                    qualified_fact_type(FactType.EXPERIENCED, event.event_type),
                    event.model_dump(exclude_none=True),
                ))

        for raw in _as_list(metadata.get("goals")):
            goal = Goal.model_validate(raw)
            personal.add(goal)
            collected.append((
                qualified_fact_type(FactType.HAS_GOAL, goal.description),
                goal.model_dump(exclude_none=True),
            ))

        return collected

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def select_personal_text(self, conversation: Conversation) -> str:
        """Text the personal-context matchers read under the configured policy."""
        policy = self._config.transcript_source
        if policy == "combined":
            return conversation.combined_text
        if policy == "dedicated_only":
            return conversation.personal_transcript or ""
        return conversation.personal_transcript or conversation.combined_text

    def extract_conversation(
        self,
        conversation: Conversation,
        *,
        scope_id: str | None = None,
        observed_at: datetime | None = None,
    ) -> ExtractionResult:
        """Run the matcher table over a transcript.

        A blank transcript yields an empty result without needing a scope
        or timestamp. A transcript no matcher fires on yields an empty,
        ambiguous result; neither case is an error.
        """
        combined = conversation.combined_text
        if not combined.strip():
            return ExtractionResult(source=DerivedFrom.CONVERSATION, scope_id=scope_id)

        scope = self._resolve_scope(conversation.user_id, scope_id)
        valid_from = self._resolve_observed_at(conversation, observed_at)
        personal_text = self.select_personal_text(conversation)

        facts: list[Fact] = []
        matched: list[MatchCategory] = []
        personal = _PersonalContextBuilder()
        issue: str | None = None

        for row in self._matchers:
            text = personal_text if row.personal else combined
            hits = row.matcher(text) if text else []
            if not hits:
                continue
            if row.singular:
                hits = hits[:1]

            seen: set[str] = set()
            for hit in hits:
                candidate = row.builder(hit)
                if candidate.fact_type in seen:
                    continue
                seen.add(candidate.fact_type)
                facts.append(
                    Fact(
                        scope_id=scope,
                        fact_type=candidate.fact_type,
                        value=candidate.value,
                        valid_from=valid_from,
                        derived_from=DerivedFrom.CONVERSATION,
                        confidence=row.confidence,
                    )
                )
                if row.personal:
                    personal.add(candidate.entity)
                elif row.category == MatchCategory.ISSUE:
                    issue = candidate.value

            matched.append(row.category)
            EXTRACTION_MATCHES.labels(category=row.category.value).inc()

        sentiment = analyze_sentiment(combined)
        channel = conversation.metadata.channel if conversation.metadata else None
        episodes = [
            EpisodeSignal(
                type="support_episode",
                value=f"User contacted support regarding {issue or 'general inquiry'}",
                source=channel or "support_chat",
                importance=0.9 if issue else 0.5,
                timestamp=valid_from,
            )
        ]

        if not matched:
            logger.info("extraction_ambiguous", scope_id=scope)
        else:
            logger.info(
                "conversation_extracted",
                scope_id=scope,
                categories=[c.value for c in matched],
                fact_count=len(facts),
                sentiment=sentiment.score,
            )

        return ExtractionResult(
            source=DerivedFrom.CONVERSATION,
            scope_id=scope,
            facts=facts,
            personal_context=personal.build(),
            sentiment=sentiment,
            episodes=episodes,
            matched_categories=matched,
        )

    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_scope(user_id: str | None, scope_id: str | None) -> str:
        if user_id and scope_id and user_id != scope_id:
            raise MalformedInput(
                f"Input belongs to user {user_id!r}, not scope {scope_id!r}",
                field="user_id",
            )
        scope = scope_id or user_id
        if not scope:
            raise MalformedInput(
                "Conversation is missing metadata.user_id", field="metadata.user_id"
            )
        return scope

    @staticmethod
    def _resolve_observed_at(conversation: Conversation, observed_at: datetime | None) -> datetime:
        if observed_at is not None:
            return ensure_utc(observed_at)
        if conversation.metadata and conversation.metadata.ended_at:
            return ensure_utc(conversation.metadata.ended_at)
        raise MalformedInput(
            "Conversation has no timestamp: pass observed_at or set metadata.ended_at",
            field="metadata.ended_at",
        )


class _PersonalContextBuilder:
    """Accumulates personal sub-objects in match order."""

    def __init__(self) -> None:
        self._pet: Pet | None = None
        self._emotional_state: EmotionalState | None = None
        self._lists: dict[type[BaseModel], list[BaseModel]] = {
            Relationship: [],
            Interest: [],
            LifeEvent: [],
            Goal: [],
        }

    def add(self, entity: BaseModel) -> None:
        if isinstance(entity, Pet):
            self._pet = self._pet or entity
        elif isinstance(entity, EmotionalState):
            self._emotional_state = self._emotional_state or entity
        else:
            self._lists[type(entity)].append(entity)

    def build(self) -> PersonalContext:
        return PersonalContext(
            pet=self._pet,
            relationships=self._lists[Relationship],
            emotional_state=self._emotional_state,
            interests=self._lists[Interest],
            life_events=self._lists[LifeEvent],
            goals=self._lists[Goal],
        )


def _describe_event(event: BusinessEvent) -> str:
    event_type = event.event_type.strip().upper()
    if event.amount is not None:
        return f"{event_type} - {event.amount} {event.currency or ''}".rstrip()
    if event.transaction_id:
        return f"{event_type} ({event.transaction_id})"
    return event_type


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _distinct(collected: list[tuple[str, Any]]) -> list[tuple[str, Any]]:
    """Keep the first value per fact type so one event never supersedes itself."""
    seen: set[str] = set()
    result = []
    for fact_type, value in collected:
        if fact_type in seen:
            continue
        seen.add(fact_type)
        result.append((fact_type, value))
    return result
