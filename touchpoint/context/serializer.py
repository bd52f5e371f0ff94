"""Plain-text context projection for downstream consumers.

The text is recomputed from its arguments on every call. It is never
cached or stored; the composite state stays the source of truth.
"""

from touchpoint.config.models.context import ContextConfig
from touchpoint.extraction.models import SentimentSignal
from touchpoint.state.models import CompositeState, PersonalContext

PERSONAL_HEADER = "--- Personal Context ---"
GUIDANCE_HEADER = "--- Communication Guidance ---"

PERSONALIZE_GUIDANCE = "Personalize responses using known context."
RESOLUTION_GUIDANCE = (
    "User sentiment indicates frustration. Respond concisely and focus on resolution."
)
EMPATHY_GUIDANCE = "User is feeling {mood}. Show empathy and be supportive."

STRESS_MOODS = frozenset({"stressed", "anxious"})


class ContextSerializer:
    """Renders a composite state as an ordered text block.

    Section order is fixed: location and roaming, last transaction, open
    issue, personal context, communication guidance.
    """

    def __init__(self, config: ContextConfig | None = None):
        self._config = config or ContextConfig()

    def serialize(
        self,
        state: CompositeState,
        sentiment: SentimentSignal | None = None,
    ) -> str:
        lines = [self._location_line(state)]

        transaction = state.last_transaction
        if transaction is not None:
            description = transaction.type.replace("_", " ").lower()
            if transaction.amount is not None:
                description += f" of {transaction.amount} {transaction.currency or ''}".rstrip()
            lines.append(f"They recently completed a {description}.")

        if state.open_support_issue:
            lines.append(f"There is an unresolved {state.open_support_issue.lower()} issue.")

        context = state.personal_context
        if context is not None:
            lines.extend(["", PERSONAL_HEADER, *self._personal_lines(context)])

        guidance = self._guidance_lines(state, sentiment)
        if guidance:
            lines.extend(["", GUIDANCE_HEADER, *guidance])

        return "\n".join(lines)

    @staticmethod
    def _location_line(state: CompositeState) -> str:
        line = f"User is currently in {state.current_country}"
        if state.is_roaming:
            line += " with roaming enabled"
        elif state.current_country != state.home_market:
            line += " with roaming disabled"
        return line + "."

    @staticmethod
    def _personal_lines(context: PersonalContext) -> list[str]:
        lines = []

        if context.pet:
            pet = context.pet
            breed = f" ({pet.breed})" if pet.breed else ""
            lines.append(f"Has a {pet.species} named {pet.name}{breed}.")

        if context.relationships:
            people = [
                f"{r.name} ({r.relationship_type})" + (f" in {r.location}" if r.location else "")
                for r in context.relationships
            ]
            lines.append(f"Key relationships: {', '.join(people)}.")

        if context.emotional_state:
            mood = context.emotional_state
            lines.append(f"Current mood: {mood.mood}, stress level: {mood.stress_level}/10.")

        if context.interests:
            lines.append(
                f"Interests: {', '.join(i.specific_interest for i in context.interests)}."
            )

        if context.life_events:
            lines.append(
                f"Recent life events: {', '.join(e.description for e in context.life_events)}."
            )

        if context.goals:
            lines.append(f"Goals: {', '.join(g.description for g in context.goals)}.")

        return lines

    def _guidance_lines(
        self,
        state: CompositeState,
        sentiment: SentimentSignal | None,
    ) -> list[str]:
        lines = []
        context = state.personal_context
        if context is not None:
            lines.append(PERSONALIZE_GUIDANCE)

        mood = context.emotional_state.mood if context and context.emotional_state else None
        if sentiment is not None and sentiment.score < self._config.negative_sentiment_threshold:
            lines.append(RESOLUTION_GUIDANCE)
        elif mood in STRESS_MOODS:
            lines.append(EMPATHY_GUIDANCE.format(mood=mood))

        return lines
