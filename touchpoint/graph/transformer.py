"""Transformation of composite state and fact history into a graph."""

from collections.abc import Iterable
from typing import Any
from uuid import UUID, uuid5

from touchpoint.config.models.graph import GraphConfig
from touchpoint.facts.enums import FactType
from touchpoint.facts.models import Fact
from touchpoint.graph.models import (
    ENTITY_NAMESPACE,
    EntityType,
    Graph,
    GraphEdge,
    GraphNode,
    entity_id,
)
from touchpoint.graph.styles import RELATIONSHIP_LOCATION_SIZE, node_fill, node_size
from touchpoint.observability.logging import get_logger
from touchpoint.state.models import CompositeState

logger = get_logger(__name__)

LIVES_IN = "LIVES_IN"

PREDICATE_ENTITY_TYPES: dict[str, EntityType] = {
    FactType.HAS_PET.value: EntityType.PET,
    FactType.HAS_RELATIONSHIP.value: EntityType.RELATIONSHIP,
    FactType.EMOTIONAL_STATE.value: EntityType.EMOTION,
    FactType.HAS_INTEREST.value: EntityType.INTEREST,
    FactType.EXPERIENCED.value: EntityType.EVENT,
    FactType.HAS_GOAL.value: EntityType.GOAL,
    FactType.USER_IN_COUNTRY.value: EntityType.LOCATION,
    FactType.HAS_OPEN_ISSUE.value: EntityType.ISSUE,
}


def truncate_label(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def pet_label(value: dict[str, Any]) -> str:
    return f"{value.get('name', '?')} ({value.get('species', 'pet')})"


def emotion_label(value: dict[str, Any]) -> str:
    return f"{value.get('mood', 'unknown')} (stress: {value.get('stress_level', '?')}/10)"


class _GraphBuilder:
    """Accumulates nodes and edges, collapsing duplicates."""

    def __init__(self, root: GraphNode):
        self.root = root
        self.nodes: dict[UUID, GraphNode] = {root.id: root}
        self.edges: dict[tuple[UUID, UUID, str], GraphEdge] = {}
        self._rooted: set[UUID] = set()

    def add_node(
        self,
        entity_type: EntityType,
        label: str,
        attributes: dict[str, Any],
        *,
        active: bool = True,
        mood: str | None = None,
        size: int | None = None,
    ) -> UUID:
        node_id = entity_id(entity_type, label)
        if node_id not in self.nodes:
            self.nodes[node_id] = GraphNode(
                id=node_id,
                type=entity_type,
                label=label,
                attributes=attributes,
                fill=node_fill(entity_type, active=active, mood=mood),
                size=size or node_size(entity_type),
                active=active,
            )
        return node_id

    def link(self, source: UUID, target: UUID, label: str) -> None:
        key = (source, target, label)
        if key in self.edges:
            return
        if source == self.root.id:
            # One root edge per node
            if target in self._rooted:
                return
            self._rooted.add(target)
        self.edges[key] = GraphEdge(
            id=uuid5(ENTITY_NAMESPACE, f"{source}->{target}:{label}"),
            source=source,
            target=target,
            label=label,
        )

    def build(self) -> Graph:
        return Graph(nodes=list(self.nodes.values()), edges=list(self.edges.values()))


class GraphTransformer:
    """Builds the entity graph of a scope.

    The root user node comes first, then personal-context entities of the
    state, then entities of facts the personal context does not already
    show. Identical input always yields identical node and edge order.
    """

    def __init__(self, config: GraphConfig | None = None):
        self._config = config or GraphConfig()

    def to_graph(self, state: CompositeState, facts: Iterable[Fact] = ()) -> Graph:
        """Transform state and fact history into a graph.

        Args:
            state: Projected composite state
            facts: Fact history of the same scope (active and expired)

        Returns:
            Graph whose edges all reference nodes of the same graph
        """
        root = GraphNode(
            id=entity_id(EntityType.USER, state.user_id),
            type=EntityType.USER,
            label=self._config.root_label,
            attributes={"user_id": state.user_id},
            fill=node_fill(EntityType.USER),
            size=node_size(EntityType.USER),
        )
        builder = _GraphBuilder(root)

        self._add_personal_context(builder, state)

        fact_list = list(facts)
        ordered = [f for f in fact_list if f.is_active] + [f for f in fact_list if not f.is_active]
        for fact in ordered:
            self._add_fact(builder, fact)

        graph = builder.build()
        logger.debug(
            "graph_built",
            scope_id=state.user_id,
            node_count=len(graph.nodes),
            edge_count=len(graph.edges),
        )
        return graph

    def _label(self, text: str) -> str:
        return truncate_label(text, self._config.max_label_length)

    def _add_personal_context(self, builder: _GraphBuilder, state: CompositeState) -> None:
        context = state.personal_context
        if context is None:
            return
        root_id = builder.root.id

        if context.pet:
            pet = context.pet.model_dump(exclude_none=True)
            node = builder.add_node(EntityType.PET, self._label(pet_label(pet)), pet)
            builder.link(root_id, node, FactType.HAS_PET.value)

        for relationship in context.relationships:
            self._add_relationship(builder, relationship.model_dump(exclude_none=True))

        if context.emotional_state:
            emotion = context.emotional_state.model_dump(exclude_none=True)
            node = builder.add_node(
                EntityType.EMOTION,
                self._label(emotion_label(emotion)),
                emotion,
                mood=context.emotional_state.mood,
            )
            builder.link(root_id, node, FactType.EMOTIONAL_STATE.value)

        for interest in context.interests:
            node = builder.add_node(
                EntityType.INTEREST,
                self._label(interest.specific_interest),
                interest.model_dump(exclude_none=True),
            )
            builder.link(root_id, node, FactType.HAS_INTEREST.value)

        for goal in context.goals:
            node = builder.add_node(
                EntityType.GOAL,
                self._label(goal.description),
                goal.model_dump(exclude_none=True),
            )
            builder.link(root_id, node, FactType.HAS_GOAL.value)

        for event in context.life_events:
            node = builder.add_node(
                EntityType.EVENT,
                self._label(event.description),
                event.model_dump(exclude_none=True),
            )
            builder.link(root_id, node, FactType.EXPERIENCED.value)

    def _add_relationship(
        self,
        builder: _GraphBuilder,
        value: dict[str, Any],
        *,
        active: bool = True,
    ) -> None:
        node = builder.add_node(
            EntityType.RELATIONSHIP,
            self._label(str(value.get("name", "?"))),
            value,
            active=active,
        )
        builder.link(builder.root.id, node, FactType.HAS_RELATIONSHIP.value)

        location = value.get("location")
        if location:
            location_node = builder.add_node(
                EntityType.LOCATION,
                self._label(str(location)),
                {},
                active=active,
                size=RELATIONSHIP_LOCATION_SIZE,
            )
            builder.link(node, location_node, LIVES_IN)

    def _add_fact(self, builder: _GraphBuilder, fact: Fact) -> None:
        entity_type = PREDICATE_ENTITY_TYPES.get(fact.predicate, EntityType.FACT)
        value = fact.value

        if entity_type == EntityType.RELATIONSHIP and isinstance(value, dict):
            self._add_relationship(builder, value, active=fact.is_active)
            return

        attributes: dict[str, Any] = {
            "fact_type": fact.fact_type,
            "confidence": fact.confidence,
            "valid_from": fact.valid_from.isoformat(),
        }
        if fact.valid_to is not None:
            attributes["valid_to"] = fact.valid_to.isoformat()

        mood = None
        if isinstance(value, dict):
            attributes.update(value)
            mood = value.get("mood")

        node = builder.add_node(
            entity_type,
            self._label(self._fact_label(entity_type, fact)),
            attributes,
            active=fact.is_active,
            mood=mood,
        )
        builder.link(builder.root.id, node, fact.predicate)

    @staticmethod
    def _fact_label(entity_type: EntityType, fact: Fact) -> str:
        value = fact.value
        if not isinstance(value, dict):
            return str(value)
        if entity_type == EntityType.PET:
            return pet_label(value)
        if entity_type == EntityType.EMOTION:
            return emotion_label(value)
        if entity_type == EntityType.INTEREST:
            return str(value.get("specific_interest", fact.qualifier or fact.fact_type))
        if entity_type in (EntityType.GOAL, EntityType.EVENT):
            return str(value.get("description", fact.qualifier or fact.fact_type))
        if "type" in value:
            if value.get("amount") is not None:
                currency = value.get("currency") or ""
                return f"{value['type']} {value['amount']} {currency}".strip()
            if value.get("transaction_id"):
                return f"{value['type']} {value['transaction_id']}"
            return str(value["type"])
        return fact.fact_type
