"""Entity and graph models."""

from enum import Enum
from typing import Any
from uuid import NAMESPACE_URL, UUID, uuid5

from pydantic import BaseModel, ConfigDict, Field

ENTITY_NAMESPACE = uuid5(NAMESPACE_URL, "touchpoint:entity")


class EntityType(str, Enum):
    """Kinds of entity shown in the graph."""

    USER = "user"
    PET = "pet"
    RELATIONSHIP = "relationship"
    INTEREST = "interest"
    EMOTION = "emotion"
    GOAL = "goal"
    EVENT = "event"  # Life event
    LOCATION = "location"
    ISSUE = "issue"
    FACT = "fact"  # Any other fact


def entity_id(entity_type: EntityType, key: str) -> UUID:
    """Deterministic id of the entity identified by (type, key)."""
    return uuid5(ENTITY_NAMESPACE, f"{entity_type.value}:{key}")


class Entity(BaseModel):
    """Something the engine knows about. Immutable; superseded, never edited."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(..., description="Deterministic id of (type, label)")
    type: EntityType = Field(..., description="Entity kind")
    label: str = Field(..., description="Display label")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Open properties")

    @classmethod
    def create(
        cls,
        entity_type: EntityType,
        label: str,
        attributes: dict[str, Any] | None = None,
    ) -> "Entity":
        return cls(
            id=entity_id(entity_type, label),
            type=entity_type,
            label=label,
            attributes=attributes or {},
        )


class GraphNode(Entity):
    """Entity with render attributes."""

    fill: str = Field(..., description="Hex fill color")
    size: int = Field(..., gt=0, description="Node radius")
    active: bool = Field(default=True, description="False when backed by an expired fact")


class GraphEdge(BaseModel):
    """Directed, labelled edge between two nodes."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    source: UUID
    target: UUID
    label: str


class Graph(BaseModel):
    """Node/edge view of a scope for visualization."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)

    @property
    def root(self) -> GraphNode | None:
        return next((node for node in self.nodes if node.type == EntityType.USER), None)

    def node(self, node_id: UUID) -> GraphNode | None:
        return next((node for node in self.nodes if node.id == node_id), None)

    def dangling_edges(self) -> list[GraphEdge]:
        """Edges whose source or target is not a node of this graph."""
        ids = {node.id for node in self.nodes}
        return [edge for edge in self.edges if edge.source not in ids or edge.target not in ids]
