"""Entity graph for visualization."""

from touchpoint.graph.models import Entity, EntityType, Graph, GraphEdge, GraphNode, entity_id
from touchpoint.graph.transformer import GraphTransformer

__all__ = [
    "Entity",
    "EntityType",
    "Graph",
    "GraphEdge",
    "GraphNode",
    "GraphTransformer",
    "entity_id",
]
