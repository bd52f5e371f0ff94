"""Fixed render style per entity type."""

from touchpoint.graph.models import EntityType

NODE_COLORS: dict[EntityType, str] = {
    EntityType.USER: "#6366F1",  # Indigo
    EntityType.FACT: "#F59E0B",  # Amber
    EntityType.PET: "#EC4899",  # Pink
    EntityType.RELATIONSHIP: "#8B5CF6",  # Purple
    EntityType.INTEREST: "#3B82F6",  # Blue
    EntityType.EMOTION: "#EF4444",  # Red
    EntityType.GOAL: "#10B981",  # Emerald
    EntityType.EVENT: "#F97316",  # Orange
    EntityType.LOCATION: "#22C55E",  # Green
    EntityType.ISSUE: "#EF4444",  # Red
}

NODE_SIZES: dict[EntityType, int] = {
    EntityType.USER: 16,
    EntityType.FACT: 10,
    EntityType.PET: 12,
    EntityType.RELATIONSHIP: 11,
    EntityType.INTEREST: 9,
    EntityType.EMOTION: 12,
    EntityType.GOAL: 9,
    EntityType.EVENT: 9,
    EntityType.LOCATION: 11,
    EntityType.ISSUE: 12,
}

# Where a relative lives, smaller than the user's own location
RELATIONSHIP_LOCATION_SIZE = 7

# Expired evidence, regardless of type
MUTED_FILL = "#6B7280"

EMOTION_FILLS: dict[str, str] = {
    "happy": "#22C55E",
    "excited": "#22C55E",
    "stressed": "#EF4444",
    "anxious": "#EF4444",
    "sad": "#6366F1",
}


def node_fill(entity_type: EntityType, active: bool = True, mood: str | None = None) -> str:
    """Fill color of a node."""
    if not active:
        return MUTED_FILL
    if entity_type == EntityType.EMOTION and mood:
        return EMOTION_FILLS.get(mood, NODE_COLORS[EntityType.EMOTION])
    return NODE_COLORS[entity_type]


def node_size(entity_type: EntityType) -> int:
    return NODE_SIZES[entity_type]
