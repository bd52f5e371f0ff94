"""Context projection text."""

from touchpoint.context.serializer import (
    EMPATHY_GUIDANCE,
    RESOLUTION_GUIDANCE,
    ContextSerializer,
)

__all__ = ["ContextSerializer", "EMPATHY_GUIDANCE", "RESOLUTION_GUIDANCE"]
