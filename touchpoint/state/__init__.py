"""Composite state models and projection."""

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
from touchpoint.state.projector import StateProjector, project_state

__all__ = [
    "CompositeState",
    "EmotionalState",
    "Goal",
    "Interest",
    "LastTransaction",
    "LifeEvent",
    "PersonalContext",
    "Pet",
    "Relationship",
    "RoamingStatus",
    "StateProjector",
    "project_state",
]
