"""Temporal fact domain.

Contains the bitemporal Fact model, the FactStore interface and its
in-memory implementation.
"""

from touchpoint.facts.enums import PERSONAL_PREDICATES, DerivedFrom, FactType
from touchpoint.facts.models import Fact, qualified_fact_type
from touchpoint.facts.store import FactStore
from touchpoint.facts.stores import InMemoryFactStore

__all__ = [
    "DerivedFrom",
    "Fact",
    "FactStore",
    "FactType",
    "InMemoryFactStore",
    "PERSONAL_PREDICATES",
    "qualified_fact_type",
]
