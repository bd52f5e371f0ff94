"""FactStore implementations."""

from touchpoint.facts.stores.inmemory import InMemoryFactStore

__all__ = ["InMemoryFactStore"]
