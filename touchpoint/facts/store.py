"""FactStore abstract interface."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager

from touchpoint.facts.models import Fact


class FactStore(ABC):
    """Abstract interface for the temporal fact store.

    Owns the fact log of every scope. Each scope is an independent
    partition; nothing is shared between scopes.
    """

    @abstractmethod
    def insert(self, scope_id: str, fact: Fact) -> Fact:
        """Insert a fact, superseding the active fact of the same type.

        Returns the fact as stored (closed on arrival when it is older
        than the active fact of its type).

        Raises:
            StoreInvariantViolation: If the scope would hold two active
                facts of one type
            FactConflictError: If the fact id is already stored
        """
        pass

    @abstractmethod
    def insert_many(self, scope_id: str, facts: Iterable[Fact]) -> list[Fact]:
        """Insert several facts as one all-or-nothing unit."""
        pass

    @abstractmethod
    def current(self, scope_id: str) -> list[Fact]:
        """Get the active facts (valid_to is None) of a scope."""
        pass

    @abstractmethod
    def history(self, scope_id: str, fact_type: str | None = None) -> list[Fact]:
        """Get active and superseded facts, most recent valid_from first.

        ``fact_type`` matches either the exact fact type or its predicate.
        """
        pass

    @abstractmethod
    def scope(self, scope_id: str) -> AbstractContextManager[None]:
        """Hold the scope's unit-of-work lock for the duration of a block."""
        pass

    @abstractmethod
    def scopes(self) -> list[str]:
        """List scopes that hold at least one fact."""
        pass

    @abstractmethod
    def clear(self, scope_id: str) -> int:
        """Drop every fact of a scope. Returns count of deleted facts."""
        pass
