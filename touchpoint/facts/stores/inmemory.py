"""In-memory implementation of FactStore."""

import threading
from collections import Counter
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime

from touchpoint.errors import FactConflictError, MalformedInput, StoreInvariantViolation
from touchpoint.facts.models import Fact
from touchpoint.facts.store import FactStore
from touchpoint.observability.logging import get_logger
from touchpoint.observability.metrics import (
    ACTIVE_SCOPES,
    FACTS_INSERTED,
    FACTS_SUPERSEDED,
    INVARIANT_VIOLATIONS,
)

logger = get_logger(__name__)


class _ScopePartition:
    """Fact log of a single scope, in insertion order."""

    def __init__(self) -> None:
        self.facts: list[Fact] = []
        self.lock = threading.RLock()


class InMemoryFactStore(FactStore):
    """In-memory implementation of FactStore for local mode and tests.

    Every scope owns its own partition and lock. Inserts are staged on a
    copy of the partition and swapped in only once the active-fact
    invariant has been checked, so a failed insert leaves no trace.
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._partitions: dict[str, _ScopePartition] = {}
        self._registry_lock = threading.Lock()

    def insert(self, scope_id: str, fact: Fact) -> Fact:
        """Insert a fact, superseding the active fact of the same type."""
        return self.insert_many(scope_id, [fact])[0]

    def insert_many(self, scope_id: str, facts: Iterable[Fact]) -> list[Fact]:
        """Insert several facts as one all-or-nothing unit."""
        incoming = list(facts)
        partition = self._partition(scope_id)

        with partition.lock:
            staged = list(partition.facts)
            stored: list[Fact] = []
            superseded: list[Fact] = []

            for fact in incoming:
                stored.append(self._apply(scope_id, staged, fact, superseded))

            self._check_invariant(scope_id, staged)
            partition.facts = staged

        for fact in stored:
            FACTS_INSERTED.labels(derived_from=fact.derived_from.value).inc()
        for fact in superseded:
            FACTS_SUPERSEDED.labels(predicate=fact.predicate).inc()
            logger.debug(
                "fact_superseded",
                scope_id=scope_id,
                fact_id=str(fact.id),
                fact_type=fact.fact_type,
                valid_to=fact.valid_to.isoformat() if fact.valid_to else None,
            )
        ACTIVE_SCOPES.set(len(self.scopes()))

        return stored

    def current(self, scope_id: str) -> list[Fact]:
        """Get the active facts of a scope, in insertion order."""
        partition = self._partitions.get(scope_id)
        if partition is None:
            return []
        with partition.lock:
            return [fact for fact in partition.facts if fact.valid_to is None]

    def history(self, scope_id: str, fact_type: str | None = None) -> list[Fact]:
        """Get all facts of a scope, most recent valid_from first."""
        partition = self._partitions.get(scope_id)
        if partition is None:
            return []

        with partition.lock:
            indexed = [
                (position, fact)
                for position, fact in enumerate(partition.facts)
                if fact_type is None
                or fact.fact_type == fact_type
                or fact.predicate == fact_type
            ]

        # Ties on valid_from: later insertion first
        indexed.sort(key=lambda item: (item[1].valid_from, item[0]), reverse=True)
        return [fact for _, fact in indexed]

    @contextmanager
    def scope(self, scope_id: str) -> Iterator[None]:
        """Hold the scope's unit-of-work lock for the duration of a block."""
        partition = self._partition(scope_id)
        with partition.lock:
            yield

    def scopes(self) -> list[str]:
        """List scopes that hold at least one fact."""
        with self._registry_lock:
            return sorted(
                scope_id
                for scope_id, partition in self._partitions.items()
                if partition.facts
            )

    def clear(self, scope_id: str) -> int:
        """Drop every fact of a scope."""
        partition = self._partitions.get(scope_id)
        if partition is None:
            return 0
        with partition.lock:
            count = len(partition.facts)
            partition.facts = []
        ACTIVE_SCOPES.set(len(self.scopes()))
        return count

    def _partition(self, scope_id: str) -> _ScopePartition:
        with self._registry_lock:
            partition = self._partitions.get(scope_id)
            if partition is None:
                partition = _ScopePartition()
                self._partitions[scope_id] = partition
            return partition

    def _apply(
        self,
        scope_id: str,
        staged: list[Fact],
        fact: Fact,
        superseded: list[Fact],
    ) -> Fact:
        """Apply one fact to the staged log and return it as stored."""
        if fact.scope_id != scope_id:
            raise MalformedInput(
                f"Fact {fact.id} belongs to scope {fact.scope_id!r}, not {scope_id!r}",
                field="scope_id",
            )
        if any(existing.id == fact.id for existing in staged):
            raise FactConflictError(
                f"Fact {fact.id} already stored for scope {scope_id!r}",
                scope_id=scope_id,
            )

        if fact.valid_to is not None:
            staged.append(fact)
            return fact

        active_positions = [
            position
            for position, existing in enumerate(staged)
            if existing.fact_type == fact.fact_type and existing.valid_to is None
        ]
        if len(active_positions) > 1:
            self._raise_violation(scope_id, fact.fact_type, len(active_positions))

        if not active_positions:
            staged.append(fact)
            return fact

        position = active_positions[0]
        active = staged[position]
        if fact.valid_from >= active.valid_from:
            closed = active.closed_at(fact.valid_from)
            staged[position] = closed
            superseded.append(closed)
            staged.append(fact)
            return fact

        # Arrived out of order: it was already superseded by a later fact,
        # and it in turn ends the fact whose interval it lands inside
        late = fact.closed_at(self._next_valid_from(staged, fact))
        for position, existing in enumerate(staged):
            if (
                existing.fact_type == fact.fact_type
                and existing.valid_from < fact.valid_from
                and existing.valid_to is not None
                and existing.valid_to > fact.valid_from
            ):
                closed = existing.closed_at(fact.valid_from)
                staged[position] = closed
                superseded.append(closed)
        staged.append(late)
        return late

    @staticmethod
    def _next_valid_from(staged: list[Fact], fact: Fact) -> datetime:
        return min(
            existing.valid_from
            for existing in staged
            if existing.fact_type == fact.fact_type
            and existing.valid_from > fact.valid_from
        )

    def _check_invariant(self, scope_id: str, staged: list[Fact]) -> None:
        active_counts = Counter(fact.fact_type for fact in staged if fact.valid_to is None)
        for fact_type, count in active_counts.items():
            if count > 1:
                self._raise_violation(scope_id, fact_type, count)

    @staticmethod
    def _raise_violation(scope_id: str, fact_type: str, count: int) -> None:
        INVARIANT_VIOLATIONS.inc()
        logger.error(
            "store_invariant_violation",
            scope_id=scope_id,
            fact_type=fact_type,
            active_count=count,
        )
        raise StoreInvariantViolation(
            f"Scope {scope_id!r} would hold {count} active facts of type {fact_type!r}",
            scope_id=scope_id,
            fact_type=fact_type,
            active_count=count,
        )
