"""Tests for InMemoryFactStore."""

import threading
from datetime import timedelta
from uuid import uuid4

import pytest

from touchpoint.errors import FactConflictError, MalformedInput, StoreInvariantViolation
from touchpoint.facts import DerivedFrom, Fact, InMemoryFactStore
from tests.factories import T0, USER_ID, FactFactory

T1 = T0 + timedelta(hours=1)
T2 = T0 + timedelta(hours=2)


def _active(store: InMemoryFactStore, fact_type: str) -> list[Fact]:
    return [f for f in store.current(USER_ID) if f.fact_type == fact_type]


class TestInsert:
    """Tests for single inserts and supersession."""

    def test_insert_and_read_back(self, store: InMemoryFactStore) -> None:
        """Should return the stored fact and list it as active."""
        fact = FactFactory.create()

        stored = store.insert(USER_ID, fact)

        assert stored == fact
        assert store.current(USER_ID) == [fact]

    def test_newer_fact_supersedes_active(self, store: InMemoryFactStore) -> None:
        """Should close the active fact at the newcomer's valid_from."""
        old = store.insert(USER_ID, FactFactory.create(value="20GB Plan", valid_from=T0))
        new = store.insert(USER_ID, FactFactory.create(value="Unlimited", valid_from=T1))

        history = store.history(USER_ID, "ACTIVE_PLAN")
        assert [f.id for f in history] == [new.id, old.id]
        assert history[0].valid_to is None
        assert history[1].valid_to == T1
        assert _active(store, "ACTIVE_PLAN") == [new]

    def test_equal_valid_from_supersedes(self, store: InMemoryFactStore) -> None:
        """Should let the later insert win when valid_from ties."""
        store.insert(USER_ID, FactFactory.create(value="20GB Plan"))
        new = store.insert(USER_ID, FactFactory.create(value="Unlimited"))

        assert _active(store, "ACTIVE_PLAN") == [new]
        assert store.history(USER_ID, "ACTIVE_PLAN")[0].id == new.id

    def test_out_of_order_fact_stored_closed(self, store: InMemoryFactStore) -> None:
        """Should store an older arrival already closed at the next later fact."""
        current = store.insert(USER_ID, FactFactory.create(value="Unlimited", valid_from=T2))
        late = store.insert(USER_ID, FactFactory.create(value="20GB Plan", valid_from=T0))

        assert late.valid_to == T2
        assert _active(store, "ACTIVE_PLAN") == [current]
        assert [f.value for f in store.history(USER_ID, "ACTIVE_PLAN")] == [
            "Unlimited",
            "20GB Plan",
        ]

    def test_late_fact_closes_at_nearest_successor(self, store: InMemoryFactStore) -> None:
        """Should close a late fact at the earliest later valid_from."""
        store.insert(USER_ID, FactFactory.create(value="A", valid_from=T0))
        store.insert(USER_ID, FactFactory.create(value="C", valid_from=T2))
        late = store.insert(
            USER_ID, FactFactory.create(value="B", valid_from=T0 + timedelta(minutes=30))
        )

        assert late.valid_to == T2
        assert len(_active(store, "ACTIVE_PLAN")) == 1

    def test_late_fact_shortens_the_fact_it_lands_in(self, store: InMemoryFactStore) -> None:
        """Should leave no two facts of one type valid at the same instant."""
        t_mid = T0 + timedelta(minutes=30)
        store.insert(USER_ID, FactFactory.create(value="A", valid_from=T0))
        store.insert(USER_ID, FactFactory.create(value="C", valid_from=T2))
        store.insert(USER_ID, FactFactory.create(value="B", valid_from=t_mid))

        history = store.history(USER_ID, "ACTIVE_PLAN")
        assert [(f.value, f.valid_from, f.valid_to) for f in history] == [
            ("C", T2, None),
            ("B", t_mid, T2),
            ("A", T0, t_mid),
        ]
        instant = t_mid + timedelta(minutes=15)
        valid_then = [
            f.value
            for f in history
            if f.valid_from <= instant and (f.valid_to is None or instant < f.valid_to)
        ]
        assert valid_then == ["B"]

    def test_closed_fact_inserted_as_is(self, store: InMemoryFactStore) -> None:
        """Should not supersede anything with an already expired fact."""
        active = store.insert(USER_ID, FactFactory.create(valid_from=T0))
        expired = store.insert(
            USER_ID, FactFactory.create(value="Old", valid_from=T1, valid_to=T2)
        )

        assert expired.valid_to == T2
        assert _active(store, "ACTIVE_PLAN") == [active]

    def test_types_are_independent(self, store: InMemoryFactStore) -> None:
        """Should only supersede facts of the same type."""
        store.insert(USER_ID, FactFactory.create(fact_type="ACTIVE_PLAN", value="20GB Plan"))
        store.insert(USER_ID, FactFactory.create(fact_type="USER_IN_COUNTRY", value="Japan"))

        assert len(store.current(USER_ID)) == 2

    def test_qualified_types_are_independent(self, store: InMemoryFactStore) -> None:
        """Should keep one active fact per relationship."""
        store.insert(USER_ID, FactFactory.create(fact_type="HAS_RELATIONSHIP:Mom", value={}))
        store.insert(USER_ID, FactFactory.create(fact_type="HAS_RELATIONSHIP:Grandma", value={}))

        assert len(store.current(USER_ID)) == 2
        assert len(store.history(USER_ID, "HAS_RELATIONSHIP")) == 2

    def test_duplicate_id_rejected(self, store: InMemoryFactStore) -> None:
        """Should refuse to store the same fact id twice."""
        fact = FactFactory.create()
        store.insert(USER_ID, fact)

        with pytest.raises(FactConflictError):
            store.insert(USER_ID, fact.model_copy(update={"valid_from": T1}))

    def test_scope_mismatch_rejected(self, store: InMemoryFactStore) -> None:
        """Should refuse a fact addressed to another scope."""
        with pytest.raises(MalformedInput) as exc_info:
            store.insert("usr_other", FactFactory.create(scope_id=USER_ID))

        assert exc_info.value.field == "scope_id"
        assert store.current("usr_other") == []


class TestInsertMany:
    """Tests for batch inserts."""

    def test_batch_applied_in_order(self, store: InMemoryFactStore) -> None:
        """Should supersede within the batch."""
        stored = store.insert_many(USER_ID, [
            FactFactory.create(value="20GB Plan", valid_from=T0),
            FactFactory.create(value="Unlimited", valid_from=T1),
        ])

        assert len(stored) == 2
        assert [f.value for f in store.current(USER_ID)] == ["Unlimited"]

    def test_failed_batch_leaves_no_trace(self, store: InMemoryFactStore) -> None:
        """Should commit nothing when any fact of the batch is rejected."""
        existing = store.insert(USER_ID, FactFactory.create(valid_from=T0))

        with pytest.raises(FactConflictError):
            store.insert_many(USER_ID, [
                FactFactory.create(fact_type="USER_IN_COUNTRY", value="Japan", valid_from=T1),
                FactFactory.create(value="Unlimited", valid_from=T1),
                existing,
            ])

        assert store.current(USER_ID) == [existing]
        assert len(store.history(USER_ID)) == 1

    def test_empty_batch(self, store: InMemoryFactStore) -> None:
        """Should accept an empty batch."""
        assert store.insert_many(USER_ID, []) == []
        assert store.scopes() == []


class TestInvariant:
    """Tests for the one-active-fact-per-type invariant."""

    def test_corrupted_partition_detected(self, store: InMemoryFactStore) -> None:
        """Should raise when a scope already holds two active facts of a type."""
        store.insert(USER_ID, FactFactory.create(valid_from=T0))
        # Bypass supersession to simulate a bug
        partition = store._partitions[USER_ID]
        partition.facts.append(FactFactory.create(value="Rogue", valid_from=T0))

        with pytest.raises(StoreInvariantViolation) as exc_info:
            store.insert(USER_ID, FactFactory.create(value="Unlimited", valid_from=T1))

        assert exc_info.value.scope_id == USER_ID
        assert exc_info.value.fact_type == "ACTIVE_PLAN"
        assert exc_info.value.active_count == 2

    def test_invariant_holds_after_many_inserts(self, store: InMemoryFactStore) -> None:
        """Should keep exactly one active fact per type whatever the arrival order."""
        offsets = [5, 1, 9, 3, 7, 0, 2]
        for minutes in offsets:
            store.insert(
                USER_ID,
                FactFactory.create(
                    value=f"plan-{minutes}", valid_from=T0 + timedelta(minutes=minutes)
                ),
            )

        active = _active(store, "ACTIVE_PLAN")
        assert len(active) == 1
        assert active[0].value == "plan-9"
        assert len(store.history(USER_ID, "ACTIVE_PLAN")) == len(offsets)


class TestReads:
    """Tests for current, history and scope listing."""

    def test_unknown_scope_is_empty(self, store: InMemoryFactStore) -> None:
        """Should return empty lists for a scope with no facts."""
        assert store.current("usr_unknown") == []
        assert store.history("usr_unknown") == []

    def test_history_most_recent_first(self, store: InMemoryFactStore) -> None:
        """Should order history by valid_from descending."""
        store.insert(USER_ID, FactFactory.create(fact_type="USER_IN_COUNTRY", valid_from=T1))
        store.insert(USER_ID, FactFactory.create(fact_type="ACTIVE_PLAN", valid_from=T2))
        store.insert(USER_ID, FactFactory.create(fact_type="ACTIVE_MSISDN", valid_from=T0))

        history = store.history(USER_ID)
        assert [f.fact_type for f in history] == [
            "ACTIVE_PLAN",
            "USER_IN_COUNTRY",
            "ACTIVE_MSISDN",
        ]

    def test_history_filters_by_type(self, store: InMemoryFactStore) -> None:
        """Should return only facts of the requested type."""
        store.insert(USER_ID, FactFactory.create(fact_type="ACTIVE_PLAN"))
        store.insert(USER_ID, FactFactory.create(fact_type="USER_IN_COUNTRY", value="Japan"))

        history = store.history(USER_ID, "USER_IN_COUNTRY")
        assert [f.value for f in history] == ["Japan"]

    def test_history_unknown_type_is_empty(self, store: InMemoryFactStore) -> None:
        """Should return an empty list for a type never stored."""
        store.insert(USER_ID, FactFactory.create())
        assert store.history(USER_ID, "HAS_PET") == []

    def test_scopes_are_isolated(self, store: InMemoryFactStore) -> None:
        """Should never show one scope's facts in another."""
        store.insert(USER_ID, FactFactory.create(scope_id=USER_ID))
        store.insert("usr_other", FactFactory.create(scope_id="usr_other", value="Unlimited"))

        assert [f.value for f in store.current(USER_ID)] == ["20GB Plan"]
        assert [f.value for f in store.current("usr_other")] == ["Unlimited"]
        assert store.scopes() == sorted([USER_ID, "usr_other"])

    def test_clear(self, store: InMemoryFactStore) -> None:
        """Should drop every fact of one scope only."""
        store.insert(USER_ID, FactFactory.create(fact_type="ACTIVE_PLAN"))
        store.insert(USER_ID, FactFactory.create(fact_type="USER_IN_COUNTRY", value="Japan"))
        store.insert("usr_other", FactFactory.create(scope_id="usr_other"))

        assert store.clear(USER_ID) == 2
        assert store.current(USER_ID) == []
        assert store.scopes() == ["usr_other"]
        assert store.clear("usr_unknown") == 0


class TestConcurrency:
    """Tests for concurrent writers."""

    def test_concurrent_inserts_keep_invariant(self, store: InMemoryFactStore) -> None:
        """Should keep one active fact per type under concurrent inserts."""

        def writer(offset: int) -> None:
            for i in range(20):
                store.insert(
                    USER_ID,
                    Fact(
                        id=uuid4(),
                        scope_id=USER_ID,
                        fact_type="ACTIVE_PLAN",
                        value=f"plan-{offset}-{i}",
                        valid_from=T0 + timedelta(seconds=offset * 100 + i),
                        derived_from=DerivedFrom.BUSINESS_EVENT,
                        confidence=1.0,
                    ),
                )

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(_active(store, "ACTIVE_PLAN")) == 1
        assert len(store.history(USER_ID)) == 80

    def test_scope_lock_is_reentrant(self, store: InMemoryFactStore) -> None:
        """Should allow inserts while the scope lock is held."""
        with store.scope(USER_ID):
            store.insert(USER_ID, FactFactory.create())

        assert len(store.current(USER_ID)) == 1
