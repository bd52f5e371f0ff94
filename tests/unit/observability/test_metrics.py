"""Tests for Prometheus metrics."""

from prometheus_client import REGISTRY

from touchpoint.facts.stores.inmemory import InMemoryFactStore
from touchpoint.observability.metrics import (
    ACTIVE_SCOPES,
    EXTRACTION_MATCHES,
    FACTS_INSERTED,
    PIPELINE_RUNS,
    PIPELINE_STEP_LATENCY,
)
from tests.factories import FactFactory


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestFactMetrics:
    """Tests for fact store metrics."""

    def test_insert_counts_by_source(self) -> None:
        """Should count committed facts by the input kind they came from."""
        labels = {"derived_from": "business_event"}
        before = _sample("touchpoint_facts_inserted_total", labels)

        InMemoryFactStore().insert("usr_metrics", FactFactory.create(scope_id="usr_metrics"))

        assert _sample("touchpoint_facts_inserted_total", labels) == before + 1

    def test_supersession_counted_by_predicate(self) -> None:
        """Should count superseded facts by predicate."""
        labels = {"predicate": "ACTIVE_PLAN"}
        before = _sample("touchpoint_facts_superseded_total", labels)
        store = InMemoryFactStore()
        first = FactFactory.create(scope_id="usr_sup")
        later = FactFactory.create(
            scope_id="usr_sup",
            value="Unlimited",
            valid_from=first.valid_from.replace(hour=first.valid_from.hour + 1),
        )

        store.insert_many("usr_sup", [first, later])

        assert _sample("touchpoint_facts_superseded_total", labels) == before + 1

    def test_active_scopes_gauge(self) -> None:
        """Should track scopes holding facts."""
        store = InMemoryFactStore()
        store.insert("usr_gauge", FactFactory.create(scope_id="usr_gauge"))
        assert _sample("touchpoint_active_scopes") == 1

        store.clear("usr_gauge")
        assert _sample("touchpoint_active_scopes") == 0


class TestPipelineMetrics:
    """Tests for pipeline metrics."""

    def test_metrics_exist(self) -> None:
        """Should define pipeline and extraction metrics."""
        assert PIPELINE_RUNS is not None
        assert PIPELINE_STEP_LATENCY is not None
        assert EXTRACTION_MATCHES is not None
        assert FACTS_INSERTED is not None
        assert ACTIVE_SCOPES is not None

    def test_step_latency_observe(self) -> None:
        """Should observe step latency with labels."""
        labels = {"mode": "local", "step": "test_step"}
        before = _sample("touchpoint_pipeline_step_latency_seconds_count", labels)

        PIPELINE_STEP_LATENCY.labels(**labels).observe(0.002)

        assert _sample("touchpoint_pipeline_step_latency_seconds_count", labels) == before + 1
