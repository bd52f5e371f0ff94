"""Prometheus metrics for the context engine."""

from prometheus_client import Counter, Gauge, Histogram

# Fact store metrics
FACTS_INSERTED = Counter(
    "touchpoint_facts_inserted_total",
    "Total number of facts committed to the store",
    labelnames=["derived_from"],
)

FACTS_SUPERSEDED = Counter(
    "touchpoint_facts_superseded_total",
    "Total number of facts closed by a newer fact of the same type",
    labelnames=["predicate"],
)

INVARIANT_VIOLATIONS = Counter(
    "touchpoint_invariant_violations_total",
    "Inserts rejected because a type would have two active facts",
)

ACTIVE_SCOPES = Gauge(
    "touchpoint_active_scopes",
    "Number of scopes holding at least one fact",
)

# Extraction metrics
EXTRACTION_MATCHES = Counter(
    "touchpoint_extraction_matches_total",
    "Number of conversation categories that produced a match",
    labelnames=["category"],
)

# Pipeline metrics
PIPELINE_RUNS = Counter(
    "touchpoint_pipeline_runs_total",
    "Total pipeline submissions by outcome",
    labelnames=["mode", "outcome"],
)

PIPELINE_STEP_LATENCY = Histogram(
    "touchpoint_pipeline_step_latency_seconds",
    "Latency of individual pipeline steps",
    labelnames=["mode", "step"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
)
