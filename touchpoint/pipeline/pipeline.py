"""Local context pipeline.

Runs one submission end to end against a local fact store:

    Idle -> Ingesting -> Extracting -> Resolving -> ContextBuilding -> Complete

Any failure moves the tracker to Error and is re-raised. The whole run
for a scope holds the store's scope lock, so no other insert for that
scope can interleave; all facts of a run are committed in one
``insert_many`` call.
"""

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from touchpoint.config import get_settings
from touchpoint.config.settings import Settings
from touchpoint.context.serializer import ContextSerializer
from touchpoint.errors import MalformedInput
from touchpoint.extraction.extractor import EntityExtractor
from touchpoint.extraction.models import ExtractionResult, SentimentSignal
from touchpoint.facts.enums import DerivedFrom
from touchpoint.facts.models import Fact
from touchpoint.facts.store import FactStore
from touchpoint.graph.transformer import GraphTransformer
from touchpoint.ingestion.codec import parse_business_event, parse_conversation
from touchpoint.ingestion.models import BusinessEvent, Conversation
from touchpoint.observability.logging import get_logger
from touchpoint.observability.metrics import PIPELINE_RUNS, PIPELINE_STEP_LATENCY
from touchpoint.pipeline.models import PipelineResult, PipelineStepTiming, Submission
from touchpoint.pipeline.phases import PipelinePhase, PipelineTracker
from touchpoint.state.projector import StateProjector

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


@contextmanager
def timed_step(
    step: str,
    timings: list[PipelineStepTiming],
    clock: Clock,
    mode: str,
) -> Iterator[None]:
    """Record a PipelineStepTiming for the enclosed block."""
    started_at = clock()
    start_time = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start_time
        PIPELINE_STEP_LATENCY.labels(mode=mode, step=step).observe(elapsed)
        timings.append(
            PipelineStepTiming(
                step=step,
                started_at=started_at,
                ended_at=max(clock(), started_at),
                duration_ms=elapsed * 1000,
            )
        )


def ingest(
    submission: Submission,
) -> tuple[str, BusinessEvent | None, Conversation | None]:
    """Validate a submission and resolve the scope it belongs to.

    Raises:
        MalformedInput: If the submission carries no input, an input misses
            a required field, or the inputs name different users
    """
    event = (
        parse_business_event(submission.business_event)
        if submission.business_event is not None
        else None
    )
    conversation = (
        parse_conversation(submission.conversation)
        if submission.conversation is not None
        else None
    )
    if event is None and conversation is None:
        raise MalformedInput("Submission carries neither a business event nor a conversation")

    named = (event.user_id if event else None, conversation.user_id if conversation else None)
    user_ids = {user_id for user_id in named if user_id}
    if len(user_ids) > 1:
        raise MalformedInput(
            f"Submission inputs belong to different users: {sorted(user_ids)}",
            field="user_id",
        )
    if submission.scope_id and user_ids and submission.scope_id not in user_ids:
        raise MalformedInput(
            f"Submission scope {submission.scope_id!r} does not match user {user_ids.pop()!r}",
            field="scope_id",
        )

    scope_id = submission.scope_id or next(iter(user_ids), None)
    if not scope_id:
        raise MalformedInput(
            "Conversation is missing metadata.user_id", field="metadata.user_id"
        )
    return scope_id, event, conversation


class ContextPipeline:
    """Synchronous pipeline over a local fact store.

    Usage:
        store = InMemoryFactStore()
        pipeline = ContextPipeline(store)
        result = pipeline.submit(Submission(conversation=conversation))
    """

    mode = "local"

    def __init__(
        self,
        store: FactStore,
        settings: Settings | None = None,
        *,
        extractor: EntityExtractor | None = None,
        projector: StateProjector | None = None,
        transformer: GraphTransformer | None = None,
        serializer: ContextSerializer | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize pipeline.

        Args:
            store: Fact store owning every scope's fact log
            settings: Engine settings (defaults when omitted)
            extractor: Entity extractor override
            projector: State projector override
            transformer: Graph transformer override
            serializer: Context serializer override
            clock: Source of "now" for conversations without a timestamp
        """
        settings = settings or get_settings()
        self._store = store
        self._settings = settings
        self._extractor = extractor or EntityExtractor(settings.extraction)
        self._projector = projector or StateProjector(store, settings.projection)
        self._transformer = transformer or GraphTransformer(settings.graph)
        self._serializer = serializer or ContextSerializer(settings.context)
        self._clock = clock

    def submit(
        self,
        submission: Submission,
        tracker: PipelineTracker | None = None,
    ) -> PipelineResult:
        """Run one submission through every phase.

        Raises:
            MalformedInput: If an input is missing required fields
            StoreInvariantViolation: If committing would break supersession
        """
        tracker = tracker or PipelineTracker()
        timings: list[PipelineStepTiming] = []
        tracker.begin()

        try:
            with timed_step("ingesting", timings, self._clock, self.mode):
                scope_id, event, conversation = ingest(submission)
            logger.info(
                "pipeline_started",
                scope_id=scope_id,
                has_business_event=event is not None,
                has_conversation=conversation is not None,
            )

            with self._store.scope(scope_id):
                result = self._run(scope_id, event, conversation, submission, tracker, timings)

            tracker.advance(PipelinePhase.COMPLETE)

        except Exception as e:
            tracker.fail(e)
            PIPELINE_RUNS.labels(mode=self.mode, outcome="error").inc()
            logger.error(
                "pipeline_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        PIPELINE_RUNS.labels(mode=self.mode, outcome="complete").inc()
        logger.info(
            "pipeline_completed",
            scope_id=scope_id,
            committed=len(result.committed),
            total_time_ms=sum(t.duration_ms for t in timings),
        )
        return result.model_copy(update={"phase": tracker.phase})

    def _run(
        self,
        scope_id: str,
        event: BusinessEvent | None,
        conversation: Conversation | None,
        submission: Submission,
        tracker: PipelineTracker,
        timings: list[PipelineStepTiming],
    ) -> PipelineResult:
        tracker.advance(PipelinePhase.EXTRACTING)
        with timed_step("extracting", timings, self._clock, self.mode):
            results = self._extract(scope_id, event, conversation, submission)

        tracker.advance(PipelinePhase.RESOLVING)
        with timed_step("resolving", timings, self._clock, self.mode):
            candidates = [fact for result in results for fact in result.facts]
            to_commit = self._filter_unchanged(scope_id, candidates)
            committed = self._store.insert_many(scope_id, to_commit) if to_commit else []
            state = self._projector.project(scope_id)

        tracker.advance(PipelinePhase.CONTEXT_BUILDING)
        with timed_step("context_building", timings, self._clock, self.mode):
            sentiment = _sentiment(results)
            history = self._store.history(scope_id)
            graph = self._transformer.to_graph(state, history)
            formatted_context = self._serializer.serialize(state, sentiment)

        return PipelineResult(
            scope_id=scope_id,
            phase=tracker.phase,
            state=state,
            facts=history,
            committed=committed,
            graph=graph,
            formatted_context=formatted_context,
            sentiment=sentiment,
            episodes=[episode for result in results for episode in result.episodes],
            timings=timings,
        )

    def _extract(
        self,
        scope_id: str,
        event: BusinessEvent | None,
        conversation: Conversation | None,
        submission: Submission,
    ) -> list[ExtractionResult]:
        results = []
        if event is not None:
            results.append(
                self._extractor.extract(
                    event, scope_id=scope_id, observed_at=submission.observed_at
                )
            )
        if conversation is not None:
            observed_at = submission.observed_at
            ended_at = conversation.metadata.ended_at if conversation.metadata else None
            if observed_at is None and ended_at is None:
                observed_at = self._clock()
            results.append(
                self._extractor.extract(
                    conversation, scope_id=scope_id, observed_at=observed_at
                )
            )
        return results

    def _filter_unchanged(self, scope_id: str, candidates: list[Fact]) -> list[Fact]:
        """Drop conversation facts that repeat the active value of their type."""
        if not self._settings.pipeline.skip_unchanged_facts:
            return candidates

        active = {fact.fact_type: fact for fact in self._store.current(scope_id)}
        kept = []
        for fact in candidates:
            current = active.get(fact.fact_type)
            if (
                fact.derived_from == DerivedFrom.CONVERSATION
                and current is not None
                and current.value == fact.value
            ):
                logger.debug("fact_unchanged_skipped", scope_id=scope_id, fact_type=fact.fact_type)
                continue
            kept.append(fact)
        return kept


def _sentiment(results: list[ExtractionResult]) -> SentimentSignal | None:
    return next((r.sentiment for r in results if r.sentiment is not None), None)
