"""Live context pipeline.

Defers extraction, commit and projection to the remote backend. The run
awaits the upstream ingestion calls (plus an optional settle delay)
before reading state back; that wait is its only suspension point. The
state it returns is eventually consistent with the backend. No local
store is touched; only the graph is built locally.
"""

import asyncio

from touchpoint.client.client import BackendClient
from touchpoint.config import get_settings
from touchpoint.config.settings import Settings
from touchpoint.extraction.models import EpisodeSignal
from touchpoint.extraction.sentiment import analyze_sentiment
from touchpoint.graph.transformer import GraphTransformer
from touchpoint.observability.logging import get_logger
from touchpoint.observability.metrics import PIPELINE_RUNS
from touchpoint.pipeline.models import PipelineResult, PipelineStepTiming, Submission
from touchpoint.pipeline.phases import PipelinePhase, PipelineTracker
from touchpoint.pipeline.pipeline import Clock, ingest, timed_step, utc_now

logger = get_logger(__name__)


class LiveContextPipeline:
    """Async pipeline backed by the remote context backend."""

    mode = "live"

    def __init__(
        self,
        client: BackendClient,
        settings: Settings | None = None,
        *,
        transformer: GraphTransformer | None = None,
        clock: Clock = utc_now,
    ):
        settings = settings or get_settings()
        self._client = client
        self._settle_seconds = settings.backend.settle_seconds
        self._transformer = transformer or GraphTransformer(settings.graph)
        self._clock = clock

    async def submit(
        self,
        submission: Submission,
        tracker: PipelineTracker | None = None,
    ) -> PipelineResult:
        """Ingest a submission upstream and read back state and context.

        Raises:
            MalformedInput: If an input is missing required fields
            UpstreamUnavailable: If the backend cannot be reached or
                answers with an error or a malformed payload
        """
        tracker = tracker or PipelineTracker()
        timings: list[PipelineStepTiming] = []
        tracker.begin()

        try:
            with timed_step("ingesting", timings, self._clock, self.mode):
                scope_id, event, conversation = ingest(submission)

            tracker.advance(PipelinePhase.EXTRACTING)
            with timed_step("extracting", timings, self._clock, self.mode):
                if event is not None:
                    await self._client.ingest_business_event(event)
                if conversation is not None and conversation.combined_text.strip():
                    await self._client.ingest_conversation(conversation, scope_id)
                if self._settle_seconds:
                    await asyncio.sleep(self._settle_seconds)

            tracker.advance(PipelinePhase.RESOLVING)
            with timed_step("resolving", timings, self._clock, self.mode):
                state = await self._client.get_current_state(scope_id)

            tracker.advance(PipelinePhase.CONTEXT_BUILDING)
            with timed_step("context_building", timings, self._clock, self.mode):
                history = await self._client.get_history(scope_id)
                formatted_context = await self._client.build_context(scope_id)
                graph = self._transformer.to_graph(state, history)

            tracker.advance(PipelinePhase.COMPLETE)

        except Exception as e:
            tracker.fail(e)
            PIPELINE_RUNS.labels(mode=self.mode, outcome="error").inc()
            logger.error("live_pipeline_failed", error=str(e), error_type=type(e).__name__)
            raise

        sentiment = None
        episodes = []
        if conversation is not None and conversation.combined_text.strip():
            sentiment = analyze_sentiment(conversation.combined_text)
            episodes.append(
                EpisodeSignal(
                    type="support_episode",
                    value="User interaction recorded",
                    source=(conversation.metadata.channel if conversation.metadata else None)
                    or "support_chat",
                    importance=0.8,
                    timestamp=self._clock(),
                )
            )

        PIPELINE_RUNS.labels(mode=self.mode, outcome="complete").inc()
        logger.info("live_pipeline_completed", scope_id=scope_id, fact_count=len(history))

        return PipelineResult(
            scope_id=scope_id,
            phase=tracker.phase,
            state=state,
            facts=history,
            graph=graph,
            formatted_context=formatted_context,
            sentiment=sentiment,
            episodes=episodes,
            timings=timings,
        )
