"""Bootstrap module for quick engine setup.

Builds the pipeline selected by configuration and sets up logging.

Example usage:

    from touchpoint.bootstrap import bootstrap

    pipeline = bootstrap()
    result = pipeline.submit(Submission(conversation=conversation))
"""

from structlog.contextvars import bind_contextvars

from touchpoint.client.client import BackendClient
from touchpoint.config import get_settings
from touchpoint.config.settings import Settings
from touchpoint.facts.store import FactStore
from touchpoint.facts.stores.inmemory import InMemoryFactStore
from touchpoint.observability.logging import get_logger, setup_logging
from touchpoint.pipeline.live import LiveContextPipeline
from touchpoint.pipeline.pipeline import ContextPipeline

logger = get_logger(__name__)


def bootstrap(
    settings: Settings | None = None,
    store: FactStore | None = None,
    client: BackendClient | None = None,
) -> ContextPipeline | LiveContextPipeline:
    """Configure logging and build the configured pipeline.

    Args:
        settings: Settings to use (loaded from config files when omitted)
        store: Fact store for local mode (fresh in-memory store when omitted)
        client: Backend client for live mode (built from settings when omitted)

    Returns:
        ContextPipeline in local mode, LiveContextPipeline in live mode
    """
    settings = settings or get_settings()
    setup_logging(
        level="DEBUG" if settings.debug else settings.log_level,
        format=settings.observability.log_format,
        redact_pii=settings.observability.redact_pii,
    )
    bind_contextvars(app=settings.app_name)

    if settings.pipeline.mode == "live":
        client = client or BackendClient.from_config(settings.backend)
        logger.info(
            "bootstrap_complete", mode="live", base_url=client.base_url, debug=settings.debug
        )
        return LiveContextPipeline(client, settings)

    logger.info("bootstrap_complete", mode="local", debug=settings.debug)
    return ContextPipeline(store or InMemoryFactStore(), settings)
