"""Context backend API client.

Async client for a remote backend that extracts, commits and projects
facts on the engine's behalf.

Usage:
    from touchpoint.client import BackendClient

    async with BackendClient(base_url="http://localhost:8002") as client:
        await client.ingest_conversation(conversation)
        state = await client.get_current_state("usr_123")
"""

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from touchpoint.client.models import (
    BusinessEventIngestRequest,
    ContextRequest,
    ContextResponse,
    EpisodeIngestRequest,
    HistoryResponse,
    IngestResponse,
    source_channel,
)
from touchpoint.config.models.backend import BackendConfig
from touchpoint.errors import MalformedInput, UpstreamUnavailable
from touchpoint.facts.models import Fact
from touchpoint.ingestion.models import BusinessEvent, Conversation
from touchpoint.observability.logging import get_logger
from touchpoint.state.models import CompositeState

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class BackendClient:
    """Async client for the context backend.

    Every failure (transport error, HTTP error status, payload of the
    wrong shape) surfaces as UpstreamUnavailable. Retries belong to the
    caller.

    Attributes:
        base_url: Base URL of the backend
        tenant_id: Tenant sent with every request
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8002",
        tenant_id: str = "sg",
        timeout: float = 30.0,
        max_facts: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the backend
            tenant_id: Tenant for all requests
            timeout: Request timeout in seconds
            max_facts: Maximum facts the backend folds into the context
            transport: Custom httpx transport (mock transports in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.tenant_id = tenant_id
        self._max_facts = max_facts
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: BackendConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "BackendClient":
        return cls(
            base_url=config.base_url,
            tenant_id=config.tenant_id,
            timeout=config.timeout_seconds,
            max_facts=config.max_facts,
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        """Make an API request and return the decoded JSON body."""
        try:
            response = await self._client.request(
                method=method, url=path, json=json, params=params
            )
        except httpx.HTTPError as e:
            logger.warning("backend_unreachable", path=path, error=str(e))
            raise UpstreamUnavailable(f"Backend request to {path} failed: {e}", cause=e) from e

        if response.status_code >= 400:
            try:
                details = response.json()
            except ValueError:
                details = None
            message = response.text or response.reason_phrase
            if isinstance(details, dict):
                message = details.get("detail") or details.get("message") or message
            logger.warning("backend_error", path=path, status_code=response.status_code)
            raise UpstreamUnavailable(
                f"Backend returned {response.status_code} for {path}: {message}",
                status_code=response.status_code,
                details=details,
            )

        if response.status_code == 204:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                f"Backend returned a non-JSON body for {path}",
                status_code=response.status_code,
                cause=e,
            ) from e

    @staticmethod
    def _parse(model: type[ModelT], data: Any, path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise UpstreamUnavailable(
                f"Backend returned a malformed {model.__name__} for {path}",
                details=e.errors(),
                cause=e,
            ) from e

    # Ingestion
    async def ingest_business_event(self, event: BusinessEvent) -> IngestResponse:
        """Hand a business event to the backend for extraction and commit."""
        path = "/api/v1/memories/ingest"
        payload = BusinessEventIngestRequest(
            tenant_id=self.tenant_id,
            event_type=event.event_type,
            payload=event,
        )
        body = payload.model_dump(mode="json", exclude_none=True)
        data = await self._request("POST", path, json=body)
        return self._confirmed(self._parse(IngestResponse, data, path), path)

    async def ingest_conversation(
        self,
        conversation: Conversation,
        user_id: str | None = None,
    ) -> IngestResponse:
        """Hand a conversation transcript to the backend.

        Args:
            conversation: Conversation to ingest
            user_id: Scope to file it under (defaults to metadata.user_id)
        """
        unified_user_id = user_id or conversation.user_id
        if not unified_user_id:
            raise MalformedInput(
                "Conversation is missing metadata.user_id", field="metadata.user_id"
            )
        path = "/api/v1/graphiti/episodes"
        metadata = conversation.metadata
        conversation_id = metadata.conversation_id if metadata else None
        payload = EpisodeIngestRequest(
            tenant_id=self.tenant_id,
            unified_user_id=unified_user_id,
            source_channel=source_channel(metadata.channel if metadata else None),
            content=conversation.combined_text,
            episode_name=f"omnichannel_{conversation_id}" if conversation_id else None,
            reference_time=metadata.ended_at if metadata else None,
        )
        body = payload.model_dump(mode="json", exclude_none=True)
        data = await self._request("POST", path, json=body)
        return self._confirmed(self._parse(IngestResponse, data, path), path)

    # Reads
    async def get_current_state(self, user_id: str) -> CompositeState:
        """Get the backend's composite state of a user."""
        path = "/api/v1/graphiti/state/current"
        data = await self._request(
            "GET", path, params={"tenant_id": self.tenant_id, "user_id": user_id}
        )
        return self._parse(CompositeState, data, path)

    async def get_history(self, user_id: str, fact_type: str | None = None) -> list[Fact]:
        """Get the fact history of a user, optionally for one fact type."""
        path = f"/api/v1/graphiti/history/{fact_type or 'all'}"
        params = {"tenant_id": self.tenant_id, "user_id": user_id}
        if fact_type:
            params["relation_types"] = fact_type
        data = await self._request("GET", path, params=params)
        if isinstance(data, list):
            data = {"facts": data}
        history = self._parse(HistoryResponse, data, path)
        try:
            return [fact.to_fact(user_id) for fact in history.facts]
        except ValidationError as e:
            raise UpstreamUnavailable(
                f"Backend returned an invalid fact for {path}", details=e.errors(), cause=e
            ) from e

    async def build_context(self, user_id: str, query: str = "current user context") -> str:
        """Get the backend's formatted context of a user."""
        path = "/api/v1/graphiti/context"
        payload = ContextRequest(
            tenant_id=self.tenant_id,
            unified_user_id=user_id,
            query=query,
            max_facts=self._max_facts,
        )
        data = await self._request("POST", path, json=payload.model_dump(mode="json"))
        return self._parse(ContextResponse, data, path).formatted_context

    @staticmethod
    def _confirmed(response: IngestResponse, path: str) -> IngestResponse:
        if not response.success:
            raise UpstreamUnavailable(
                f"Backend did not confirm ingestion at {path}: "
                f"{response.message or 'no reason given'}",
                details=response.model_dump(),
            )
        return response
