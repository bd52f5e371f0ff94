"""Tests for BackendClient."""

import httpx
import pytest

from touchpoint.client import BackendClient
from touchpoint.config.models.backend import BackendConfig
from touchpoint.errors import MalformedInput, UpstreamUnavailable
from touchpoint.facts import DerivedFrom
from touchpoint.state import RoamingStatus
from tests.factories import USER_ID, BusinessEventFactory, ConversationFactory


class TestIngestion:
    """Tests for ingestion calls."""

    @pytest.mark.asyncio
    async def test_ingest_business_event(self, backend, transport) -> None:
        """Should post the event wrapped with tenant and type."""
        async with BackendClient(tenant_id="sg", transport=transport) as client:
            response = await client.ingest_business_event(BusinessEventFactory.roaming_top_up())

        assert response.memory_id == "mem_1"
        assert backend.paths == ["/api/v1/memories/ingest"]
        body = backend.body(0)
        assert body["tenant_id"] == "sg"
        assert body["event_type"] == "SIM_TOP_UP"
        assert body["payload"]["user_id"] == USER_ID
        assert body["payload"]["timestamp"] == "2026-01-14T10:42:00+08:00"

    @pytest.mark.asyncio
    async def test_ingest_conversation(self, backend, transport) -> None:
        """Should post the transcript as an episode for the user."""
        conversation = ConversationFactory.mochi(personal_transcript="I love gaming")
        async with BackendClient(transport=transport) as client:
            response = await client.ingest_conversation(conversation)

        assert response.episode_id == "ep_1"
        body = backend.body(0)
        assert body["unified_user_id"] == USER_ID
        assert body["source_channel"] == "mobile_app"
        assert body["content"] == conversation.combined_text
        assert body["episode_name"] == "omnichannel_conv_test_001"

    @pytest.mark.asyncio
    async def test_conversation_without_metadata(self, backend, transport) -> None:
        """Should refuse a conversation that names no user before calling out."""
        async with BackendClient(transport=transport) as client:
            with pytest.raises(MalformedInput):
                await client.ingest_conversation(ConversationFactory.mochi(user_id=None))

        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_conversation_filed_under_given_user(self, backend, transport) -> None:
        """Should use the given user when the conversation has no metadata."""
        conversation = ConversationFactory.mochi(user_id=None)
        async with BackendClient(transport=transport) as client:
            await client.ingest_conversation(conversation, USER_ID)

        body = backend.body(0)
        assert body["unified_user_id"] == USER_ID
        assert body["source_channel"] == "customer_care"
        assert "reference_time" not in body

    @pytest.mark.asyncio
    async def test_unconfirmed_ingestion(self, backend, transport) -> None:
        """Should treat success=false as an upstream failure."""
        backend.overrides["/api/v1/memories/ingest"] = lambda request: httpx.Response(
            200, json={"success": False, "message": "queue full"}
        )
        async with BackendClient(transport=transport) as client:
            with pytest.raises(UpstreamUnavailable, match="queue full"):
                await client.ingest_business_event(BusinessEventFactory.create())


class TestReads:
    """Tests for state, history and context reads."""

    @pytest.mark.asyncio
    async def test_get_current_state(self, backend, transport) -> None:
        """Should parse the backend state into a CompositeState."""
        async with BackendClient(transport=transport) as client:
            state = await client.get_current_state(USER_ID)

        assert state.current_country == "Japan"
        assert state.roaming_status == RoamingStatus.ENABLED
        assert state.personal_context is None
        request = backend.requests[0]
        assert request.method == "GET"
        assert request.url.params["user_id"] == USER_ID
        assert request.url.params["tenant_id"] == "sg"

    @pytest.mark.asyncio
    async def test_get_history(self, backend, transport) -> None:
        """Should map backend sources onto fact provenance."""
        async with BackendClient(transport=transport) as client:
            facts = await client.get_history(USER_ID)

        assert backend.paths == ["/api/v1/graphiti/history/all"]
        assert [f.value for f in facts] == ["Japan", "Singapore"]
        assert facts[0].scope_id == USER_ID
        assert facts[0].derived_from == DerivedFrom.BUSINESS_EVENT
        assert facts[1].derived_from == DerivedFrom.CONVERSATION
        assert facts[0].is_active
        assert not facts[1].is_active

    @pytest.mark.asyncio
    async def test_get_history_by_type(self, backend, transport) -> None:
        """Should request a single fact type when asked."""
        backend.overrides["/api/v1/graphiti/history/USER_IN_COUNTRY"] = (
            lambda request: httpx.Response(200, json={"facts": []})
        )
        async with BackendClient(transport=transport) as client:
            facts = await client.get_history(USER_ID, "USER_IN_COUNTRY")

        assert facts == []
        assert backend.requests[0].url.params["relation_types"] == "USER_IN_COUNTRY"

    @pytest.mark.asyncio
    async def test_build_context(self, backend, transport) -> None:
        """Should return the backend's formatted context."""
        config = BackendConfig(tenant_id="my", max_facts=5)
        async with BackendClient.from_config(config, transport=transport) as client:
            text = await client.build_context(USER_ID)

        assert text == "User is currently in Japan with roaming enabled."
        body = backend.body(0)
        assert body["tenant_id"] == "my"
        assert body["max_facts"] == 5


class TestFailures:
    """Tests for upstream failures."""

    @pytest.mark.asyncio
    async def test_error_status(self, backend, transport) -> None:
        """Should raise UpstreamUnavailable with the status and detail."""
        backend.overrides["/api/v1/graphiti/state/current"] = lambda request: httpx.Response(
            503, json={"detail": "graph database unavailable"}
        )
        async with BackendClient(transport=transport) as client:
            with pytest.raises(UpstreamUnavailable) as exc_info:
                await client.get_current_state(USER_ID)

        assert exc_info.value.status_code == 503
        assert "graph database unavailable" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        """Should wrap connection failures."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with BackendClient(transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(UpstreamUnavailable) as exc_info:
                await client.get_current_state(USER_ID)

        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_non_json_body(self, backend, transport) -> None:
        """Should reject a body that is not JSON."""
        backend.overrides["/api/v1/graphiti/context"] = lambda request: httpx.Response(
            200, text="<html>oops</html>"
        )
        async with BackendClient(transport=transport) as client:
            with pytest.raises(UpstreamUnavailable):
                await client.build_context(USER_ID)

    @pytest.mark.asyncio
    async def test_malformed_state(self, backend, transport) -> None:
        """Should reject a state payload of the wrong shape."""
        backend.overrides["/api/v1/graphiti/state/current"] = lambda request: httpx.Response(
            200, json={"user_id": USER_ID}
        )
        async with BackendClient(transport=transport) as client:
            with pytest.raises(UpstreamUnavailable, match="CompositeState"):
                await client.get_current_state(USER_ID)
