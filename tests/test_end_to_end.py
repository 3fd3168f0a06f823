"""End-to-end sessions: a real client talking to a real host in memory."""

from __future__ import annotations

import asyncio
import json

import pytest
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session

from userhub.channel import make_sampling_callback
from userhub.client import UserHubClient
from userhub.errors import InvocationError
from userhub.models import HubConfig, SampleRequest, SamplingConfig
from userhub.sampling import Sampler
from userhub.server import UserHubServer

GENERATED = {
    "name": "Grace Hopper",
    "email": "grace@navy.mil",
    "address": "1 Harbor Rd",
    "phone": "555-0100",
}


class FencedSampler(Sampler):
    """Answers like a chat model that wraps its JSON in a code fence."""

    model_name = "fenced"

    def __init__(self) -> None:
        self.prompts: list[str] = []

    async def generate(self, request: SampleRequest) -> str:
        self.prompts.append(request.messages[0].text)
        return "```json\n" + json.dumps(GENERATED, indent=2) + "\n```"


@pytest.fixture
def sampler() -> FencedSampler:
    return FencedSampler()


@pytest.fixture
def hub(config: HubConfig) -> UserHubServer:
    return UserHubServer(config)


class TestSession:
    """Full request/response round trips over the MCP SDK."""

    @pytest.mark.asyncio
    async def test_discovery(self, hub: UserHubServer, sampler: FencedSampler) -> None:
        async with create_connected_server_and_client_session(
            hub.connect(), sampling_callback=make_sampling_callback(sampler)
        ) as session:
            catalog = await UserHubClient(session).discover()

        assert [t.name for t in catalog.tools] == ["create-user", "create-random-user"]
        assert [p.name for p in catalog.prompts] == ["generate-fake-user"]
        assert [str(r.uri) for r in catalog.resources] == ["users://all"]
        assert [t.uriTemplate for t in catalog.resource_templates] == ["users://{userId}/profile"]

    @pytest.mark.asyncio
    async def test_create_then_list(self, hub: UserHubServer, sampler: FencedSampler, ada: dict) -> None:
        async with create_connected_server_and_client_session(
            hub.connect(), sampling_callback=make_sampling_callback(sampler)
        ) as session:
            client = UserHubClient(session)
            assert await client.read_resource("users://all") == []
            text = await client.call_tool("create-user", ada)
            users = await client.read_resource("users://all")
            profile = await client.read_resource("users://1/profile")

        assert text == "User 1 created successfully"
        assert users == [{"id": 1, **ada}]
        assert profile == {"id": 1, **ada}

    @pytest.mark.asyncio
    async def test_random_user_nested_request(self, hub: UserHubServer, sampler: FencedSampler) -> None:
        """The tool call suspends while the host asks the client to generate."""
        async with create_connected_server_and_client_session(
            hub.connect(), sampling_callback=make_sampling_callback(sampler)
        ) as session:
            client = UserHubClient(session)
            text = await client.call_tool("create-random-user", {})
            users = await client.read_resource("users://all")

        assert text == "User 1 created successfully"
        assert users == [{"id": 1, **GENERATED}]
        assert sampler.prompts[0].startswith("Generate fake user data.")

    @pytest.mark.asyncio
    async def test_profile_miss(self, hub: UserHubServer, sampler: FencedSampler) -> None:
        async with create_connected_server_and_client_session(
            hub.connect(), sampling_callback=make_sampling_callback(sampler)
        ) as session:
            payload = await UserHubClient(session).read_resource("users://9/profile")
        assert payload == {"error": "User not found"}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, hub: UserHubServer, sampler: FencedSampler) -> None:
        async with create_connected_server_and_client_session(
            hub.connect(), sampling_callback=make_sampling_callback(sampler)
        ) as session:
            with pytest.raises(InvocationError):
                await UserHubClient(session).call_tool("delete-user", {})

    @pytest.mark.asyncio
    async def test_unknown_resource(self, hub: UserHubServer, sampler: FencedSampler) -> None:
        async with create_connected_server_and_client_session(
            hub.connect(), sampling_callback=make_sampling_callback(sampler)
        ) as session:
            with pytest.raises(McpError):
                await UserHubClient(session).read_resource("users://nobody")

    @pytest.mark.asyncio
    async def test_prompt(self, hub: UserHubServer, sampler: FencedSampler) -> None:
        async with create_connected_server_and_client_session(
            hub.connect(), sampling_callback=make_sampling_callback(sampler)
        ) as session:
            messages = await UserHubClient(session).get_prompt(
                "generate-fake-user", {"name": "Linus"}
            )
        assert len(messages) == 1
        assert messages[0][0] == "user"
        assert "Linus" in messages[0][1]


class SlowSampler(Sampler):
    """Answers only after *delay* seconds, counting how each call ended."""

    model_name = "slow"

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.finished = 0
        self.cancelled = 0

    async def generate(self, request: SampleRequest) -> str:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        self.finished += 1
        return json.dumps(GENERATED)


class TestSamplingDeadline:
    """A reverse request that outlives its deadline is abandoned on both ends."""

    @pytest.mark.asyncio
    async def test_expired_generation_is_cancelled(
        self, config: HubConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        config = config.model_copy(update={"sampling": SamplingConfig(timeout_seconds=0.2)})
        hub = UserHubServer(config)
        sampler = SlowSampler(delay=1.0)

        async with create_connected_server_and_client_session(
            hub.connect(),
            sampling_callback=make_sampling_callback(
                sampler, timeout=config.sampling.timeout_seconds
            ),
        ) as session:
            client = UserHubClient(session)
            text = await client.call_tool("create-random-user", {})
            await asyncio.sleep(1.0)
            users = await client.read_resource("users://all")

        assert text == "Failed to generate user data"
        assert users == []
        assert sampler.cancelled == 1
        assert sampler.finished == 0
        assert "unknown request ID" not in caplog.text
