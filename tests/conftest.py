"""Shared test fixtures for userhub."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from userhub.channel import ReverseChannel
from userhub.models import HubConfig, SampleRequest, SampleResult
from userhub.registry import CapabilityRegistry
from userhub.store import UserStore


class ScriptedChannel(ReverseChannel):
    """Reverse channel that answers every request with a canned result."""

    def __init__(self) -> None:
        self.result: Optional[SampleResult] = None
        self.error: Optional[Exception] = None
        self.requests: list[SampleRequest] = []

    def reply(self, text: str, content_type: str = "text") -> None:
        self.result = SampleResult(content_type=content_type, text=text, model="scripted")

    async def request_sample(self, request: SampleRequest) -> SampleResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        assert self.result is not None, "no scripted reply set"
        return self.result


@pytest.fixture
def hub_home(tmp_path: Path) -> Path:
    """Provide an empty hub home directory."""
    home = tmp_path / ".userhub"
    home.mkdir()
    return home


@pytest.fixture
def config(hub_home: Path) -> HubConfig:
    """Default configuration rooted at the temporary home."""
    return HubConfig(home=hub_home)


@pytest.fixture
def store(config: HubConfig) -> UserStore:
    """Empty user store inside the temporary home."""
    return UserStore(config.users_path)


@pytest.fixture
def channel() -> ScriptedChannel:
    """Reverse channel with no reply set yet."""
    return ScriptedChannel()


@pytest.fixture
def registry() -> CapabilityRegistry:
    return CapabilityRegistry()


@pytest.fixture
def ada() -> dict[str, str]:
    """Field values for a typical user."""
    return {"name": "Ada", "email": "a@x.com", "address": "1 Main", "phone": "555"}
