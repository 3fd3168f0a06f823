"""
Pydantic models shared by the capability host and the session driver.

User records, capability metadata, resource payloads, reverse sampling
messages and the persistent hub configuration.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserFields(BaseModel):
    """The caller-supplied part of a user record."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    address: str
    phone: str


class UserRecord(BaseModel):
    """A stored user. Immutable once appended.

    The id is assigned by the store as ``count + 1`` and never reused.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    address: str
    phone: str


class CapabilityKind(str, Enum):
    """The closed set of capability variants a host can advertise."""

    RESOURCE = "resource"
    RESOURCE_TEMPLATE = "resource_template"
    TOOL = "tool"
    PROMPT = "prompt"


class CapabilityAnnotations(BaseModel):
    """Descriptive hints attached to a capability."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    description: str = ""
    mutates: bool = False
    idempotent: bool = True
    world_open: bool = False


class ResourceContent(BaseModel):
    """One block of a resource read: the concrete URI and its payload."""

    uri: str
    text: str
    mime_type: str = "application/json"


class SampleMessage(BaseModel):
    """A single message in a reverse sampling request."""

    role: str = "user"
    text: str


class SampleRequest(BaseModel):
    """What the host asks its peer to generate."""

    messages: list[SampleMessage]
    max_tokens: int = 1024


class SampleResult(BaseModel):
    """The peer's answer to a reverse sampling request."""

    content_type: str
    text: Optional[str] = None
    model: str = "unknown"


class SamplingBackend(str, Enum):
    """Where the session driver gets generated text from."""

    OPERATOR = "operator"
    OLLAMA = "ollama"


class SamplingConfig(BaseModel):
    """Reverse request settings, shared by host and driver."""

    backend: SamplingBackend = SamplingBackend.OPERATOR
    timeout_seconds: float = 60.0
    max_tokens: int = 1024
    ollama_url: str = "http://localhost:11434"
    model: str = "llama3.2"


class HubConfig(BaseModel):
    """Persistent configuration for both processes."""

    home: Path = Path("~/.userhub")
    data_file: Optional[Path] = None
    log_level: str = "WARNING"
    server_command: Optional[str] = None
    server_args: list[str] = Field(default_factory=list)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)

    @property
    def users_path(self) -> Path:
        """Resolved location of the user record file."""
        if self.data_file is not None:
            return Path(self.data_file).expanduser()
        return Path(self.home).expanduser() / "data" / "users.json"
