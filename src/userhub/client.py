"""
UserHub session driver: the client side of a protocol session.

Spawns the capability host over stdio, discovers what it offers, and
wraps the forward requests the interactive loop needs. Reverse sampling
requests from the host are answered by the configured sampler.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from mcp import ClientSession, StdioServerParameters, types
from mcp.client.stdio import stdio_client
from pydantic import AnyUrl

from .channel import make_sampling_callback, text_of
from .errors import DiscoveryError, InvocationError
from .models import HubConfig
from .sampling import Sampler

logger = logging.getLogger("userhub.client")


@dataclass
class Catalog:
    """Everything the host advertised at discovery time."""

    tools: list[types.Tool] = field(default_factory=list)
    prompts: list[types.Prompt] = field(default_factory=list)
    resources: list[types.Resource] = field(default_factory=list)
    resource_templates: list[types.ResourceTemplate] = field(default_factory=list)

    def tool(self, name: str) -> Optional[types.Tool]:
        return next((t for t in self.tools if t.name == name), None)

    def prompt(self, name: str) -> Optional[types.Prompt]:
        return next((p for p in self.prompts if p.name == name), None)

    def resource_uri(self, value: str) -> Optional[str]:
        """The advertised URI or URI template equal to *value*, if any."""
        for resource in self.resources:
            if str(resource.uri) == value:
                return str(resource.uri)
        for template in self.resource_templates:
            if template.uriTemplate == value:
                return template.uriTemplate
        return None


def tool_title(tool: types.Tool) -> str:
    """Display name of a tool: its annotated title, else its name."""
    if tool.annotations is not None and tool.annotations.title:
        return tool.annotations.title
    return tool.name


class UserHubClient:
    """Forward requests against one connected ``ClientSession``."""

    def __init__(self, session: ClientSession) -> None:
        self.session = session
        self.catalog = Catalog()

    async def discover(self) -> Catalog:
        """List tools, prompts, resources and templates concurrently.

        All four must succeed; a partial catalog is never returned. Every
        request is awaited to completion before a failure is raised.

        Raises:
            DiscoveryError: If any of the four requests fails.
        """
        results = await asyncio.gather(
            self.session.list_tools(),
            self.session.list_prompts(),
            self.session.list_resources(),
            self.session.list_resource_templates(),
            return_exceptions=True,
        )
        for outcome in results:
            if isinstance(outcome, BaseException):
                raise DiscoveryError(f"Capability discovery failed: {outcome}") from outcome
        tools, prompts, resources, templates = results

        self.catalog = Catalog(
            tools=list(tools.tools),
            prompts=list(prompts.prompts),
            resources=list(resources.resources),
            resource_templates=list(templates.resourceTemplates),
        )
        logger.info(
            "Discovered %d tool(s), %d prompt(s), %d resource(s), %d template(s)",
            len(self.catalog.tools),
            len(self.catalog.prompts),
            len(self.catalog.resources),
            len(self.catalog.resource_templates),
        )
        return self.catalog

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        """Invoke a tool and return the text of its first content block.

        Raises:
            InvocationError: If the host flags the result as an error.
        """
        result = await self.session.call_tool(name, arguments)
        text = text_of(result.content)
        if result.isError:
            raise InvocationError(text or f"{name} failed")
        return text or ""

    async def read_resource(self, uri: str) -> Any:
        """Read a concrete URI and parse its first content block as JSON.

        Raises:
            InvocationError: If the host returned no text or invalid JSON.
        """
        result = await self.session.read_resource(AnyUrl(uri))
        if not result.contents or getattr(result.contents[0], "text", None) is None:
            raise InvocationError(f"{uri} returned no text content")
        try:
            return json.loads(result.contents[0].text)
        except json.JSONDecodeError as exc:
            raise InvocationError(f"{uri} returned invalid JSON: {exc}") from exc

    async def get_prompt(self, name: str, arguments: dict[str, str]) -> list[tuple[str, str]]:
        """Fetch a prompt and return its messages as (role, text) pairs."""
        result = await self.session.get_prompt(name, arguments)
        return [(m.role, text_of(m.content) or "") for m in result.messages]


def server_parameters(config: HubConfig) -> StdioServerParameters:
    """How to launch the capability host for this configuration."""
    command = config.server_command or sys.executable
    args = config.server_args or ["-m", "userhub.server"]
    return StdioServerParameters(
        command=command,
        args=args,
        env={"USERHUB_HOME": str(config.home)},
    )


@asynccontextmanager
async def connect(config: HubConfig, sampler: Sampler) -> AsyncIterator[UserHubClient]:
    """Spawn the host, open an initialized session, and yield a client."""
    params = server_parameters(config)
    logger.debug("Launching %s %s", params.command, " ".join(params.args))
    async with stdio_client(params) as (read_stream, write_stream):
        async with ClientSession(
            read_stream,
            write_stream,
            sampling_callback=make_sampling_callback(
                sampler, timeout=config.sampling.timeout_seconds
            ),
        ) as session:
            await session.initialize()
            yield UserHubClient(session)
