"""
UserHub capability host: the user directory over MCP stdio.

One :class:`UserHubServer` is one protocol session. It owns its
``mcp`` low-level server, its capability registry, its record store and
its reverse channel; nothing is kept at module level, so several
sessions can run side by side (as they do under test).

Lifecycle::

    IDLE --connect()--> CONNECTED --serve()--> SERVING --(stream closed)--> CLOSED

Invocation:
    userhub serve                    # CLI entry point
    python -m userhub.server         # what the driver spawns
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Optional

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server

from . import __version__
from .capabilities import UserCapabilities
from .channel import ReverseChannel, SessionReverseChannel
from .config import configure_logging, load_config
from .errors import ToolExecutionError
from .models import CapabilityKind, HubConfig
from .registry import CapabilityRegistry
from .store import UserStore

logger = logging.getLogger("userhub.server")

SERVER_NAME = "userhub"


class SessionState(str, Enum):
    """Where a server session is in its lifecycle."""

    IDLE = "idle"
    CONNECTED = "connected"
    SERVING = "serving"
    CLOSED = "closed"


class UserHubServer:
    """Server side of one UserHub protocol session.

    Args:
        config: Hub configuration (store location, sampling limits).
        store: Override the record store, e.g. in tests.
        channel: Override the reverse channel. Defaults to one that
            speaks over this session's MCP connection.
    """

    def __init__(
        self,
        config: Optional[HubConfig] = None,
        store: Optional[UserStore] = None,
        channel: Optional[ReverseChannel] = None,
    ) -> None:
        self.config = config or HubConfig()
        self.store = store or UserStore(self.config.users_path)
        self.server: Server = Server(SERVER_NAME, version=__version__)
        self.channel = channel or SessionReverseChannel(
            lambda: self.server.request_context.session,
            timeout=self.config.sampling.timeout_seconds,
        )
        self.registry = CapabilityRegistry()
        self.state = SessionState.IDLE

    # ═══════════════════════════════════════════════════════════
    # Lifecycle
    # ═══════════════════════════════════════════════════════════

    def connect(self) -> Server:
        """Register capabilities and bind request handlers, once.

        Returns:
            The underlying ``mcp`` server, ready to run.
        """
        if self.state != SessionState.IDLE:
            return self.server

        UserCapabilities(
            self.store,
            self.channel,
            max_tokens=self.config.sampling.max_tokens,
        ).register(self.registry)

        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self.call_tool)
        self.server.list_resources()(self.list_resources)
        self.server.list_resource_templates()(self.list_resource_templates)
        self.server.read_resource()(self.read_resource)
        self.server.list_prompts()(self.list_prompts)
        self.server.get_prompt()(self.get_prompt)

        self.state = SessionState.CONNECTED
        logger.info("Session connected; store at %s", self.store.path)
        return self.server

    async def serve(self, read_stream: Any, write_stream: Any) -> None:
        """Answer requests until the peer closes the stream."""
        server = self.connect()
        self.state = SessionState.SERVING
        try:
            await server.run(read_stream, write_stream, server.create_initialization_options())
        finally:
            self.state = SessionState.CLOSED
            logger.info("Session closed")

    async def run_stdio(self) -> None:
        """Serve one session over this process's stdin/stdout."""
        async with stdio_server() as (read_stream, write_stream):
            await self.serve(read_stream, write_stream)

    # ═══════════════════════════════════════════════════════════
    # Discovery
    # ═══════════════════════════════════════════════════════════

    async def list_tools(self) -> list[types.Tool]:
        """Advertise every registered tool with its input schema."""
        return [
            types.Tool(
                name=d.name,
                description=d.description,
                inputSchema=d.input_schema(),
                annotations=types.ToolAnnotations(
                    title=d.annotations.title,
                    readOnlyHint=not d.annotations.mutates,
                    destructiveHint=False,
                    idempotentHint=d.annotations.idempotent,
                    openWorldHint=d.annotations.world_open,
                ),
            )
            for d in self.registry.list(CapabilityKind.TOOL)
        ]

    async def list_resources(self) -> list[types.Resource]:
        return [
            types.Resource(
                uri=d.uri,
                name=d.name,
                description=d.description,
                mimeType=d.mime_type,
            )
            for d in self.registry.list(CapabilityKind.RESOURCE)
        ]

    async def list_resource_templates(self) -> list[types.ResourceTemplate]:
        return [
            types.ResourceTemplate(
                uriTemplate=d.uri,
                name=d.name,
                description=d.description,
                mimeType=d.mime_type,
            )
            for d in self.registry.list(CapabilityKind.RESOURCE_TEMPLATE)
        ]

    async def list_prompts(self) -> list[types.Prompt]:
        return [
            types.Prompt(
                name=d.name,
                description=d.description,
                arguments=[
                    types.PromptArgument(name=arg, required=arg in d.required_arguments)
                    for arg in d.schema
                ],
            )
            for d in self.registry.list(CapabilityKind.PROMPT)
        ]

    # ═══════════════════════════════════════════════════════════
    # Invocation
    # ═══════════════════════════════════════════════════════════

    async def call_tool(self, name: str, arguments: Optional[dict]) -> list[types.TextContent]:
        """Run a tool.

        Raises:
            NotFoundError: Unknown tool name.
            ArgumentMissingError: A required argument is absent.
            ToolExecutionError: The handler raised; reported by the SDK
                as an ``isError`` result.
        """
        descriptor = self.registry.resolve(CapabilityKind.TOOL, name)
        result = await self.registry.invoke(descriptor, arguments)
        if not result.ok:
            raise ToolExecutionError(f"{name} failed: {result.error}")
        return result.content

    async def read_resource(self, uri: Any) -> list[ReadResourceContents]:
        """Read a concrete resource URI.

        Raises:
            NotFoundError: No resource or template matches the URI.
        """
        uri = str(uri)
        descriptor, params = self.registry.match_resource(uri)
        result = await self.registry.invoke(descriptor, params, uri=uri)
        if not result.ok:
            return [
                ReadResourceContents(
                    content=json.dumps({"error": result.error}),
                    mime_type=descriptor.mime_type,
                )
            ]
        return [
            ReadResourceContents(content=c.text, mime_type=c.mime_type)
            for c in result.content
        ]

    async def get_prompt(self, name: str, arguments: Optional[dict]) -> types.GetPromptResult:
        """Render a prompt template.

        Raises:
            NotFoundError: Unknown prompt name.
            ArgumentMissingError: A required argument is absent.
            ToolExecutionError: The prompt handler raised.
        """
        descriptor = self.registry.resolve(CapabilityKind.PROMPT, name)
        result = await self.registry.invoke(descriptor, arguments)
        if not result.ok:
            raise ToolExecutionError(f"{name} failed: {result.error}")
        return types.GetPromptResult(description=descriptor.description, messages=result.content)


# ═══════════════════════════════════════════════════════════
# Entry Point
# ═══════════════════════════════════════════════════════════


def main(home: Optional[str] = None) -> None:
    """Run the capability host on stdio transport."""
    config = load_config(home)
    configure_logging(config)
    asyncio.run(UserHubServer(config).run_stdio())


if __name__ == "__main__":
    main()
