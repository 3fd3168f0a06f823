"""
Interactive dispatch loop for the session driver.

The top-level menu offers Query, Tools, Resources and Prompts. Tools
and prompts are invoked by asking the operator for every argument
their schema declares; resource templates are resolved by asking for
every placeholder. Query has no handler: it prints a notice and the
menu comes back. The loop never ends by itself; Ctrl-C or end of input
stops it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import click
from mcp.shared.exceptions import McpError
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from . import uri_template
from .client import Catalog, UserHubClient, connect, tool_title
from .errors import DiscoveryError, InvocationError, UriTemplateError
from .models import HubConfig
from .sampling import build_sampler

logger = logging.getLogger("userhub.interactive")

CATEGORIES = ["Query", "Tools", "Resources", "Prompts"]


@dataclass(frozen=True)
class Choice:
    """One selectable menu entry."""

    label: str
    value: Any
    description: str = ""


class Operator:
    """Console I/O with the person driving the session.

    Blocking prompts run in a worker thread so the event loop keeps
    servicing the host (including its reverse requests) meanwhile. One
    prompt reads stdin at a time: a prompt abandoned by an expired
    request keeps its thread until a line arrives, and the next prompt
    waits for it.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self._input_lock = threading.Lock()

    def _read(self, prompt: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with self._input_lock:
            return prompt(*args, **kwargs)

    async def select(self, message: str, choices: list[Choice]) -> Any:
        """Show a numbered menu and return the chosen entry's value."""
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Choice", style="bold")
        table.add_column("Description", style="dim")
        for number, choice in enumerate(choices, start=1):
            table.add_row(str(number), choice.label, choice.description)

        self.console.print(f"\n  [bold]{message}[/]")
        self.console.print(table)
        picked = await asyncio.to_thread(
            self._read,
            click.prompt,
            "  Enter your choice",
            type=click.IntRange(1, len(choices)),
            default=1,
        )
        return choices[picked - 1].value

    async def ask(self, message: str) -> str:
        """Read one free-text answer."""
        return await asyncio.to_thread(
            self._read, Prompt.ask, f"  {message}", console=self.console, default=""
        )

    def show_text(self, text: str) -> None:
        self.console.print(f"\n  {text}\n", markup=False)

    def show_json(self, payload: Any) -> None:
        self.console.print_json(json.dumps(payload), indent=2)

    def show_messages(self, messages: list[tuple[str, str]]) -> None:
        for role, text in messages:
            self.console.print(Panel(Text(text), title=role, border_style="cyan"))

    def show_request(self, prompt: str, max_tokens: int) -> None:
        """Display a reverse sampling request awaiting an answer."""
        self.console.print(
            Panel(
                Text(prompt),
                title="Server requests a completion",
                subtitle=f"max {max_tokens} tokens",
                border_style="bright_blue",
            )
        )

    def notice(self, message: str) -> None:
        self.console.print(f"  [dim]{message}[/]")

    def error(self, message: str) -> None:
        self.console.print(f"  [bold red]{message}[/]")


class InteractiveSession:
    """Menu-driven invocation of a discovered catalog.

    Args:
        client: Connected client used for every invocation.
        catalog: Result of discovery; the menus are built from it.
        operator: Console I/O.
    """

    def __init__(self, client: UserHubClient, catalog: Catalog, operator: Operator) -> None:
        self.client = client
        self.catalog = catalog
        self.operator = operator

    async def run(self) -> None:
        """Show the top-level menu until input ends."""
        try:
            while True:
                await self.step()
        except (click.Abort, EOFError):
            self.operator.notice("Disconnected.")

    async def step(self) -> None:
        """One round of the top-level menu."""
        option = await self.operator.select(
            "What would you like to do?",
            [Choice(name, name) for name in CATEGORIES],
        )
        handler = {
            "Query": self.handle_query,
            "Tools": self.handle_tools,
            "Resources": self.handle_resources,
            "Prompts": self.handle_prompts,
        }.get(option)
        if handler is not None:
            await handler()

    async def handle_query(self) -> None:
        self.operator.notice("Query is not available in this client.")

    # -- tools ----------------------------------------------------------

    async def handle_tools(self) -> None:
        if not self.catalog.tools:
            self.operator.notice("The server offers no tools.")
            return
        name = await self.operator.select(
            "Select a tool",
            [Choice(tool_title(t), t.name, t.description or "") for t in self.catalog.tools],
        )
        tool = self.catalog.tool(name)
        if tool is None:
            self.operator.error("Tool not found")
            return
        await self.run_tool(tool)

    async def run_tool(self, tool: Any) -> None:
        """Collect the tool's arguments from the operator and invoke it."""
        arguments: dict[str, str] = {}
        properties = (tool.inputSchema or {}).get("properties") or {}
        for key, spec in properties.items():
            kind = spec.get("type", "string") if isinstance(spec, dict) else "string"
            arguments[key] = await self.operator.ask(f"Enter value for {key} ({kind})")

        try:
            text = await self.client.call_tool(tool.name, arguments)
        except (InvocationError, McpError) as exc:
            self.operator.error(str(exc))
            return
        self.operator.show_text(text)

    # -- resources ------------------------------------------------------

    async def handle_resources(self) -> None:
        choices = [
            Choice(r.name, str(r.uri), r.description or "") for r in self.catalog.resources
        ] + [
            Choice(t.name, t.uriTemplate, t.description or "")
            for t in self.catalog.resource_templates
        ]
        if not choices:
            self.operator.notice("The server offers no resources.")
            return
        selected = await self.operator.select("Select a resource", choices)
        uri = self.catalog.resource_uri(selected)
        if uri is None:
            self.operator.error("Resource not found")
            return
        await self.read_resource(uri)

    async def read_resource(self, uri: str) -> None:
        """Resolve any placeholders with the operator, read, pretty-print."""
        concrete = uri
        try:
            if uri_template.is_template(uri):
                answers = [
                    await self.operator.ask(f"Enter a value for {name}")
                    for name in uri_template.placeholders(uri)
                ]
                supply = iter(answers)
                concrete = uri_template.resolve(uri, lambda name: next(supply, None))
            payload = await self.client.read_resource(concrete)
        except (UriTemplateError, InvocationError, McpError) as exc:
            self.operator.error(str(exc))
            return
        self.operator.show_json(payload)

    # -- prompts --------------------------------------------------------

    async def handle_prompts(self) -> None:
        if not self.catalog.prompts:
            self.operator.notice("The server offers no prompts.")
            return
        name = await self.operator.select(
            "Select a prompt",
            [Choice(p.name, p.name, p.description or "") for p in self.catalog.prompts],
        )
        prompt = self.catalog.prompt(name)
        if prompt is None:
            self.operator.error("Prompt not found")
            return

        arguments: dict[str, str] = {}
        for arg in prompt.arguments or []:
            arguments[arg.name] = await self.operator.ask(f"Enter value for {arg.name} (string)")
        try:
            messages = await self.client.get_prompt(prompt.name, arguments)
        except McpError as exc:
            self.operator.error(str(exc))
            return
        self.operator.show_messages(messages)


async def run_session(config: HubConfig, operator: Operator) -> int:
    """Connect, discover, and drive the menu until input ends.

    Returns:
        Process exit code: 0 after a normal disconnect, 1 if discovery
        failed and no menu was shown.
    """
    sampler = build_sampler(config.sampling, operator)
    async with connect(config, sampler) as client:
        try:
            catalog = await client.discover()
        except DiscoveryError as exc:
            operator.error(str(exc))
            return 1
        operator.notice("You are connected")
        await InteractiveSession(client, catalog, operator).run()
    return 0
