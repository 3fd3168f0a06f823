"""Session driver command: connect."""

from __future__ import annotations

import asyncio
import sys

import click

from ._common import USERHUB_HOME, console, hub_config


def register_connect_commands(main: click.Group) -> None:
    """Register the connect command."""

    @main.command("connect")
    @click.option("--home", default=USERHUB_HOME, type=click.Path())
    @click.option(
        "--sampler",
        type=click.Choice(["operator", "ollama"]),
        default=None,
        help="Who answers the server's generation requests.",
    )
    @click.option("--model", default=None, help="Ollama model for --sampler ollama.")
    def connect(home, sampler, model):
        """Spawn the host and open the interactive menu.

        Discovers tools, resources and prompts, then lets you invoke
        them. Press Ctrl-C or Ctrl-D to leave.
        """
        from ..config import configure_logging
        from ..interactive import Operator, run_session
        from ..models import SamplingBackend

        config = hub_config(home)
        if sampler:
            config.sampling.backend = SamplingBackend(sampler)
        if model:
            config.sampling.model = model
        configure_logging(config)

        try:
            code = asyncio.run(run_session(config, Operator(console)))
        except KeyboardInterrupt:
            console.print("\n  [dim]Disconnected.[/]")
            code = 0
        sys.exit(code)
