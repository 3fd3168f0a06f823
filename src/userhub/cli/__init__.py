"""
UserHub CLI.

Each command group lives in its own module and is attached to the
main Click group through its register function.

Entry point: userhub.cli:main
"""

from __future__ import annotations

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="userhub")
def main():
    """UserHub: a user directory over the Model Context Protocol."""


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .serve import register_serve_commands
from .connect import register_connect_commands
from .users import register_users_commands
from .config_cmd import register_config_commands

register_serve_commands(main)
register_connect_commands(main)
register_users_commands(main)
register_config_commands(main)
