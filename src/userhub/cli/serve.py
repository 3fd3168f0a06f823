"""Capability host command: serve."""

from __future__ import annotations

import click

from ._common import USERHUB_HOME


def register_serve_commands(main: click.Group) -> None:
    """Register the serve command."""

    @main.command("serve")
    @click.option("--home", default=USERHUB_HOME, type=click.Path())
    def serve(home):
        """Start the capability host on stdio transport.

        Exposes the users resource, the user-details template, the
        create-user and create-random-user tools and the
        generate-fake-user prompt. Stdout carries the protocol; logs
        go to stderr.
        """
        from ..server import main as server_main

        server_main(home)
