"""Configuration commands: show, init."""

from __future__ import annotations

import click
import yaml

from ._common import USERHUB_HOME, console, hub_config


def register_config_commands(main: click.Group) -> None:
    """Register the config command group."""

    @main.group("config")
    def config_group():
        """View or create the hub configuration."""

    @config_group.command("show")
    @click.option("--home", default=USERHUB_HOME, type=click.Path())
    def config_show(home):
        """Print the effective configuration."""
        config = hub_config(home)
        data = config.model_dump(mode="json")
        data["users_path"] = str(config.users_path)
        click.echo(yaml.dump(data, default_flow_style=False).rstrip())

    @config_group.command("init")
    @click.option("--home", default=USERHUB_HOME, type=click.Path())
    @click.option("--force", is_flag=True, help="Overwrite an existing file.")
    def config_init(home, force):
        """Write a config.yaml with the default settings."""
        from ..config import config_path, save_config

        path = config_path(hub_config(home).home)
        if path.exists() and not force:
            console.print(f"  [yellow]{path} already exists.[/] Use --force to overwrite.")
            return
        written = save_config(hub_config(home))
        console.print(f"  [green]Wrote[/] {written}")
