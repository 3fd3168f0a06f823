"""User record commands: list, add."""

from __future__ import annotations

import sys

import click
from rich.table import Table

from ._common import USERHUB_HOME, console, hub_config


def register_users_commands(main: click.Group) -> None:
    """Register the users command group."""

    @main.group()
    def users():
        """Inspect the user store directly, without a server."""

    @users.command("list")
    @click.option("--home", default=USERHUB_HOME, type=click.Path())
    @click.option("--json", "as_json", is_flag=True, help="Print raw JSON.")
    def users_list(home, as_json):
        """Show every stored user."""
        from ..errors import StoreReadError
        from ..store import UserStore

        store = UserStore(hub_config(home).users_path)
        try:
            records = store.get_all()
        except StoreReadError as exc:
            console.print(f"[bold red]{exc}[/]")
            sys.exit(1)

        if as_json:
            click.echo(store.path.read_text(encoding="utf-8") if records else "[]")
            return
        if not records:
            console.print("\n  [dim]No users stored yet.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Name")
        table.add_column("Email", style="dim")
        table.add_column("Address")
        table.add_column("Phone", style="dim")
        for r in records:
            table.add_row(str(r.id), r.name, r.email, r.address, r.phone)
        console.print(table)

    @users.command("add")
    @click.option("--home", default=USERHUB_HOME, type=click.Path())
    @click.option("--name", required=True)
    @click.option("--email", required=True)
    @click.option("--address", required=True)
    @click.option("--phone", required=True)
    def users_add(home, name, email, address, phone):
        """Append a user, exactly as the create-user tool would."""
        from ..errors import StoreError
        from ..models import UserFields
        from ..store import UserStore

        store = UserStore(hub_config(home).users_path)
        try:
            record = store.append(
                UserFields(name=name, email=email, address=address, phone=phone)
            )
        except StoreError as exc:
            console.print(f"[bold red]Failed to save user:[/] {exc}")
            sys.exit(1)
        console.print(f"  [green]User {record.id} created successfully[/]")
