"""Shared pieces for the CLI command modules."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from .. import USERHUB_HOME
from ..config import load_config
from ..models import HubConfig

console = Console()


def hub_config(home: str) -> HubConfig:
    """Load the configuration for a ``--home`` option value."""
    return load_config(Path(home).expanduser())
