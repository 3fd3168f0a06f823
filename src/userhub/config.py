"""
Hub configuration, read once per process from ``<home>/config.yaml``.

Example::

    log_level: INFO
    data_file: ~/shared/users.json
    sampling:
      backend: ollama
      model: llama3.2
      timeout_seconds: 30
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml

from . import USERHUB_HOME
from .models import HubConfig

logger = logging.getLogger("userhub.config")

CONFIG_FILENAME = "config.yaml"


def config_path(home: Optional[Path] = None) -> Path:
    """Location of the config file for a hub home."""
    return Path(home or USERHUB_HOME).expanduser() / CONFIG_FILENAME


def load_config(home: Optional[Path] = None) -> HubConfig:
    """Load the hub configuration from disk.

    A missing file means defaults. An unreadable or invalid file is
    logged and also falls back to defaults, so a bad config never
    stops the host from serving.

    Args:
        home: Override hub home directory. Defaults to ~/.userhub/.

    Returns:
        HubConfig with ``home`` set to the resolved directory.
    """
    home_path = Path(home or USERHUB_HOME).expanduser()
    config_file = home_path / CONFIG_FILENAME
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            data["home"] = home_path
            return HubConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config: %s; using defaults", exc)
    return HubConfig(home=home_path)


def save_config(config: HubConfig) -> Path:
    """Write the configuration back to ``<home>/config.yaml``.

    Returns:
        Path of the written file.
    """
    path = config_path(config.home)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json", exclude={"home"}, exclude_none=True)
    path.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
    return path


def configure_logging(config: HubConfig) -> None:
    """Route log records to stderr at the configured level."""
    level = getattr(logging, config.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(name)s: %(message)s")
