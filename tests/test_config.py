"""Tests for hub configuration loading and saving."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from userhub.config import config_path, configure_logging, load_config, save_config
from userhub.models import HubConfig, SamplingBackend


class TestLoadConfig:
    """Tests for reading <home>/config.yaml."""

    def test_missing_file_gives_defaults(self, hub_home: Path) -> None:
        config = load_config(hub_home)
        assert config.home == hub_home
        assert config.sampling.backend == SamplingBackend.OPERATOR
        assert config.users_path == hub_home / "data" / "users.json"

    def test_reads_yaml(self, hub_home: Path) -> None:
        (hub_home / "config.yaml").write_text(
            "log_level: INFO\n"
            "sampling:\n"
            "  backend: ollama\n"
            "  timeout_seconds: 5\n"
        )
        config = load_config(hub_home)
        assert config.log_level == "INFO"
        assert config.sampling.backend == SamplingBackend.OLLAMA
        assert config.sampling.timeout_seconds == 5

    def test_data_file_override(self, hub_home: Path, tmp_path: Path) -> None:
        target = tmp_path / "elsewhere.json"
        (hub_home / "config.yaml").write_text(f"data_file: {target}\n")
        assert load_config(hub_home).users_path == target

    def test_invalid_yaml_falls_back(self, hub_home: Path) -> None:
        (hub_home / "config.yaml").write_text("sampling: [unclosed\n")
        config = load_config(hub_home)
        assert config.home == hub_home
        assert config.log_level == "WARNING"

    def test_invalid_values_fall_back(self, hub_home: Path) -> None:
        (hub_home / "config.yaml").write_text("sampling:\n  backend: telepathy\n")
        assert load_config(hub_home).sampling.backend == SamplingBackend.OPERATOR


class TestSaveConfig:
    def test_round_trip(self, hub_home: Path) -> None:
        config = HubConfig(home=hub_home, log_level="DEBUG")
        path = save_config(config)

        assert path == config_path(hub_home)
        data = yaml.safe_load(path.read_text())
        assert "home" not in data
        assert load_config(hub_home).log_level == "DEBUG"


def test_configure_logging(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))
    configure_logging(HubConfig(log_level="debug"))
    assert calls[0]["level"] == logging.DEBUG
