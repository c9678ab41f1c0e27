"""Shared test fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from gucli.config import AppConfig, CommandsConfig, HistoryConfig, LoggingConfig, NotificationsConfig
from gucli.services.notifier import NotificationDispatcher


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config, history and debug log out of the real home directory."""
    import gucli.cli as cli_module
    import gucli.config as cfg_module

    config_dir = tmp_path / "config"
    monkeypatch.setattr(cfg_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(cfg_module, "CONFIG_FILE", config_dir / "config.toml")
    monkeypatch.setattr(cli_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(cli_module, "CONFIG_FILE", config_dir / "config.toml")
    monkeypatch.setenv("GUCLI_COMMANDS_FILE", str(config_dir / "commands.toml"))
    monkeypatch.setenv("GUCLI_HISTORY_FILE", str(config_dir / "gucli.log"))
    monkeypatch.setenv("GUCLI_LOG_FILE", str(tmp_path / "debug.log"))
    cfg_module.reset_config()
    yield config_dir
    cfg_module.reset_config()


@pytest.fixture
def app_config(tmp_path):
    """Create a test configuration."""
    return AppConfig(
        notifications=NotificationsConfig(app_name="gucli-test", icon="system"),
        history=HistoryConfig(file=str(tmp_path / "gucli.log")),
        commands=CommandsConfig(file=str(tmp_path / "commands.toml")),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "debug.log")),
    )


@pytest.fixture
def notifier():
    """A dispatcher whose send() is recorded instead of calling notify-send."""
    mock = MagicMock(spec=NotificationDispatcher)
    mock.send = AsyncMock(return_value=True)
    mock.send_app_error = AsyncMock(return_value=True)
    return mock
