"""Tests for configuration module."""

from __future__ import annotations

import pytest

from gucli.config import (
    AppConfig,
    LoggingConfig,
    expand,
    NotificationsConfig,
    get_config,
    load_commands,
    load_config,
    reset_config,
    save_commands,
    save_config,
    write_default_commands,
)
from gucli.services.registry import CommandRegistry, ValidationError
from gucli.storage.models import CommandDefinition, Shell


class TestAppConfig:
    def test_defaults(self):
        config = AppConfig()
        assert config.notifications.app_name == "gucli-tray"
        assert config.notifications.icon == "system"
        assert config.history.file.endswith("gucli.log")
        assert config.logging.level == "WARNING"

    def test_save_and_load(self, isolated_home):
        config = AppConfig(
            notifications=NotificationsConfig(app_name="my-tray", icon="terminal"),
            logging=LoggingConfig(level="INFO"),
        )
        save_config(config)
        assert (isolated_home / "config.toml").exists()

        loaded = load_config()
        assert loaded.notifications.app_name == "my-tray"
        assert loaded.notifications.icon == "terminal"
        assert loaded.logging.level == "INFO"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("GUCLI_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("GUCLI_NOTIFY_APP_NAME", "from-env")
        monkeypatch.setenv("GUCLI_HISTORY_FILE", "/tmp/elsewhere.log")
        monkeypatch.setenv("GUCLI_LOG_FILE", "/tmp/debug-elsewhere.log")
        config = load_config()
        assert config.logging.level == "DEBUG"
        assert config.notifications.app_name == "from-env"
        assert config.history.file == "/tmp/elsewhere.log"
        assert config.logging.file == "/tmp/debug-elsewhere.log"

    def test_expand_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert expand("~/gucli.log") == tmp_path.resolve() / "gucli.log"
        assert expand("~/gucli.log").is_absolute()

    def test_singleton(self):
        assert get_config() is get_config()
        first = get_config()
        reset_config()
        assert get_config() is not first


class TestCommandsFile:
    def test_default_written_once(self, tmp_path):
        path = tmp_path / "gucli" / "commands.toml"
        assert write_default_commands(path) is True
        assert write_default_commands(path) is False

        registry = load_commands(path)
        assert [d.command for d in registry.list()] == ["hostname -A"]

    def test_reset_overwrites(self, tmp_path):
        path = tmp_path / "commands.toml"
        save_commands(path, CommandRegistry.load([CommandDefinition(command="date")]))
        assert write_default_commands(path, reset=True) is True
        assert "date" not in load_commands(path)

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "commands.toml"
        registry = CommandRegistry.load(
            [
                CommandDefinition(command="uptime", icon="⏱"),
                CommandDefinition(command="echo $0", shell=Shell.BASH, notify=False),
            ]
        )
        save_commands(path, registry)

        loaded = load_commands(path)
        assert loaded.list() == registry.list()

    def test_duplicate_in_file(self, tmp_path):
        path = tmp_path / "commands.toml"
        path.write_text('[[command]]\ncommand = "date"\n\n[[command]]\ncommand = "date"\n')
        with pytest.raises(ValidationError):
            load_commands(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "commands.toml"
        path.write_text("")
        assert len(load_commands(path)) == 0
