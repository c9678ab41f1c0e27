"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

from gucli.services.registry import CommandRegistry

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "gucli"
CONFIG_FILE = CONFIG_DIR / "config.toml"

DEFAULT_COMMANDS = """\
# [[command]] fields: shell = default|bash|zsh|fish, command = string (unique),
# icon = up to 8 characters, notify = bool (default true)
[[command]]
shell = "default"
command = "hostname -A"
icon = "🖥"
notify = true
"""


@dataclass
class NotificationsConfig:
    app_name: str = "gucli-tray"
    icon: str = "system"


@dataclass
class HistoryConfig:
    file: str = "~/.config/gucli/gucli.log"


@dataclass
class CommandsConfig:
    file: str = "~/.config/gucli/commands.toml"


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = "~/.config/gucli/debug.log"


@dataclass
class AppConfig:
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def expand(path: str) -> Path:
    """Absolute path for a config value, with ``~`` expanded."""
    return Path(path).expanduser().resolve()


def ensure_config_dir() -> None:
    """Create config directory."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def load_config() -> AppConfig:
    """Load configuration from TOML file with env var overrides."""
    config = AppConfig()

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            data = tomllib.load(f)

        notifications = data.get("notifications", {})
        config.notifications.app_name = notifications.get("app_name", config.notifications.app_name)
        config.notifications.icon = notifications.get("icon", config.notifications.icon)

        history = data.get("history", {})
        config.history.file = history.get("file", config.history.file)

        commands = data.get("commands", {})
        config.commands.file = commands.get("file", config.commands.file)

        logging_cfg = data.get("logging", {})
        config.logging.level = logging_cfg.get("level", config.logging.level)
        config.logging.file = logging_cfg.get("file", config.logging.file)

    # Environment variable overrides
    if env_log_level := os.environ.get("GUCLI_LOG_LEVEL"):
        config.logging.level = env_log_level
    if env_history := os.environ.get("GUCLI_HISTORY_FILE"):
        config.history.file = env_history
    if env_commands := os.environ.get("GUCLI_COMMANDS_FILE"):
        config.commands.file = env_commands
    if env_app_name := os.environ.get("GUCLI_NOTIFY_APP_NAME"):
        config.notifications.app_name = env_app_name
    if env_log_file := os.environ.get("GUCLI_LOG_FILE"):
        config.logging.file = env_log_file

    return config


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "notifications": {
            "app_name": config.notifications.app_name,
            "icon": config.notifications.icon,
        },
        "history": {
            "file": config.history.file,
        },
        "commands": {
            "file": config.commands.file,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)


def write_default_commands(path: Path, reset: bool = False) -> bool:
    """Create the commands file with the default entry. Returns True if written."""
    if path.exists() and not reset:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_COMMANDS, encoding="utf-8")
    logger.info("Default commands written to %s", path)
    return True


def load_commands(path: Path) -> CommandRegistry:
    """Read and validate the commands file.

    Raises ``ValidationError`` for invalid entries and ``tomllib.TOMLDecodeError``
    for malformed files.
    """
    with open(path, "rb") as f:
        data = tomllib.load(f)
    return CommandRegistry.from_records(data.get("command", []))


def save_commands(path: Path, registry: CommandRegistry) -> None:
    """Write the registry back in menu order."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump({"command": registry.to_records()}, f)


# Global singleton
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or load the global config singleton."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global config (for testing)."""
    global _config
    _config = None
