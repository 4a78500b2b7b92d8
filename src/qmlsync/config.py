"""
Configuration for qmlsync.

All tunable parameters in one place. Loaded from:
1. Defaults (this file)
2. Config file (~/.config/qmlsync/config.toml) if exists
3. Environment variables (QMLSYNC_*) override file
4. CLI flags override everything
"""

from __future__ import annotations

import contextlib
import logging
import os
import tomllib  # stdlib in 3.11+
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class SyncConfig:
    """Arbitrator settings."""
    debounce_ms: int = 150  # per-source coalescing window


@dataclass
class HistoryConfig:
    """Undo/redo settings."""
    capacity: int = 50


@dataclass
class WindowConfig:
    """Root window defaults used when generating text."""
    width: int = 800
    height: int = 600
    title: str = "Qt Designer Application"


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class Config:
    """Root config with all settings."""
    sync: SyncConfig = field(default_factory=SyncConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    window: WindowConfig = field(default_factory=WindowConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_path() -> Path:
    """Get config file path, respecting XDG."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "qmlsync" / "config.toml"
    return Path.home() / ".config" / "qmlsync" / "config.toml"


def load_config() -> Config:
    """Load config from file if exists, else return defaults."""
    config = Config()
    path = get_config_path()

    if path.exists():
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
            config = _apply_toml(config, data)
        except (OSError, tomllib.TOMLDecodeError, ValueError, TypeError):
            logger.warning("ignoring unreadable config file %s", path, exc_info=True)

    # env var overrides
    config = _apply_env(config)

    return config


def _apply_toml(config: Config, data: dict) -> Config:
    """Apply toml data to config."""
    if "sync" in data:
        s = data["sync"]
        if "debounce_ms" in s:
            config.sync.debounce_ms = int(s["debounce_ms"])

    if "history" in data:
        h = data["history"]
        if "capacity" in h:
            config.history.capacity = int(h["capacity"])

    if "window" in data:
        w = data["window"]
        if "width" in w:
            config.window.width = int(w["width"])
        if "height" in w:
            config.window.height = int(w["height"])
        if "title" in w:
            config.window.title = str(w["title"])

    if "logging" in data:
        lg = data["logging"]
        if "level" in lg:
            config.logging.level = str(lg["level"]).upper()

    return config


def _apply_env(config: Config) -> Config:
    """Apply environment variable overrides."""
    env_map: dict[str, tuple[str, str, type]] = {
        "QMLSYNC_DEBOUNCE_MS": ("sync", "debounce_ms", int),
        "QMLSYNC_HISTORY_CAPACITY": ("history", "capacity", int),
        "QMLSYNC_WINDOW_WIDTH": ("window", "width", int),
        "QMLSYNC_WINDOW_HEIGHT": ("window", "height", int),
        "QMLSYNC_WINDOW_TITLE": ("window", "title", str),
        "QMLSYNC_LOG_LEVEL": ("logging", "level", str),
    }

    for env_key, (section, attr, conv) in env_map.items():
        val = os.environ.get(env_key)
        if val is not None:
            with contextlib.suppress(ValueError, AttributeError):
                setattr(getattr(config, section), attr, conv(val))

    return config


# Module-level config instance, loaded once on first use
_config: Config | None = None


def get_config() -> Config:
    """Get the global config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads it."""
    global _config
    _config = None
