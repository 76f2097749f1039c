"""Configuration loading utilities for the planner."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore


logger = logging.getLogger(__name__)

APP_DIR_NAME = "dayplanner"


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


def default_data_dir() -> Path:
    base = os.environ.get("XDG_DATA_HOME")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return root / APP_DIR_NAME


@dataclass
class StoreConfig:
    """Where events are persisted and how eagerly."""

    path: Path = field(default_factory=lambda: default_data_dir() / "dates.json")
    auto_save: bool = True


@dataclass
class SchedulerConfig:
    """Options for the notification loop."""

    tick_interval: float = 1.0


@dataclass
class WatcherConfig:
    """Options for reloading the events file on external changes."""

    enabled: bool = True
    poll_interval: float = 1.0


@dataclass
class AppConfig:
    """Top-level configuration structure."""

    store: StoreConfig = field(default_factory=StoreConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    categories_path: Path = field(default_factory=lambda: default_data_dir() / "categories.txt")


def load_config(path: Optional[Path]) -> AppConfig:
    """Load and validate the YAML configuration file.

    With no path, the defaults are returned.
    """

    if path is None:
        return AppConfig()

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:  # pragma: no cover - logging helper
        raise ConfigError(f"Failed to parse YAML configuration: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    store_cfg = _parse_store_config(data.get("store"), config_path=path)
    scheduler_cfg = _parse_scheduler_config(data.get("scheduler"))
    watcher_cfg = _parse_watcher_config(data.get("watcher"))
    categories_path = _parse_categories_path(data.get("categories"), config_path=path)

    logger.debug(
        "Loaded configuration from %s (events=%s, tick=%ss)",
        path,
        store_cfg.path,
        scheduler_cfg.tick_interval,
    )
    return AppConfig(
        store=store_cfg,
        scheduler=scheduler_cfg,
        watcher=watcher_cfg,
        categories_path=categories_path,
    )


def _parse_store_config(raw: Any, *, config_path: Path) -> StoreConfig:
    if raw is None:
        return StoreConfig()
    if not isinstance(raw, dict):
        raise ConfigError("'store' section must be a mapping")

    defaults = StoreConfig()
    path_raw = raw.get("path")
    events_path = defaults.path
    if path_raw is not None:
        events_path = _resolve_path(path_raw, "store.path", config_path=config_path)

    auto_save = _parse_bool(raw.get("auto_save", defaults.auto_save), "store.auto_save")
    return StoreConfig(path=events_path, auto_save=auto_save)


def _parse_scheduler_config(raw: Any) -> SchedulerConfig:
    if raw is None:
        return SchedulerConfig()
    if not isinstance(raw, dict):
        raise ConfigError("'scheduler' section must be a mapping")

    tick_interval = _parse_positive_float(
        raw.get("tick_interval", SchedulerConfig.tick_interval),
        "scheduler.tick_interval",
    )
    return SchedulerConfig(tick_interval=tick_interval)


def _parse_watcher_config(raw: Any) -> WatcherConfig:
    if raw is None:
        return WatcherConfig()
    if not isinstance(raw, dict):
        raise ConfigError("'watcher' section must be a mapping")

    enabled = _parse_bool(raw.get("enabled", WatcherConfig.enabled), "watcher.enabled")
    poll_interval = _parse_positive_float(
        raw.get("poll_interval", WatcherConfig.poll_interval),
        "watcher.poll_interval",
    )
    return WatcherConfig(enabled=enabled, poll_interval=poll_interval)


def _parse_categories_path(raw: Any, *, config_path: Path) -> Path:
    if raw is None:
        return AppConfig().categories_path
    if not isinstance(raw, dict):
        raise ConfigError("'categories' section must be a mapping")
    path_raw = raw.get("path")
    if path_raw is None:
        return AppConfig().categories_path
    return _resolve_path(path_raw, "categories.path", config_path=config_path)


def _resolve_path(value: Any, field_name: str, *, config_path: Path) -> Path:
    if not isinstance(value, str):
        raise ConfigError(f"{field_name} must be a string")
    resolved = Path(value).expanduser()
    if not resolved.is_absolute():
        resolved = (config_path.parent / resolved).resolve()
    return resolved


def _parse_bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a boolean")
    return value


def _parse_positive_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be numeric")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be numeric") from exc
    if parsed <= 0:
        raise ConfigError(f"{field_name} must be positive")
    return parsed
