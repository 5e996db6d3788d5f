"""
Configuration for the stock check engine.

Settings come from a YAML file (see `load_config`) layered over the defaults
declared on `StockCheckConfig`. Paths in the file are resolved relative to the
working directory.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "STOCKCHECK_CONFIG"
DEFAULT_CONFIG_FILE = Path("stockcheck.yaml")

# Debounce window bounds for repeated detections of one physical scan.
MIN_DEBOUNCE_SECONDS = 0.7
MAX_DEBOUNCE_SECONDS = 1.1


@dataclass
class StockCheckConfig:
    """Runtime settings for importing, scanning, and exporting."""

    state_dir: Path = field(default_factory=lambda: Path(".stockcheck"))

    # Ingestion
    require_make: bool = False          # extended variant: make is a required field
    detect_header_row: bool = True      # score the first rows to find the header
    default_condition: str = "New"

    # Scanning
    debounce_seconds: float = 0.9
    poll_interval: float = 0.05

    # Export / logging
    status_column: str = "StockCheckStatus"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.state_dir = Path(self.state_dir)
        clamped = min(max(float(self.debounce_seconds), MIN_DEBOUNCE_SECONDS), MAX_DEBOUNCE_SECONDS)
        if clamped != self.debounce_seconds:
            logger.warning(
                "debounce_seconds=%s outside %.1f-%.1fs; using %.2f",
                self.debounce_seconds,
                MIN_DEBOUNCE_SECONDS,
                MAX_DEBOUNCE_SECONDS,
                clamped,
            )
        self.debounce_seconds = clamped
        if self.poll_interval < 0:
            raise ValueError("poll_interval must not be negative")
        self.log_level = str(self.log_level).upper()


def config_from_mapping(data: dict[str, Any]) -> StockCheckConfig:
    """Build a config from parsed settings, ignoring unknown keys."""

    known = {item.name for item in fields(StockCheckConfig)}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown setting: %s", key)
            continue
        values[key] = value
    return StockCheckConfig(**values)


def resolve_config_path(explicit: str | Path | None = None) -> Path | None:
    """Pick the settings file: explicit path, then the env var, then ./stockcheck.yaml."""

    if explicit:
        return Path(explicit)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    if DEFAULT_CONFIG_FILE.exists():
        return DEFAULT_CONFIG_FILE
    return None


def load_config(path: str | Path | None = None) -> StockCheckConfig:
    """Load settings from YAML, falling back to defaults when no file is found."""

    settings_path = resolve_config_path(path)
    if settings_path is None or not settings_path.exists():
        if path:
            logger.warning("Settings file %s not found; using defaults", path)
        return StockCheckConfig()

    with open(settings_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {settings_path} must contain a mapping")
    logger.debug("Loaded settings from %s", settings_path)
    return config_from_mapping(data)
