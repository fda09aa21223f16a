"""Persisted configuration management."""

from __future__ import annotations

import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from .models import Config

CONFIG_PATH = (Path.home() / ".gijiroku" / "config.json").expanduser()
API_KEY_ENV = "GEMINI_API_KEY"
EXPORT_FORMATS = ("txt", "md", "csv")


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or saved."""


def load_config() -> Config:
    if not CONFIG_PATH.exists():
        return Config()
    try:
        payload = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
    try:
        return Config(**payload)
    except TypeError as exc:
        raise ConfigError(f"Invalid configuration file: {exc}") from exc


def save_config(config: Config) -> None:
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    data = {k: v for k, v in asdict(config).items() if v is not None}
    CONFIG_PATH.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def update_config(**kwargs: Any) -> Config:
    config = load_config()
    for key, value in kwargs.items():
        if not hasattr(config, key):
            raise ConfigError(f"Unknown configuration key: {key}")
        if key == "export_format" and value not in EXPORT_FORMATS:
            raise ConfigError(f"Unsupported export format: {value}")
        if key == "speaker_count" and value is not None:
            try:
                value = int(value)
            except (TypeError, ValueError) as exc:
                raise ConfigError("speaker_count must be a positive integer") from exc
            if value < 1:
                raise ConfigError("speaker_count must be a positive integer")
        setattr(config, key, value)
    save_config(config)
    return config


def resolve_api_key(config: Config) -> Optional[str]:
    """Return the configured key, falling back to the environment."""

    return config.api_key or os.getenv(API_KEY_ENV) or None
