# src/throttlelife/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/throttlelife/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `THROTTLELIFE_HAZARD_CORRIDOR_MILES`)
- an external YAML file via `THROTTLELIFE_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic. The geometry core
  never reads settings; callers (CLI/API) pass values in explicitly.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator

from throttlelife.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `throttlelife.config`."""
    text = resources.files("throttlelife.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "ThrottleLife"
    timezone: str = "America/New_York"
    log_level: str = "INFO"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        # Naive feed timestamps are localized with this key, so reject typos at load time.
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown IANA timezone: {value!r}") from exc
        return value


class CorridorSettings(BaseModel):
    hazard_miles: float = Field(0.3, ge=0)
    rider_miles: float = Field(0.15, ge=0)


class FeedSettings(BaseModel):
    live_coordinate_scale: float = Field(1_000_000, gt=0)
    live_validity_minutes: int = Field(60, ge=1)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    corridor: CorridorSettings = Field(default_factory=CorridorSettings)
    feeds: FeedSettings = Field(default_factory=FeedSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("THROTTLELIFE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    timezone = os.getenv("THROTTLELIFE_TIMEZONE")
    if timezone:
        data.setdefault("app", {})["timezone"] = timezone

    hazard = os.getenv("THROTTLELIFE_HAZARD_CORRIDOR_MILES")
    if hazard:
        data.setdefault("corridor", {})["hazard_miles"] = hazard

    rider = os.getenv("THROTTLELIFE_RIDER_CORRIDOR_MILES")
    if rider:
        data.setdefault("corridor", {})["rider_miles"] = rider

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("THROTTLELIFE_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
