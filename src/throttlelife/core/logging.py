"""
Logging configuration.

We use a YAML logging config (`src/throttlelife/config/logging.yaml`) and then apply
runtime overrides from settings (e.g., `THROTTLELIFE_LOG_LEVEL`).
"""

from __future__ import annotations

import logging.config

from throttlelife.config.settings import get_logging_config, get_settings


def configure_logging() -> None:
    """Configure the Python logging system based on packaged YAML config + settings."""
    settings = get_settings()
    config = dict(get_logging_config())

    level = settings.app.log_level.upper()
    config["root"] = {**config.get("root", {}), "level": level}
    config["handlers"] = {
        name: ({**handler, "level": level} if isinstance(handler, dict) and "level" in handler else handler)
        for name, handler in config.get("handlers", {}).items()
    }
    config["loggers"] = {
        name: ({**cfg, "level": level} if isinstance(cfg, dict) else cfg)
        for name, cfg in config.get("loggers", {}).items()
    }

    logging.config.dictConfig(config)
