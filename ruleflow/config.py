"""Shared ruleflow configuration utilities.

Centralises reading of ~/.ruleflow/configuration.json so that hosts
embedding the engine and the engine defaults share one implementation.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

RULEFLOW_CONFIG_FILE = Path.home() / ".ruleflow" / "configuration.json"


def get_config_path() -> Path:
    """Return the configuration file path, honouring RULEFLOW_CONFIG."""
    override = os.environ.get("RULEFLOW_CONFIG")
    return Path(override) if override else RULEFLOW_CONFIG_FILE


def get_ruleflow_config() -> dict[str, Any]:
    """Load ruleflow configuration from disk (empty dict when absent or unreadable)."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def get_log_level() -> str:
    """Return the configured log level."""
    return get_ruleflow_config().get("logging", {}).get("level", "INFO")


def get_log_format() -> str:
    """Return the configured log format ("json", "human" or "auto")."""
    return get_ruleflow_config().get("logging", {}).get("format", "auto")


def get_strict_templates() -> bool:
    """Return True when undefined template variables should fail the run."""
    return bool(get_ruleflow_config().get("templates", {}).get("strict", False))


def get_max_delay_ms() -> float | None:
    """Return the cap applied to action node delays, if any."""
    value = get_ruleflow_config().get("engine", {}).get("max_delay_ms")
    return float(value) if value is not None else None


# ---------------------------------------------------------------------------
# EngineConfig
# ---------------------------------------------------------------------------


@dataclass
class EngineConfig:
    """Engine configuration loaded from ~/.ruleflow/configuration.json.

    Example file::

        {
          "logging": {"level": "DEBUG", "format": "human"},
          "templates": {"strict": true},
          "engine": {"max_delay_ms": 5000}
        }
    """

    log_level: str = field(default_factory=get_log_level)
    log_format: str = field(default_factory=get_log_format)
    strict_templates: bool = field(default_factory=get_strict_templates)
    max_delay_ms: float | None = field(default_factory=get_max_delay_ms)
