from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.collaborator import Collaborator
from ..models.config_models import (
    DateSettings,
    ImportSettings,
    NotificationSettings,
    RemoteSettings,
)
from ..models.fields import FieldKey

"""Config loader.

Responsibilities:
- Load the YAML config (config/import.yml by default, TASK_IMPORT_CONFIG overrides)
- Validate it against the packaged JSON schema (config_schema.json)
- Apply defaults for every missing key and build ImportSettings
"""

__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ConfigError",
    "resolve_config_path",
    "load_config",
    "settings_from_dict",
]

CONFIG_ENV_VAR = "TASK_IMPORT_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: when the schema file is missing or not valid JSON, or when
            the config data violates the schema (unknown keys, wrong types).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def resolve_config_path(explicit: Path | None = None) -> Path:
    """--config wins, then $TASK_IMPORT_CONFIG, then config/import.yml."""
    if explicit is not None:
        return explicit
    env = os.getenv(CONFIG_ENV_VAR)
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def settings_from_dict(data: dict[str, Any]) -> ImportSettings:
    """Build ImportSettings from already validated config data."""
    project_name = data.get("project_name", "Projet")
    notif_raw = data.get("notifications", {})
    defaults = NotificationSettings()
    notifications = NotificationSettings(
        enabled=notif_raw.get("enabled", defaults.enabled),
        subject=notif_raw.get("subject", defaults.subject),
        message=notif_raw.get("message", defaults.message),
        project_name=project_name,
        project_url=data.get("project_url", ""),
    )

    dates_raw = data.get("dates", {})
    dates = DateSettings(
        serial_min=dates_raw.get("serial_min", DateSettings.serial_min),
        serial_max=dates_raw.get("serial_max", DateSettings.serial_max),
    )
    if dates.serial_min >= dates.serial_max:
        raise ConfigError(
            f"config validation failed: dates.serial_min ({dates.serial_min}) "
            f"must be lower than dates.serial_max ({dates.serial_max})"
        )

    remote_raw = data.get("remote", {})
    remote = RemoteSettings(
        export_base_url=remote_raw.get("export_base_url", RemoteSettings.export_base_url),
        timeout_seconds=remote_raw.get("timeout_seconds"),
    )

    collaborators = tuple(Collaborator.from_mapping(c) for c in data.get("collaborators", []))
    extra_synonyms = {FieldKey.parse(k): tuple(v) for k, v in data.get("synonyms", {}).items()}

    return ImportSettings(
        collaborators=collaborators,
        notifications=notifications,
        dates=dates,
        remote=remote,
        extra_synonyms=extra_synonyms,
    )


def load_config(path: Path) -> ImportSettings:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)
    return settings_from_dict(data)
