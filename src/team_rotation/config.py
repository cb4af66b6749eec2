# SPDX-FileCopyrightText: 2025 Team Rotation Contributors
# SPDX-License-Identifier: MPL-2.0

"""Settings for the rotation tool.

Precedence: defaults < YAML file < environment < CLI flags.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

import yaml

from team_rotation.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "rotation.yaml"

# Environment variable -> settings field
ENV_OVERRIDES = {
    "TEAM_ROTATION_CREDENTIALS_FILE": "credentials_file",
    "TEAM_ROTATION_TOKEN_FILE": "token_file",
    "TEAM_ROTATION_CALENDAR": "calendar_name",
    "TEAM_ROTATION_OLLAMA_MODEL": "ollama_model",
    "TEAM_ROTATION_OLLAMA_TIMEOUT": "ollama_timeout",
    "TEAM_ROTATION_OAUTH_PORT": "oauth_port",
    "TEAM_ROTATION_AUTH_TIMEOUT": "auth_timeout",
}


@dataclass(frozen=True)
class Settings:
    """Runtime settings."""

    credentials_file: str = "credentials.json"
    token_file: str = "token.json"
    calendar_name: str = "team-roles-test"
    ollama_model: str = "llama3"
    ollama_timeout: int = 120
    oauth_port: int = 8080
    auth_timeout: int = 300


def _coerce(name: str, value) -> object:
    """Convert a raw value to the type of the named field."""
    field_type = {f.name: f.type for f in fields(Settings)}[name]
    if field_type in (int, "int"):
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {name}: {value!r}") from e
    return str(value)


def _load_yaml(path: Path) -> dict:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Could not load config {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping")
    return data


def load_settings(path: str | Path | None = None, environ: dict | None = None) -> Settings:
    """Load settings from YAML and environment.

    Args:
        path: YAML config path. If None, config/rotation.yaml is used when it exists.
        environ: Environment mapping (default: os.environ)

    Returns:
        Settings instance

    Raises:
        ConfigError: The file is unreadable, malformed or has bad values.
    """
    environ = os.environ if environ is None else environ
    known = {f.name for f in fields(Settings)}
    overrides = {}

    if path is None and DEFAULT_CONFIG_PATH.exists():
        path = DEFAULT_CONFIG_PATH

    if path is not None:
        for key, value in _load_yaml(Path(path)).items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            overrides[key] = _coerce(key, value)

    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            overrides[key] = _coerce(key, value)

    return replace(Settings(), **overrides)
