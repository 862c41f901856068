"""Configuration management for GitPanic."""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from gitpanic.errors import ConfigurationError, InvalidConfigError

from .settings import HistoryConfig, LoggingConfig, SafetyConfig, Settings

# Default config directory
CONFIG_DIR = Path.home() / ".gitpanic"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"

SECTIONS = ("history", "safety", "logging")


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${ENV_VAR} syntax in strings."""
    if isinstance(value, str):
        pattern = r"\$\{([^}]+)\}"
        for var_name in re.findall(pattern, value):
            value = value.replace(f"${{{var_name}}}", os.environ.get(var_name, ""))
        return value if value else None
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    return value


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_file(path: Path) -> dict:
    """Load a YAML file and return its contents."""
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Could not parse {path}: {e}", code="CONFIG_PARSE_ERROR"
        ) from e
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"{path} must contain a mapping", code="CONFIG_PARSE_ERROR")
    return content


def _drop_nones(config: dict) -> dict:
    """Remove empty values so model defaults apply."""
    cleaned = {}
    for key, value in config.items():
        if isinstance(value, dict):
            value = _drop_nones(value)
        if value is not None:
            cleaned[key] = value
    return cleaned


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Load settings with priority: env vars > user config > defaults.

    A fresh instance is returned on every call; callers pass it on
    explicitly instead of sharing a module-level copy.

    Args:
        config_path: Optional path to a custom config file

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If a config file cannot be parsed.
        InvalidConfigError: If a value fails validation.
    """
    if config_path is not None and not Path(config_path).exists():
        raise ConfigurationError(
            f"Config file not found: {config_path}", code="CONFIG_NOT_FOUND"
        )

    defaults = _load_yaml_file(DEFAULTS_FILE)
    user_config = _load_yaml_file(Path(config_path) if config_path else CONFIG_FILE)

    merged = _deep_merge(defaults, user_config)
    expanded = _drop_nones(_expand_env_vars(merged))
    settings_dict = {section: expanded[section] for section in SECTIONS if section in expanded}

    try:
        return Settings(**settings_dict)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise InvalidConfigError(field, error.get("input"), error["msg"]) from e


def create_default_config() -> Path:
    """Write the bundled defaults to the user config file if it doesn't exist."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    if not CONFIG_FILE.exists():
        CONFIG_FILE.write_text(DEFAULTS_FILE.read_text(encoding="utf-8"), encoding="utf-8")
    return CONFIG_FILE


__all__ = [
    "HistoryConfig",
    "LoggingConfig",
    "SafetyConfig",
    "Settings",
    "load_settings",
    "create_default_config",
    "CONFIG_DIR",
    "CONFIG_FILE",
    "DEFAULTS_FILE",
]
