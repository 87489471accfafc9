"""
Configuration management for dateseq.
Loads YAML configuration with environment variable substitution.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError


CONFIG_ENV_VAR = 'DATESEQ_CONFIG'
USER_CONFIG_PATH = Path('~/.config/dateseq/settings.yaml')


def _substitute_env_vars(value: str) -> str:
    """Substitute ${VAR:default} patterns with environment variables."""
    pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

    def replacer(match):
        var_name = match.group(1)
        default = match.group(2) if match.group(2) is not None else ''
        return os.environ.get(var_name, default)

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values to substitute environment variables."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _as_flag(value: Any, name: str) -> bool | None:
    """Read a tri-state flag; env substitution leaves strings behind."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ('true', 'yes', 'on', '1'):
        return True
    if isinstance(value, str) and value.lower() in ('false', 'no', 'off', '0'):
        return False
    raise ConfigurationError(f"Config value '{name}' must be true, false or empty, got {value!r}")


def _as_str(value: Any, name: str) -> str | None:
    """Read an optional text value; empty means unset."""
    if value is None or value == '':
        return None
    if isinstance(value, (dict, list)):
        raise ConfigurationError(f"Config value '{name}' must be text, got {value!r}")
    return str(value)


def _as_int(value: Any, name: str, default: int) -> int:
    """Read a non-negative integer; empty means the default."""
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"Config value '{name}' must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Config value '{name}' must be an integer, got {value!r}") from e
    if number < 0:
        raise ConfigurationError(f"Config value '{name}' must not be negative, got {number}")
    return number


def _section(raw: dict, name: str) -> dict:
    """Read a top-level section; a missing or empty section is an empty mapping."""
    section = raw.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping, got {section!r}")
    return section


@dataclass
class DefaultsConfig:
    """Fallbacks for options not given on the command line."""
    increment: str | None = None
    date_format: str | None = None
    business: bool | None = None
    business6: bool | None = None
    reverse: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "WARNING"
    file: str | None = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_bytes: int = 10485760
    backup_count: int = 5


@dataclass
class Config:
    """Main configuration container."""
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: str | None = None


def find_config_path() -> Path | None:
    """
    Locate a configuration file when none was given explicitly.

    Checks $DATESEQ_CONFIG first, then ~/.config/dateseq/settings.yaml.

    Returns:
        Path to an existing file, or None to use built-in defaults
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    user_path = USER_CONFIG_PATH.expanduser()
    if user_path.exists():
        return user_path
    return None


def load_config(config_path: str | None = None, local_path: str | None = None) -> Config:
    """
    Load configuration from YAML files.

    Args:
        config_path: Path to main config file; searched for when None
        local_path: Optional path to local overrides (e.g., settings.local.yaml)

    Returns:
        Fully populated Config object

    Raises:
        FileNotFoundError: If an explicitly named config file is missing
        ConfigurationError: If a file is not valid YAML or holds bad values
    """
    config_file = Path(config_path) if config_path else find_config_path()
    if config_file is None:
        return Config()

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    raw_config = _read_yaml(config_file)

    # Load local overrides if present
    if local_path:
        local_file = Path(local_path)
        if local_file.exists():
            raw_config = _deep_merge(raw_config, _read_yaml(local_file))

    # Try auto-loading local config
    if local_path is None:
        auto_local = config_file.parent / "settings.local.yaml"
        if auto_local.exists() and auto_local != config_file:
            raw_config = _deep_merge(raw_config, _read_yaml(auto_local))

    # Substitute environment variables
    raw_config = _process_config_values(raw_config)

    config = _build_config(raw_config)
    config.source = str(config_file)
    return config


def _read_yaml(path: Path) -> dict:
    """Read a YAML mapping; an empty file is an empty mapping."""
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return data


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _build_config(raw: dict) -> Config:
    """Build a Config object from raw dictionary."""
    config = Config()

    # Defaults
    defaults_raw = _section(raw, 'defaults')
    config.defaults = DefaultsConfig(
        increment=_as_str(defaults_raw.get('increment'), 'defaults.increment'),
        date_format=_as_str(defaults_raw.get('date_format'), 'defaults.date_format'),
        business=_as_flag(defaults_raw.get('business'), 'defaults.business'),
        business6=_as_flag(defaults_raw.get('business6'), 'defaults.business6'),
        reverse=bool(_as_flag(defaults_raw.get('reverse'), 'defaults.reverse'))
    )

    # Logging; empty values fall back to the dataclass defaults
    logging_raw = _section(raw, 'logging')
    fallback = LoggingConfig()
    config.logging = LoggingConfig(
        level=_as_str(logging_raw.get('level'), 'logging.level') or fallback.level,
        file=_as_str(logging_raw.get('file'), 'logging.file'),
        format=_as_str(logging_raw.get('format'), 'logging.format') or fallback.format,
        max_bytes=_as_int(logging_raw.get('max_bytes'), 'logging.max_bytes', fallback.max_bytes),
        backup_count=_as_int(logging_raw.get('backup_count'), 'logging.backup_count', fallback.backup_count)
    )

    return config
