"""Configuration loader for kamal-secrets-sync."""
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .models import SyncSettings
from .preferences import get_preference

logger = logging.getLogger(__name__)

PROJECT_ENV_VAR = "KAMAL_SECRETS_PROJECT"

_STRING_KEYS = ("project", "manifest_path", "env_file", "reference_path")
_REGISTRY_STRING_KEYS = ("credential_key", "access_token_env")


def default_config_path() -> Path:
    return Path.home() / ".config" / "kamal-secrets-sync" / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path using XDG Base Directory standard.

    Priority order:
    1. User preference (stored in ~/.config/kamal-secrets-sync/preferences.json)
    2. Default location: ~/.config/kamal-secrets-sync/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Create one using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   kamal-secrets-sync config set-path /path/to/your/config.yml\n"
    )


def _validate(config: Dict[str, Any], config_path: str) -> None:
    for key in _STRING_KEYS:
        if key in config and not isinstance(config[key], str):
            raise ConfigError(f"'{key}' in config at {config_path} must be a string")

    registry = config.get("registry")
    if registry is None:
        return
    if not isinstance(registry, dict):
        raise ConfigError(
            f"'registry' section in config at {config_path} must be a mapping\n"
            f"Required format:\n"
            f"registry:\n"
            f"  timeout: 30\n"
            f"  credential_key: KAMAL_REGISTRY_PASSWORD"
        )

    for key in _REGISTRY_STRING_KEYS:
        if key in registry and not (isinstance(registry[key], str) and registry[key].strip()):
            raise ConfigError(f"'registry.{key}' in config at {config_path} must be a non-empty string")

    if "timeout" in registry:
        timeout = registry["timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError(
                f"'registry.timeout' in config at {config_path} must be a positive number, got {timeout!r}"
            )


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing any of: project, manifest_path, env_file,
        reference_path, registry (timeout, credential_key, access_token_env)

    Raises:
        FileNotFoundError: If no config file exists
        ConfigError: If the config file is unreadable, invalid or wrongly typed
    """
    config_path = _get_config_path()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if config is None:
        logger.info(f"Config file at {config_path} is empty, using defaults")
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    _validate(config, config_path)
    logger.info(f"Configuration loaded successfully from {config_path}")
    return config


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> SyncSettings:
    """
    Resolve run settings from defaults, config file, environment and overrides.

    Priority order (highest first):
    1. overrides (CLI flags); None values are ignored
    2. KAMAL_SECRETS_PROJECT environment variable (project only)
    3. Config file, when one exists
    4. Built-in defaults

    Raises:
        ConfigError: If an existing config file is invalid
    """
    try:
        config = load_config()
    except FileNotFoundError:
        logger.debug("No config file found, using defaults")
        config = {}

    registry = config.get("registry") or {}
    values: Dict[str, Any] = {key: config[key] for key in _STRING_KEYS if key in config}
    if "timeout" in registry:
        values["timeout"] = float(registry["timeout"])
    for key in _REGISTRY_STRING_KEYS:
        if key in registry:
            values[key] = registry[key]

    project_env = os.getenv(PROJECT_ENV_VAR)
    if project_env:
        logger.debug(f"Using {PROJECT_ENV_VAR} from environment: {project_env}")
        values["project"] = project_env

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    values.setdefault("project", None)
    return SyncSettings(**values)
