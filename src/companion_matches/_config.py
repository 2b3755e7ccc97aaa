# Area: Shared
# PRD: docs/prd-match-lifecycle.md
"""
companion_matches._config — Daemon Configuration
=================================================

Loads the daemon config from a JSON file, the environment (``.env``
is honored via python-dotenv) and built-in defaults, in that order of
precedence: environment > file > defaults.

Example config.json:

    {
        "db_path": "matches.db",
        "protocol_log": true,
        "recovery": {"timeout_secs": 3.0},
        "packs": {
            "league": {
                "subpacks": {
                    "0": {"columns": {"kills": "integer", "champion": "text"}}
                }
            }
        }
    }
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger("companion_matches.config")

DEFAULT_CONFIG: Dict[str, Any] = {
    "db_path": "companion_matches.db",
    "log_file": "companion_matches.log",
    "log_level": "INFO",
    "protocol_log": False,
    "capture": {
        "default_pre_capture_secs": 15.0,
        "default_post_capture_secs": 5.0,
    },
    "recovery": {
        "timeout_secs": 5.0,
        "concurrency": 4,
        "interval_secs": 60.0,
        "stuck_after_attempts": 5,
    },
    "packs": {},
}

# Environment variable -> (config path, converter)
ENV_MAPPINGS = {
    "COMPANION_DB_PATH": (("db_path",), str),
    "COMPANION_LOG_FILE": (("log_file",), str),
    "COMPANION_LOG_LEVEL": (("log_level",), str),
    "COMPANION_RECOVERY_TIMEOUT_SECS": (("recovery", "timeout_secs"), float),
    "COMPANION_RECOVERY_CONCURRENCY": (("recovery", "concurrency"), int),
    "COMPANION_RECOVERY_INTERVAL_SECS": (("recovery", "interval_secs"), float),
}


def merge_defaults(config: Dict[str, Any], defaults: Dict[str, Any]) -> None:
    """Fill keys missing from ``config`` with ``defaults``, recursively."""
    for key, default in defaults.items():
        if key not in config:
            config[key] = copy.deepcopy(default)
        elif isinstance(default, dict) and isinstance(config[key], dict):
            merge_defaults(config[key], default)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the daemon configuration.

    Args:
        config_path: Path to a JSON config file (optional)

    Returns:
        Complete, validated config dict

    Raises:
        ConfigError: If the file cannot be read or a value is invalid
    """
    config: Dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            with open(path, encoding="utf-8") as f:
                config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
        if not isinstance(config, dict):
            raise ConfigError(f"Config file {config_path} must hold a JSON object")

    load_dotenv()

    # Override with environment variables
    for env_key, (keys, convert) in ENV_MAPPINGS.items():
        if env_key not in os.environ:
            continue
        raw = os.environ[env_key]
        try:
            value = convert(raw)
        except ValueError:
            raise ConfigError(f"{env_key}={raw!r} is not a valid {convert.__name__}") from None
        target = config
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value

    merge_defaults(config, DEFAULT_CONFIG)
    validate_config(config)
    logger.debug(f"Config loaded (db_path={config['db_path']}, packs={sorted(config['packs'])})")
    return config


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate types and ranges of a complete config.

    Args:
        config: Configuration dict (defaults already merged)

    Raises:
        ConfigError: On the first invalid value
    """
    for key in ("db_path", "log_level"):
        if not isinstance(config.get(key), str) or not config[key]:
            raise ConfigError(f"'{key}' must be a non-empty string")
    if config.get("log_file") is not None and not isinstance(config["log_file"], str):
        raise ConfigError("'log_file' must be a string or null")

    capture = config.get("capture")
    if not isinstance(capture, dict):
        raise ConfigError("'capture' must be an object")
    for key in ("default_pre_capture_secs", "default_post_capture_secs"):
        value = capture.get(key)
        if not _is_number(value) or value < 0:
            raise ConfigError(f"'capture.{key}' must be a non-negative number")

    recovery = config.get("recovery")
    if not isinstance(recovery, dict):
        raise ConfigError("'recovery' must be an object")
    for key in ("timeout_secs", "interval_secs"):
        value = recovery.get(key)
        if not _is_number(value) or value <= 0:
            raise ConfigError(f"'recovery.{key}' must be a positive number")
    for key in ("concurrency", "stuck_after_attempts"):
        value = recovery.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise ConfigError(f"'recovery.{key}' must be a positive integer")

    packs = config.get("packs")
    if not isinstance(packs, dict):
        raise ConfigError("'packs' must be an object keyed by pack_id")
    for pack_id, pack_config in packs.items():
        if not pack_id:
            raise ConfigError("pack_id must be a non-empty string")
        if not isinstance(pack_config, dict):
            raise ConfigError(f"Pack '{pack_id}' config must be an object")
        subpacks = pack_config.get("subpacks", {})
        if not isinstance(subpacks, dict):
            raise ConfigError(f"Pack '{pack_id}': 'subpacks' must be an object")
        for index, subpack_config in subpacks.items():
            if not isinstance(subpack_config, dict) or not isinstance(
                subpack_config.get("columns", {}), dict
            ):
                raise ConfigError(
                    f"Pack '{pack_id}' subpack {index}: 'columns' must be an object"
                )
