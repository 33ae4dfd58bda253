"""Load and validate shunt configuration files."""

import json
import logging
import os
from pathlib import Path
from typing import Any

import json5
from pydantic import ValidationError

from shunt.constants import DEFAULT_GRACE_PERIOD
from shunt.errors import ConfigError
from shunt.models import ShutdownPolicy, ShuntConfig

log = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".json", ".json5"}
SHUTDOWN_ENV = "SHUNT_SHUTDOWN"
GRACE_PERIOD_ENV = "SHUNT_GRACE_PERIOD"


def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise ConfigError(f"duplicate key in config: {key!r}")
        result[key] = value
    return result


def _decode(text: str, config_path: Path) -> Any:
    """Decode JSON, or JSON5 (comments, trailing commas) for .json5 files."""
    if config_path.suffix.lower() == ".json5":
        try:
            return json5.loads(text, object_pairs_hook=_reject_duplicate_keys)
        except ValueError as e:
            raise ConfigError(f"could not parse JSON5 config file {config_path}: {e}") from e
    try:
        return json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as e:
        raise ConfigError(f"could not parse JSON config file {config_path}: {e}") from e


def parse_config(data: Any, config_dir: Path) -> ShuntConfig:
    """Normalize decoded config data into a ShuntConfig.

    Each command is either an argument list or an object with ``argv`` and
    optional ``workdir``, ``tty`` and ``env``. Command order follows the file.
    """
    if not isinstance(data, dict):
        raise ConfigError("config must be a JSON object")
    raw_commands = data.get("commands")
    if not isinstance(raw_commands, dict):
        raise ConfigError('"commands" must be an object mapping names to commands')

    commands = []
    for name, entry in raw_commands.items():
        if isinstance(entry, list):
            entry = {"argv": entry}
        elif not isinstance(entry, dict):
            raise ConfigError(f"command {name!r} must be an argument list or an object")
        if "name" in entry:
            raise ConfigError(f"command {name!r}: the command name comes from its key")
        commands.append({**entry, "name": name})

    settings = {key: value for key, value in data.items() if key != "commands"}
    try:
        return ShuntConfig.model_validate(
            {**settings, "commands": commands, "config_dir": config_dir}
        )
    except ValidationError as e:
        raise ConfigError(f"invalid config:\n{e}") from e


def load_config(path: str | os.PathLike[str]) -> ShuntConfig:
    """Read a config file; its directory becomes the base for relative paths."""
    try:
        config_path = Path(path).resolve(strict=True)
    except OSError as e:
        raise ConfigError(f"could not open config: {path}") from e
    if config_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        ext = config_path.suffix or "(none)"
        raise ConfigError(f"unknown file extension for config file: {ext}")
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"could not read config {config_path}: {e}") from e
    data = _decode(text, config_path)
    log.debug("loaded config from %s", config_path)
    return parse_config(data, config_path.parent)


def get_shutdown_policy(config: ShuntConfig, override: str | None = None) -> ShutdownPolicy:
    """Return the shutdown policy from the CLI, the config, the env, or the default."""
    value = override
    if value is None and config.shutdown is not None:
        return config.shutdown
    if value is None:
        value = os.environ.get(SHUTDOWN_ENV)
    if value is None:
        return ShutdownPolicy.CONTINUE
    try:
        return ShutdownPolicy(value.strip().lower())
    except ValueError as e:
        choices = ", ".join(policy.value for policy in ShutdownPolicy)
        raise ConfigError(f"invalid shutdown policy {value!r} (choose from {choices})") from e


def get_grace_period(config: ShuntConfig, override: float | None = None) -> float:
    """Return the grace period from the CLI, the config, the env, or the default."""
    if override is not None:
        if override <= 0:
            raise ConfigError("grace period must be positive")
        return override
    if config.grace_period is not None:
        return config.grace_period
    value = os.environ.get(GRACE_PERIOD_ENV)
    if value is None:
        return DEFAULT_GRACE_PERIOD
    try:
        grace_period = float(value)
    except ValueError as e:
        raise ConfigError(f"{GRACE_PERIOD_ENV} must be a number, got {value!r}") from e
    if grace_period <= 0:
        raise ConfigError(f"{GRACE_PERIOD_ENV} must be positive")
    return grace_period
