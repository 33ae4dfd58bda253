"""Resolve command working directories relative to the config file."""

import os
from pathlib import Path

from shunt.errors import InvalidWorkdir


def resolve_workdir(declared: str | os.PathLike[str] | None, config_dir: Path) -> Path:
    """Return the absolute working directory for a command.

    Relative paths, and a missing path, are taken relative to the directory
    holding the configuration file, never the caller's current directory.
    """
    if declared is None:
        return Path(config_dir)
    path = Path(declared)
    if path.is_absolute():
        return path
    return Path(config_dir) / path


def check_workdir(name: str, workdir: Path) -> None:
    """Raise InvalidWorkdir unless ``workdir`` is an existing directory."""
    if not workdir.exists():
        raise InvalidWorkdir(name, f"working directory does not exist: {workdir}")
    if not workdir.is_dir():
        raise InvalidWorkdir(name, f"working directory is not a directory: {workdir}")
