"""Launch-ready command model."""

from dataclasses import dataclass
from pathlib import Path

from shunt.models.command_spec import TtyPolicy


@dataclass(frozen=True)
class ResolvedCommand:
    """A command with its working directory and environment fully materialized."""

    name: str
    argv: tuple[str, ...]
    workdir: Path
    env: tuple[str, ...]
    tty: TtyPolicy = TtyPolicy.AUTO

    def env_mapping(self) -> dict[str, str]:
        """Return the environment as a mapping suitable for process creation."""
        mapping: dict[str, str] = {}
        for entry in self.env:
            key, _, value = entry.partition("=")
            mapping[key] = value
        return mapping
