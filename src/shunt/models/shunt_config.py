"""Top-level configuration model for shunt."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shunt.models.command_spec import CommandSpec


class ShutdownPolicy(str, Enum):
    """What happens to the other children when one of them exits."""

    CONTINUE = "continue"
    FAIL_FAST = "fail-fast"
    CASCADE = "cascade"


class ShuntConfig(BaseModel):
    """Normalized configuration handed to the supervisor."""

    model_config = ConfigDict(extra="forbid")

    commands: list[CommandSpec]
    config_dir: Path
    shutdown: ShutdownPolicy | None = None
    grace_period: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_unique_names(self) -> "ShuntConfig":
        seen: set[str] = set()
        for command in self.commands:
            if command.name in seen:
                raise ValueError(f"duplicate command name: {command.name!r}")
            seen.add(command.name)
        return self
