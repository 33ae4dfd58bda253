"""Model package for shunt."""

from shunt.models.command_spec import CommandSpec, TtyPolicy
from shunt.models.events import ExitOutcome, LineEvent
from shunt.models.resolved_command import ResolvedCommand
from shunt.models.shunt_config import ShutdownPolicy, ShuntConfig

__all__ = [
    "CommandSpec",
    "ExitOutcome",
    "LineEvent",
    "ResolvedCommand",
    "ShutdownPolicy",
    "ShuntConfig",
    "TtyPolicy",
]
