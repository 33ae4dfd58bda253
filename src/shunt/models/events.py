"""Values passed between the multiplexer, writer, and supervisor."""

import signal
from dataclasses import dataclass

from shunt.constants import LAUNCH_FAILURE_EXIT_CODE, SIGNAL_EXIT_OFFSET


@dataclass(frozen=True)
class LineEvent:
    """One line of child output, ready to be prefixed and displayed."""

    command_name: str
    raw_bytes: bytes
    is_final_partial: bool = False


@dataclass(frozen=True)
class ExitOutcome:
    """How a child finished: an exit code, a signal, or a launch failure."""

    command_name: str
    exit_code: int | None = None
    signal: int | None = None
    launch_error: str | None = None

    @classmethod
    def from_returncode(cls, command_name: str, returncode: int) -> "ExitOutcome":
        """Build an outcome from a ``subprocess`` style return code."""
        if returncode < 0:
            return cls(command_name, signal=-returncode)
        return cls(command_name, exit_code=returncode)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def process_exit_code(self) -> int:
        """Shell-style exit code representing this outcome."""
        if self.launch_error is not None:
            return LAUNCH_FAILURE_EXIT_CODE
        if self.signal is not None:
            return SIGNAL_EXIT_OFFSET + self.signal
        return self.exit_code if self.exit_code is not None else 1

    def describe(self) -> str:
        if self.launch_error is not None:
            return f"failed to start: {self.launch_error}"
        if self.signal is not None:
            try:
                name = signal.Signals(self.signal).name
            except ValueError:
                name = str(self.signal)
            return f"terminated by {name}"
        return f"exited with code {self.exit_code}"
