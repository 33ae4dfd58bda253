"""Run every command, drain its output, and aggregate exit codes."""

import logging
import signal
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from shunt.constants import DEFAULT_GRACE_PERIOD
from shunt.errors import LaunchError, WriteError
from shunt.launcher import ChildHandle, launch
from shunt.models import ExitOutcome, ResolvedCommand, ShutdownPolicy
from shunt.multiplexer import LineMultiplexer
from shunt.writer import TerminalWriter

log = logging.getLogger(__name__)


class ChildState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    DRAINING = "draining"
    EXITED = "exited"


_LIVE_STATES = (ChildState.RUNNING, ChildState.DRAINING)


@dataclass
class _Child:
    command: ResolvedCommand
    state: ChildState = ChildState.STARTING
    handle: ChildHandle | None = None
    multiplexer: LineMultiplexer | None = None
    waiter: threading.Thread | None = None

    @property
    def name(self) -> str:
        return self.command.name


def aggregate_exit_code(outcomes: Mapping[str, ExitOutcome]) -> int:
    """Return 0 if every child succeeded, else the first failure's exit code.

    ``outcomes`` must be in launch order.
    """
    for outcome in outcomes.values():
        if not outcome.succeeded:
            return outcome.process_exit_code
    return 0


class Supervisor:
    """Owns every child for the duration of one run.

    Children move through STARTING, RUNNING, DRAINING (the process has
    exited but its output may still be buffered) and EXITED. State changes
    and outcomes are guarded by one condition variable; terminal output goes
    through the shared TerminalWriter only.
    """

    def __init__(
        self,
        writer: TerminalWriter,
        *,
        is_outer_tty: bool = False,
        shutdown: ShutdownPolicy = ShutdownPolicy.CONTINUE,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        launcher: Callable[[ResolvedCommand, bool], ChildHandle] = launch,
    ) -> None:
        self._writer = writer
        self._is_outer_tty = is_outer_tty
        self._shutdown = shutdown
        self._grace_period = grace_period
        self._launch = launcher
        self._changed = threading.Condition()
        self._children: list[_Child] = []
        self._outcomes: dict[str, ExitOutcome] = {}
        self._fatal: WriteError | None = None
        self._stop_signal: int | None = None
        self._signals_received = 0

    def state_of(self, name: str) -> ChildState:
        with self._changed:
            for child in self._children:
                if child.name == name:
                    return child.state
        raise KeyError(name)

    def run_all(self, commands: Sequence[ResolvedCommand]) -> dict[str, ExitOutcome]:
        """Launch every command and block until all of them have exited.

        Returns one outcome per command, keyed by name in launch order.

        If terminal output fails, the remaining children are stopped through
        on_interrupt and WriteError is raised without waiting for their output,
        so the call returns within the grace period. Any other exception kills
        every child that was started before it propagates.
        """
        with self._changed:
            self._children = [_Child(command) for command in commands]
        try:
            for child in self._children:
                self._start(child)
            with self._changed:
                self._changed.wait_for(self._settled)
        except BaseException:
            log.error("supervisor failed; killing all commands")
            self._signal_children(signal.SIGKILL, _LIVE_STATES)
            raise
        if self._fatal is not None:
            self.on_interrupt(signal.SIGTERM)
            raise self._fatal
        for child in self._children:
            if child.waiter is not None:
                child.waiter.join()
        with self._changed:
            return {child.name: self._outcomes[child.name] for child in self._children}

    def on_interrupt(self, signum: int = signal.SIGTERM) -> None:
        """Forward ``signum`` to live children, then wait for them to exit.

        Children whose output is still open after the grace period, including
        ones kept draining by background descendants, are killed.
        """
        with self._changed:
            if self._stop_signal is None:
                self._stop_signal = signum
        targets = self._signal_children(signum, _LIVE_STATES)
        if not targets:
            return
        log.info("sent %s to %d command(s)", signal.Signals(signum).name, len(targets))

        def _all_exited() -> bool:
            return all(child.state is ChildState.EXITED for child in targets)

        with self._changed:
            stopped = self._changed.wait_for(_all_exited, timeout=self._grace_period)
        if not stopped:
            survivors = self._signal_children(signal.SIGKILL, _LIVE_STATES)
            log.warning(
                "killed %s after %.1fs grace period",
                ", ".join(child.name for child in survivors),
                self._grace_period,
            )

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to on_interrupt. Main thread only."""
        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)

    def _handle_signal(self, signum: int, _frame) -> None:
        self._signals_received += 1
        if self._signals_received > 1:
            # A second request means the user is done waiting.
            self._signal_children(signal.SIGKILL, _LIVE_STATES)
            return
        # Run on a worker so the main thread keeps joining and output keeps flowing.
        threading.Thread(
            target=self.on_interrupt, args=(signum,), name="shunt-interrupt", daemon=True
        ).start()

    # ------------------------------------------------------------------ helpers
    def _settled(self) -> bool:
        # Caller holds self._changed.
        if self._fatal is not None:
            return True
        return all(child.state is ChildState.EXITED for child in self._children)

    def _start(self, child: _Child) -> None:
        if self._stop_signal is not None or self._fatal is not None:
            self._finish(child, ExitOutcome(child.name, launch_error="not started: shutting down"))
            return
        try:
            handle = self._launch(child.command, self._is_outer_tty)
        except LaunchError as e:
            log.debug("%s: launch failed: %s", child.name, e.reason)
            self._report(child.name, f"failed to start: {e.reason}")
            self._finish(child, ExitOutcome(child.name, launch_error=e.reason))
            return

        multiplexer = LineMultiplexer(
            child.name, handle.streams, self._writer, tty=handle.tty, on_fatal=self._on_fatal
        )
        with self._changed:
            child.handle = handle
            child.multiplexer = multiplexer
            self._set_state(child, ChildState.RUNNING)
            late_signal = self._stop_signal
        if late_signal is not None:
            # Shutdown began while this child was being spawned.
            handle.send_signal(late_signal)

        multiplexer.start()
        child.waiter = threading.Thread(
            target=self._wait,
            args=(child, handle, multiplexer),
            name=f"shunt-wait-{child.name}",
            daemon=True,
        )
        child.waiter.start()

    def _wait(self, child: _Child, handle: ChildHandle, multiplexer: LineMultiplexer) -> None:
        returncode = handle.wait()
        with self._changed:
            self._set_state(child, ChildState.DRAINING)
        multiplexer.join()
        handle.close()
        outcome = ExitOutcome.from_returncode(child.name, returncode)
        self._report(child.name, outcome.describe())
        self._finish(child, outcome)

    def _finish(self, child: _Child, outcome: ExitOutcome) -> None:
        with self._changed:
            self._outcomes[child.name] = outcome
            self._set_state(child, ChildState.EXITED)
            stopping = self._stop_signal is not None or self._fatal is not None
        if stopping or not self._should_cascade(outcome):
            return
        log.info("%s %s; stopping remaining commands", child.name, outcome.describe())
        threading.Thread(
            target=self.on_interrupt, name="shunt-cascade", daemon=True
        ).start()

    def _should_cascade(self, outcome: ExitOutcome) -> bool:
        if self._shutdown is ShutdownPolicy.CASCADE:
            return True
        if self._shutdown is ShutdownPolicy.FAIL_FAST:
            return not outcome.succeeded
        return False

    def _set_state(self, child: _Child, state: ChildState) -> None:
        # Caller holds self._changed.
        log.debug("%s: %s -> %s", child.name, child.state.value, state.value)
        child.state = state
        self._changed.notify_all()

    def _signal_children(
        self, signum: int, states: tuple[ChildState, ...]
    ) -> list[_Child]:
        with self._changed:
            targets = [
                (child, child.handle)
                for child in self._children
                if child.state in states and child.handle is not None
            ]
        for _child, handle in targets:
            handle.send_signal(signum)
        return [child for child, _handle in targets]

    def _report(self, name: str, text: str) -> None:
        try:
            self._writer.write_status(name, text)
        except WriteError as e:
            self._on_fatal(e)

    def _on_fatal(self, error: WriteError) -> None:
        with self._changed:
            if self._fatal is not None:
                return
            self._fatal = error
            self._changed.notify_all()
        log.error("terminal output failed, stopping all commands: %s", error)
