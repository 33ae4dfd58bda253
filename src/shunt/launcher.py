"""Start child processes attached to a pseudo-terminal or to pipes."""

import fcntl
import logging
import os
import struct
import subprocess
import sys
import termios
from dataclasses import dataclass
from typing import BinaryIO

from shunt.errors import LaunchError
from shunt.models import ResolvedCommand, TtyPolicy
from shunt.workdir import check_workdir

log = logging.getLogger(__name__)


@dataclass
class ChildHandle:
    """A running child and the output stream(s) the supervisor reads from.

    In PTY mode ``streams`` holds the master side only, which carries stdout
    and stderr merged. In pipe mode it holds the stdout and stderr read ends.
    """

    name: str
    process: subprocess.Popen
    streams: list[BinaryIO]
    tty: bool

    @property
    def pid(self) -> int:
        return self.process.pid

    def wait(self) -> int:
        """Block until the child exits and return its return code."""
        return self.process.wait()

    def send_signal(self, signum: int) -> bool:
        """Signal the child's process group; return False once the group is empty.

        The group outlives the child itself while background descendants still
        hold its output, so it is signalled even after the child was reaped.
        """
        try:
            os.killpg(self.process.pid, signum)
        except ProcessLookupError:
            return False
        except PermissionError:
            self.process.send_signal(signum)
        return True

    def close(self) -> None:
        for stream in self.streams:
            stream.close()


def effective_tty(policy: TtyPolicy, is_outer_tty: bool) -> bool:
    """Decide whether a command gets a pseudo-terminal."""
    if policy is TtyPolicy.ALWAYS:
        return True
    if policy is TtyPolicy.NEVER:
        return False
    return is_outer_tty


def _winsize(fd: int) -> tuple[int, int, int, int]:
    """Return (rows, cols, xpixel, ypixel) for the given tty fd."""
    return struct.unpack("HHHH", fcntl.ioctl(fd, termios.TIOCGWINSZ, b"\x00" * 8))


def _set_winsize(fd: int, rows: int, cols: int, xp: int = 0, yp: int = 0) -> None:
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, xp, yp))


def _copy_winsize(slave_fd: int) -> None:
    """Match the slave PTY size to the real terminal, when there is one."""
    try:
        stdin_fd = sys.stdin.fileno()
        if not os.isatty(stdin_fd):
            return
        rows, cols, xp, yp = _winsize(stdin_fd)
        _set_winsize(slave_fd, rows, cols, xp, yp)
    except (AttributeError, OSError, ValueError) as e:
        log.debug("could not copy terminal size: %s", e)


def _spawn_error(command: ResolvedCommand, exc: OSError | ValueError) -> LaunchError:
    if not isinstance(exc, OSError):
        return LaunchError(command.name, str(exc))
    reason = exc.strerror or str(exc)
    if exc.filename:
        reason = f"{reason}: {exc.filename}"
    return LaunchError(command.name, reason)


def _launch_pty(command: ResolvedCommand, env: dict[str, str]) -> ChildHandle:
    try:
        master_fd, slave_fd = os.openpty()
    except OSError as e:
        raise LaunchError(command.name, f"could not allocate a pseudo-terminal: {e}") from e
    try:
        _copy_winsize(slave_fd)
        process = subprocess.Popen(
            list(command.argv),
            stdin=slave_fd,
            stdout=slave_fd,
            stderr=slave_fd,
            cwd=command.workdir,
            env=env,
            start_new_session=True,
        )
    except (OSError, ValueError) as e:
        os.close(master_fd)
        raise _spawn_error(command, e) from e
    finally:
        # The child holds its own copy; keeping ours would delay end-of-stream.
        os.close(slave_fd)
    master = os.fdopen(master_fd, "rb", buffering=0)
    return ChildHandle(name=command.name, process=process, streams=[master], tty=True)


def _launch_pipes(command: ResolvedCommand, env: dict[str, str]) -> ChildHandle:
    try:
        process = subprocess.Popen(
            list(command.argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            bufsize=0,
            cwd=command.workdir,
            env=env,
            start_new_session=True,
        )
    except (OSError, ValueError) as e:
        raise _spawn_error(command, e) from e
    streams = [process.stdout, process.stderr]
    return ChildHandle(name=command.name, process=process, streams=streams, tty=False)


def launch(command: ResolvedCommand, is_outer_tty: bool) -> ChildHandle:
    """Start one command and return its handle.

    Raises LaunchError when the working directory is invalid or the
    executable cannot be started. Nothing is left open on failure.
    """
    check_workdir(command.name, command.workdir)
    use_tty = effective_tty(command.tty, is_outer_tty)
    env = command.env_mapping()
    if use_tty:
        handle = _launch_pty(command, env)
    else:
        handle = _launch_pipes(command, env)
    log.debug(
        "started %s pid=%d tty=%s argv=%r", command.name, handle.pid, use_tty, command.argv
    )
    return handle
