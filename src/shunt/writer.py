"""Serialized, line-atomic writes to the terminal."""

import logging
import threading
from collections.abc import Iterable
from typing import BinaryIO

from shunt.colors import colorize, pick_color
from shunt.errors import WriteError
from shunt.models import LineEvent

log = logging.getLogger(__name__)


class TerminalWriter:
    """The single place where child output reaches the real terminal.

    Every line is assembled as prefix + content + newline and written in one
    locked section, so concurrent callers never interleave inside a line.
    Prefixes are padded to the longest known command name and, when color is
    enabled, take their color from the palette in registration order.
    """

    def __init__(
        self,
        stream: BinaryIO,
        names: Iterable[str] = (),
        color: bool = False,
    ) -> None:
        self._stream = stream
        self._color = color
        self._lock = threading.Lock()
        self._broken = False
        self._prefixes: dict[str, bytes] = {}
        names = list(names)
        self._width = max((len(name) for name in names), default=0)
        for name in names:
            self._prefix(name)

    @property
    def broken(self) -> bool:
        return self._broken

    def write(self, event: LineEvent) -> None:
        """Write one line atomically; raise WriteError if output is gone."""
        self._write_line(event.command_name, event.raw_bytes)

    def write_status(self, name: str, text: str) -> None:
        """Write a supervisor message about ``name`` using its prefix."""
        self._write_line(name, text.encode())

    def _prefix(self, name: str) -> bytes:
        prefix = self._prefixes.get(name)
        if prefix is None:
            label = f"[{name}]".ljust(self._width + 2)
            color = pick_color(len(self._prefixes)) if self._color else None
            prefix = (colorize(label, color) + " ").encode()
            self._prefixes[name] = prefix
        return prefix

    def _write_line(self, name: str, body: bytes) -> None:
        with self._lock:
            if self._broken:
                raise WriteError("terminal output is no longer writable")
            data = self._prefix(name) + body + b"\n"
            try:
                view = memoryview(data)
                while view:
                    written = self._stream.write(view)
                    view = view[written or 0 :]
                self._stream.flush()
            except OSError as e:
                self._broken = True
                log.debug("terminal write failed: %s", e)
                raise WriteError(f"could not write to terminal: {e}") from e
