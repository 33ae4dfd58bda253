"""Turn raw child output into prefixed lines on the terminal writer."""

import errno
import logging
import threading
from collections.abc import Callable
from typing import BinaryIO

from shunt.constants import READ_SIZE
from shunt.errors import StreamReadError, WriteError
from shunt.models import LineEvent
from shunt.writer import TerminalWriter

log = logging.getLogger(__name__)


def _strip_cr(line: bytes) -> bytes:
    # PTYs translate "\n" to "\r\n"; the writer adds its own terminator.
    if line.endswith(b"\r"):
        return line[:-1]
    return line


class LineSplitter:
    """Reassemble newline-delimited lines from arbitrarily sized chunks.

    With ``strip_cr`` one carriage return before each newline is
    dropped, for PTY output where the line discipline adds it.
    """

    def __init__(self, strip_cr: bool = False) -> None:
        self._buffer = b""
        self._strip_cr = strip_cr

    def feed(self, data: bytes) -> list[bytes]:
        """Add ``data`` and return every line it completed."""
        self._buffer += data
        *lines, self._buffer = self._buffer.split(b"\n")
        if self._strip_cr:
            return [_strip_cr(line) for line in lines]
        return lines

    def finish(self) -> bytes | None:
        """Return the unterminated remainder, or None when nothing is left."""
        rest, self._buffer = self._buffer, b""
        return rest or None


def read_chunk(stream: BinaryIO) -> bytes:
    """Read whatever is available; an empty result means end of stream."""
    try:
        return stream.read(READ_SIZE) or b""
    except OSError as e:
        # Linux reports EIO on a PTY master once every slave fd is closed.
        if e.errno == errno.EIO:
            return b""
        raise StreamReadError(str(e)) from e


class LineMultiplexer:
    """Reader threads for one child, one per output stream.

    Each completed line is handed to the writer as soon as it is read. At end
    of stream a trailing partial line is flushed as a final event. If the
    writer fails, the reader stops and reports the error via ``on_fatal``.
    ``tty`` marks PTY streams, whose line endings carry an extra "\\r".
    """

    def __init__(
        self,
        name: str,
        streams: list[BinaryIO],
        writer: TerminalWriter,
        *,
        tty: bool = False,
        on_fatal: Callable[[WriteError], None] | None = None,
    ) -> None:
        self.name = name
        self._tty = tty
        self._streams = streams
        self._writer = writer
        self._on_fatal = on_fatal
        self._threads: list[threading.Thread] = []

    def start(self) -> None:
        for index, stream in enumerate(self._streams):
            thread = threading.Thread(
                target=self._pump,
                args=(stream,),
                name=f"shunt-read-{self.name}-{index}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    def join(self, timeout: float | None = None) -> None:
        for thread in self._threads:
            thread.join(timeout)

    def is_alive(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def _pump(self, stream: BinaryIO) -> None:
        splitter = LineSplitter(strip_cr=self._tty)
        try:
            while True:
                try:
                    data = read_chunk(stream)
                except StreamReadError as e:
                    log.warning("%s: reading output failed: %s", self.name, e)
                    break
                if not data:
                    break
                for line in splitter.feed(data):
                    self._writer.write(LineEvent(self.name, line))
            tail = splitter.finish()
            if tail is not None:
                self._writer.write(LineEvent(self.name, tail, is_final_partial=True))
        except WriteError as e:
            log.debug("%s: reader stopped: %s", self.name, e)
            if self._on_fatal is not None:
                self._on_fatal(e)
        log.debug("%s: stream %r drained", self.name, stream)
