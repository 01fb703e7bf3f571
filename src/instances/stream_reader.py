"""Stream reader module.

This module contains the StreamReader class that drains one redirected stream of a
child process in a dedicated thread, so the pipe never fills up and blocks the child.
"""

import logging
import threading
import time
import warnings
from collections.abc import Callable
from typing import IO

from instances.events import EventHook
from instances.line_buffer import LineBuffer

logger = logging.getLogger(__name__)


class StreamReader:
    """Dedicated reader that drains a process stream line by line.

    Each line has its terminator stripped, is optionally skipped when blank, is stored
    in the LineBuffer and is then forwarded to the line event on the reader thread.
    End of stream, or a read error, ends the loop; ``on_end`` is always called last.
    """

    def __init__(
        self,
        stream: IO[str],
        buffer: LineBuffer,
        line_received: EventHook[str],
        ignore_empty_lines: bool,
        name: str,
        on_end: Callable[[], None] | None = None,
    ) -> None:
        self._stream = stream
        self._buffer = buffer
        self._line_received = line_received
        self._ignore_empty_lines = ignore_empty_lines
        self._on_end = on_end
        self.name = name
        self.lines_read = 0
        self.last_line_ts: float | None = None
        self._thread: threading.Thread | None = None
        self._finished = threading.Event()

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the reader to reach end of stream. Returns True once it has."""
        return self._finished.wait(timeout)

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    @property
    def thread(self) -> threading.Thread | None:
        return self._thread

    def _process_lines(self) -> None:
        """Read lines until EOF and forward them."""
        for raw_line in iter(self._stream.readline, ""):
            self.lines_read += 1
            self.last_line_ts = time.time()

            line = raw_line.rstrip("\r\n")
            if self._ignore_empty_lines and not line.strip():
                continue

            if not self._buffer.append(line) and self._buffer.dropped == 1:
                logger.debug("%s: buffer full at %s lines, dropping further lines", self.name, self._buffer.capacity)
            self._line_received.fire(line)

    def _handle_io_error(self, e: ValueError | OSError) -> None:
        """Handle IO errors during reading; the stream is treated as ended."""
        # Normal shutdown scenarios include closed file descriptors.
        error_str = str(e)
        if any(msg in error_str for msg in ["closed file", "Bad file descriptor"]):
            logger.debug("%s encountered closed stream: %s", self.name, e)
        else:
            logger.warning("%s encountered error, treating as end of stream: %s", self.name, e)

    def _cleanup_stream(self) -> None:
        """Close the stream safely."""
        if not self._stream.closed:
            try:
                self._stream.close()
            except (ValueError, OSError) as err:
                reader_error_msg = f"{self.name} failed to close stream: {err}"
                warnings.warn(reader_error_msg, stacklevel=2)

    def run(self) -> None:
        """Continuously read lines and forward them until EOF."""
        try:
            self._process_lines()
        except (ValueError, OSError) as e:
            self._handle_io_error(e)
        finally:
            self._cleanup_stream()
            self._finished.set()
            if self._on_end is not None:
                self._on_end()
