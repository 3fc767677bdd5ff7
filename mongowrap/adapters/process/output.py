"""Buffering of child output on the execution host.

When the server runs on a remote agent, its output cannot be written to
the controller's log directly. It is held here until the controller reads
it by cursor. A read acknowledges every line before its cursor, so only
unread lines take up space.
"""

import logging
import sys
import threading
from collections import deque

from mongowrap.core.build_log import BuildLog

logger = logging.getLogger(__name__)

STALL_TIMEOUT = 30.0
"""Seconds a writer waits for the reader before dropping the oldest line."""


class BufferedOutput(BuildLog):
    """BuildLog that holds lines until a reader acknowledges them.

    Lines are also echoed to the agent's own stream. Each line gets a
    monotonic sequence number. When max_lines lines are unread, writers
    wait for the reader instead of overwriting, which pushes back on the
    child through its output pipe. A reader that never comes back costs at
    most stall_timeout per line before the oldest line is dropped.

    Once closed (the process is gone), writers no longer wait and the
    buffer is no longer bounded: what is left is whatever the OS pipe
    still held.
    """

    def __init__(
        self,
        max_lines: int = 10_000,
        echo: bool = True,
        stall_timeout: float = STALL_TIMEOUT,
    ):
        """Initialize buffer.

        Args:
            max_lines: Unread lines held before writers wait
            echo: Also write lines to the agent's stderr
            stall_timeout: Seconds to wait for the reader when full
        """
        super().__init__(stream=sys.stderr)
        self.echo = echo
        self.max_lines = max_lines
        self.stall_timeout = stall_timeout
        self.dropped = 0
        self._lines: deque[tuple[int, str]] = deque()
        self._next_seq = 0
        self._closed = False
        self._changed = threading.Condition()

    @property
    def closed(self) -> bool:
        return self._closed

    def _has_room(self) -> bool:
        return self._closed or len(self._lines) < self.max_lines

    def _write(self, text: str) -> None:
        with self._changed:
            for line in text.splitlines():
                if not self._changed.wait_for(self._has_room, timeout=self.stall_timeout):
                    self._lines.popleft()
                    self.dropped += 1
                    if self.dropped == 1:
                        logger.warning("Output reader stalled; dropping oldest lines")
                self._lines.append((self._next_seq, line))
                self._next_seq += 1
        if self.echo:
            super()._write(text)

    def read_since(self, cursor: int) -> tuple[list[str], int]:
        """Return lines at or after cursor and the cursor for the next read.

        Lines before cursor are acknowledged and released.
        """
        with self._changed:
            while self._lines and self._lines[0][0] < cursor:
                self._lines.popleft()
            lines = [line for _, line in self._lines]
            self._changed.notify_all()
            return lines, self._next_seq

    def close(self) -> None:
        """Stop making writers wait."""
        with self._changed:
            self._closed = True
            self._changed.notify_all()
