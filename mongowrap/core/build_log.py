"""Build log sink.

Supervisory messages are written as single ``[MongoDB] <message>`` lines;
the server's own output is written verbatim. Both go to the same text
stream, which may be written from output pump threads.
"""

import logging
import sys
import threading
from typing import TextIO

logger = logging.getLogger(__name__)

LOG_TAG = "MongoDB"


class BuildLog:
    """Line-oriented, thread-safe writer for the task's log stream."""

    def __init__(self, stream: TextIO | None = None, tag: str = LOG_TAG):
        """Initialize the sink.

        Args:
            stream: Text stream to write to (default: sys.stdout)
            tag: Prefix for supervisory messages
        """
        self.stream = stream if stream is not None else sys.stdout
        self.tag = tag
        self._lock = threading.Lock()

    def log(self, message: str) -> None:
        """Write one tagged supervisory message."""
        logger.debug(message)
        self._write(f"[{self.tag}] {message}\n")

    def write_raw(self, line: str) -> None:
        """Write one line of child output verbatim."""
        if not line.endswith("\n"):
            line += "\n"
        self._write(line)

    def _write(self, text: str) -> None:
        with self._lock:
            self.stream.write(text)
            self.stream.flush()
