"""Plain line logging to stdout/stderr or to an append-only file."""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional


class LineHandler(logging.Handler):
    """Writes each record's message as a bare line.

    Without a file, errors and warnings go to stderr and the rest to stdout.
    """

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        super().__init__(level=logging.INFO)
        self._file = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = record.getMessage()
        except Exception:
            self.handleError(record)
            return
        if self._file is not None:
            target = self._file
        elif record.levelno > logging.INFO:
            target = sys.stderr
        else:
            target = sys.stdout
        try:
            target.write(text + "\n")
            target.flush()
        except (OSError, ValueError):
            pass

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        super().close()


def init_logging(log_file=None) -> LineHandler:
    """Install a LineHandler on the root logger at INFO level."""
    stream = None
    if log_file is not None:
        try:
            stream = open(log_file, "a", encoding="utf-8")
        except OSError as err:
            raise OSError(f"Failed to open the log file at '{log_file}'") from err
    handler = LineHandler(stream)
    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, LineHandler)]:
        root.removeHandler(existing)
        existing.close()
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    return handler