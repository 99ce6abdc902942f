"""Log and filesystem sinks injected into the step runner."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from differencify.errors import WriteFailed

logger = logging.getLogger(__name__)


class LogSink(Protocol):
    def log(self, message: str) -> None: ...


class FileSink(Protocol):
    def write_file(self, path: str, data: bytes) -> None: ...


class LoggingLogSink:
    """Forwards run messages to the ``differencify`` logger."""

    def __init__(self, name: str = "differencify"):
        self._logger = logging.getLogger(name)

    def log(self, message: str) -> None:
        self._logger.info(message)


class DiskFileSink:
    """Writes screenshot bytes to disk, creating parent directories as needed."""

    def write_file(self, path: str, data: bytes) -> None:
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise WriteFailed(path, str(e)) from e
        logger.debug("Wrote %d bytes to %s", len(data), path)
