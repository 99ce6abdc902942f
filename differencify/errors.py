"""Error taxonomy for a run. Every kind aborts the run and reaches the caller."""

from __future__ import annotations

from typing import Any


class DifferencifyError(Exception):
    """Base class for all runner failures."""


class NavigationFailed(DifferencifyError):
    """Navigation was rejected by the browser or timed out."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}" if reason else f"Navigation to {url} failed")


class CaptureFailed(DifferencifyError):
    """A screenshot or page interaction primitive raised."""


class WriteFailed(DifferencifyError):
    """A screenshot could not be persisted."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not write {path}: {reason}" if reason else f"Could not write {path}")


class ComparisonFailed(DifferencifyError):
    """The comparator rejected a screenshot.

    ``payload`` carries whatever the comparator rejected with: a
    ``DiffResult`` for a pixel mismatch, or a plain message.
    """

    def __init__(self, message: str, payload: Any = None):
        self.payload = payload if payload is not None else message
        super().__init__(message)
