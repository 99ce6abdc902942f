"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock

import pytest
from PIL import Image

from differencify.errors import ComparisonFailed
from differencify.models.config import RunnerOptions
from differencify.models.test_spec import ActionKind, RunMode, Step, TestSpec
from differencify.runner import BrowserRunner


# ============================================================================
# Recording collaborators
# ============================================================================


class RecordingLogSink:
    """Keeps every logged message in order."""

    def __init__(self):
        self.messages: list[str] = []

    def log(self, message: str) -> None:
        self.messages.append(message)


class RecordingFileSink:
    """Records (path, bytes) pairs instead of touching the disk."""

    def __init__(self):
        self.writes: list[tuple[str, bytes]] = []

    def write_file(self, path: str, data: bytes) -> None:
        self.writes.append((path, data))


class StubComparator:
    """Resolves for every path except those listed in ``reject``."""

    def __init__(self, message: str = "Writing the diff image to disk", reject: set[str] | None = None):
        self.message = message
        self.reject = reject or set()
        self.calls: list[str] = []

    async def compare(self, path: str) -> str:
        self.calls.append(path)
        if path in self.reject:
            raise ComparisonFailed("error", payload={"path": path})
        return self.message


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def options() -> RunnerOptions:
    """Default runner options."""
    return RunnerOptions()


@pytest.fixture
def log_sink() -> RecordingLogSink:
    return RecordingLogSink()


@pytest.fixture
def file_sink() -> RecordingFileSink:
    return RecordingFileSink()


@pytest.fixture
def comparator() -> StubComparator:
    return StubComparator()


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock browser session returning fake PNG bytes."""
    session = AsyncMock()
    session.goto = AsyncMock()
    session.close = AsyncMock()
    session.screenshot_document = AsyncMock(return_value=b"png file")
    session.screenshot_element = AsyncMock(return_value=b"png element")
    session.click = AsyncMock()
    session.wait = AsyncMock()
    session.wait_for_selector = AsyncMock()
    return session


@pytest.fixture
def session_factory(mock_session: AsyncMock) -> AsyncMock:
    return AsyncMock(return_value=mock_session)


@pytest.fixture
def default_spec() -> TestSpec:
    """The stock spec: open www.example.com and capture the whole page."""
    return TestSpec(
        name="default",
        type=RunMode.UPDATE,
        steps=[
            Step(action=ActionKind.GOTO, value="www.example.com"),
            Step(action=ActionKind.CAPTURE, value="document"),
        ],
    )


@pytest.fixture
def runner(
    options: RunnerOptions,
    session_factory: AsyncMock,
    comparator: StubComparator,
    log_sink: RecordingLogSink,
    file_sink: RecordingFileSink,
) -> BrowserRunner:
    """A runner wired entirely to test doubles."""
    return BrowserRunner(
        options,
        session_factory=session_factory,
        comparator=comparator,
        log_sink=log_sink,
        file_sink=file_sink,
    )


# ============================================================================
# Helper Functions
# ============================================================================


def write_png(path, size=(10, 10), color=(255, 255, 255), patch=None):
    """Write a solid PNG, optionally painting ``patch`` = (box, color) over it."""
    image = Image.new("RGB", size, color)
    if patch:
        box, patch_color = patch
        image.paste(patch_color, box)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, "PNG")
    return path


@pytest.fixture
def png_writer():
    """Fixture that provides the write_png helper."""
    return write_png
