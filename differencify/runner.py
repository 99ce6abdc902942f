"""Run controller — owns one browser session per run and the run counter."""

from __future__ import annotations

import logging

from differencify.browser.session import SessionFactory, open_playwright_session
from differencify.compare.comparator import ImageComparator, PixelComparator
from differencify.errors import DifferencifyError
from differencify.executor.step_runner import StepRunner
from differencify.models.config import RunnerOptions
from differencify.models.test_spec import SnapshotSpec, TestSpec
from differencify.sinks import DiskFileSink, FileSink, LogSink, LoggingLogSink

logger = logging.getLogger(__name__)


class BrowserRunner:
    """Runs specs one at a time, each in a fresh browser session.

    Collaborators are injected at construction; anything left out falls back
    to Playwright, the Pillow comparator, the logging sink and the disk sink.
    A runner drives at most one run at a time. Concurrent runs need one
    runner each.
    """

    def __init__(
        self,
        options: RunnerOptions | None = None,
        session_factory: SessionFactory | None = None,
        comparator: ImageComparator | None = None,
        log_sink: LogSink | None = None,
        file_sink: FileSink | None = None,
    ):
        self.options = options or RunnerOptions()
        self.session_factory = session_factory or open_playwright_session
        self.step_runner = StepRunner(
            comparator=comparator or PixelComparator(self.options),
            log_sink=log_sink or LoggingLogSink(),
            file_sink=file_sink or DiskFileSink(),
        )
        self.current_test_id = 0

    async def run(self, spec: TestSpec | SnapshotSpec) -> bool:
        """Run ``spec`` and return True, or re-raise the failure once the session is closed."""
        self.current_test_id += 1
        test_id = self.current_test_id
        logger.debug("Run %d: %s (%s)", test_id, spec.name, spec.type.value)

        session = await self.session_factory(self.options)
        try:
            result = await self.step_runner.execute(session, spec, self.options)
        except BaseException as e:
            logger.debug("Run %d failed: %s", test_id, e)
            # The step failure is what the caller sees; a failing close is only logged.
            try:
                await session.close()
            except Exception as close_error:
                logger.debug("Run %d: closing session also failed: %s", test_id, close_error)
            raise

        try:
            await session.close()
        except DifferencifyError:
            raise
        except Exception as e:
            raise DifferencifyError(f"Could not close browser session: {e}") from e

        logger.debug("Run %d finished: %s", test_id, result)
        return result
