"""Step runner — interprets a spec's step list against a live browser session."""

from __future__ import annotations

import asyncio
import inspect
import logging

from differencify.browser.session import SessionClient
from differencify.compare.comparator import ImageComparator
from differencify.errors import (
    CaptureFailed,
    ComparisonFailed,
    DifferencifyError,
    NavigationFailed,
    WriteFailed,
)
from differencify.models.config import RunnerOptions
from differencify.models.test_spec import (
    ActionKind,
    RunMode,
    SnapshotSpec,
    Step,
    TestSpec,
    build_implicit_steps,
)
from differencify.paths import resolve_screenshot_path
from differencify.sinks import FileSink, LogSink

logger = logging.getLogger(__name__)


def steps_for(spec: TestSpec | SnapshotSpec) -> list[Step]:
    """The explicit step list a spec stands for."""
    if isinstance(spec, SnapshotSpec):
        return build_implicit_steps(spec)
    return spec.steps


def capture_name(base: str, index: int) -> str:
    """Name of the ``index``-th capture (1-based) within one spec."""
    return base if index == 1 else f"{base}_{index}"


class StepRunner:
    """Executes steps strictly in order, stopping at the first failure.

    Every failure surfaces as one of the DifferencifyError kinds; unexpected
    backend exceptions are wrapped into the kind that matches the step.
    Files already written by earlier steps are left in place.
    """

    def __init__(self, comparator: ImageComparator, log_sink: LogSink, file_sink: FileSink):
        self.comparator = comparator
        self.log_sink = log_sink
        self.file_sink = file_sink

    async def execute(
        self, session: SessionClient, spec: TestSpec | SnapshotSpec, options: RunnerOptions,
    ) -> bool:
        steps = steps_for(spec)
        mode = spec.type
        captures = 0
        last_path: str | None = None

        for index, step in enumerate(steps):
            logger.debug("  Step %d/%d: %s %s", index + 1, len(steps),
                         step.action.value, step.value if step.value is not None else "")
            match step.action:
                case ActionKind.GOTO:
                    await self._goto(session, str(step.value), options)

                case ActionKind.CAPTURE:
                    captures += 1
                    name = capture_name(spec.name, captures)
                    last_path = await self._capture(session, step, mode, name, options)

                case ActionKind.TEST:
                    if mode == RunMode.UPDATE:
                        logger.debug("  Update run, accepting %s as baseline", last_path)
                        continue
                    target = str(step.value) if step.value else last_path
                    if target is None:
                        raise ComparisonFailed("no screenshot captured before test step")
                    await self._compare(target)

                case ActionKind.UPDATE:
                    logger.debug("  Accepting %s as baseline", last_path)

                case ActionKind.WAIT:
                    await self._wait(session, step)

                case ActionKind.CLICK:
                    await self._interact(session.click(str(step.value)), f"click on '{step.value}'")

        return True

    async def _goto(self, session: SessionClient, url: str, options: RunnerOptions) -> None:
        self.log_sink.log(f"goto -> {url}")
        try:
            await asyncio.wait_for(session.goto(url), timeout=options.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise NavigationFailed(url, f"timed out after {options.timeout_ms}ms") from e
        except DifferencifyError:
            raise
        except Exception as e:
            raise NavigationFailed(url, str(e)) from e

    async def _capture(
        self, session: SessionClient, step: Step, mode: RunMode, name: str, options: RunnerOptions,
    ) -> str:
        if step.is_full_page:
            data = await self._interact(session.screenshot_document(), "full page screenshot")
        else:
            selector = str(step.value)
            data = await self._interact(session.screenshot_element(selector),
                                        f"screenshot of '{selector}'")

        path = resolve_screenshot_path(mode, name, options)
        try:
            written = self.file_sink.write_file(path, data)
            if inspect.isawaitable(written):
                await written
        except DifferencifyError:
            raise
        except Exception as e:
            raise WriteFailed(path, str(e)) from e
        self.log_sink.log(f"screenshot saved in -> {path}")
        return path

    async def _compare(self, path: str) -> None:
        try:
            message = await self.comparator.compare(path)
        except ComparisonFailed:
            raise
        except Exception as e:
            raise ComparisonFailed(str(e), payload=e) from e
        self.log_sink.log(message)

    async def _wait(self, session: SessionClient, step: Step) -> None:
        if step.waits_for_selector:
            selector = str(step.value)
            await self._interact(session.wait_for_selector(selector), f"wait for '{selector}'")
        else:
            milliseconds = int(step.value) if step.value is not None else 1000
            await self._interact(session.wait(milliseconds), f"wait of {milliseconds}ms")

    @staticmethod
    async def _interact(awaitable, description: str):
        try:
            return await awaitable
        except DifferencifyError:
            raise
        except Exception as e:
            raise CaptureFailed(f"{description} failed: {e}") from e
