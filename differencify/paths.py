"""Screenshot path resolution. Paths are a pure function of mode, name and options."""

from __future__ import annotations

from differencify.models.config import RunnerOptions
from differencify.models.test_spec import RunMode


def _join(directory: str, filename: str) -> str:
    # Plain string join keeps a leading "./" intact, which pathlib would drop.
    return f"{directory.rstrip('/')}/{filename}"


def resolve_screenshot_path(mode: RunMode, name: str, options: RunnerOptions) -> str:
    """Where a capture named ``name`` is written in the given run mode."""
    directory = options.screenshots_dir if mode == RunMode.UPDATE else options.report_dir
    return _join(directory, f"{name}.png")


def resolve_baseline_path(name: str, options: RunnerOptions) -> str:
    return resolve_screenshot_path(RunMode.UPDATE, name, options)


def resolve_diff_path(name: str, options: RunnerOptions) -> str:
    return _join(options.report_dir, f"{name}_differencified.png")
