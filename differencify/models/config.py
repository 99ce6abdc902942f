"""Configuration models for the runner."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from differencify.models.test_spec import ActionKind, AnySpec, Step, TestSpec


class ViewportConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)


class RunnerOptions(BaseModel):
    """Flat options shared read-only by every run.

    The camelCase keys used by older config files (``screenshots``,
    ``testReportPath``, ``timeout``, ``mismatchThreshold``) are accepted
    as aliases of the snake_case fields.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    screenshots_dir: str = Field(
        default="./screenshots",
        validation_alias=AliasChoices("screenshots_dir", "screenshots"),
    )
    report_dir: str = Field(
        default="./differencify_report",
        validation_alias=AliasChoices("report_dir", "testReportPath"),
    )
    debug: bool = False
    visible: bool = True
    timeout_ms: int = Field(
        default=30000,
        gt=0,
        validation_alias=AliasChoices("timeout_ms", "timeout"),
    )
    mismatch_threshold: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("mismatch_threshold", "mismatchThreshold"),
    )
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def merged(self, overrides: dict[str, Any]) -> "RunnerOptions":
        """Return a new validated options object with ``overrides`` applied."""
        # Validate the overrides alone first so alias keys resolve to field names.
        patch = RunnerOptions.model_validate(overrides)
        data = self.model_dump()
        data.update(patch.model_dump(include=patch.model_fields_set))
        return RunnerOptions.model_validate(data)


def _default_tests() -> list[TestSpec]:
    return [
        TestSpec(
            name="default",
            steps=[
                Step(action=ActionKind.GOTO, value="www.example.com"),
                Step(action=ActionKind.CAPTURE, value="document"),
            ],
        )
    ]


class SuiteConfig(BaseModel):
    """A config file: runner options plus the specs to run."""

    options: RunnerOptions = Field(default_factory=RunnerOptions)
    tests: list[AnySpec] = Field(default_factory=_default_tests)

    @classmethod
    def load(cls, path: str | Path) -> "SuiteConfig":
        """Load a suite from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls.model_validate(data)

    def save(self, path: str | Path) -> None:
        """Save the suite to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
