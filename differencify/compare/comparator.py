"""Image comparator — checks a captured screenshot against its baseline."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from PIL import Image, ImageChops

from differencify.errors import ComparisonFailed
from differencify.models.config import RunnerOptions
from differencify.paths import resolve_baseline_path, resolve_diff_path

logger = logging.getLogger(__name__)

# Per-channel difference a pixel may show before it counts as changed.
# Absorbs anti-aliasing and font rendering noise.
PIXEL_TOLERANCE = 40

_HIGHLIGHT = (255, 0, 0)


class ImageComparator(Protocol):
    async def compare(self, path: str) -> str:
        """Return a status message, or raise ComparisonFailed."""
        ...


@dataclass
class DiffResult:
    baseline_path: str
    candidate_path: str
    changed_pixels: int
    total_pixels: int
    threshold: float
    diff_path: str | None = None

    @property
    def ratio(self) -> float:
        if self.total_pixels == 0:
            return 0.0
        return self.changed_pixels / self.total_pixels

    @property
    def passed(self) -> bool:
        return self.ratio <= self.threshold


def compute_diff_mask(baseline: Image.Image, candidate: Image.Image) -> Image.Image:
    """Return an ``L`` mask with 255 wherever any RGB channel differs beyond tolerance."""
    diff = ImageChops.difference(baseline, candidate)
    r, g, b = diff.split()
    strongest = ImageChops.lighter(ImageChops.lighter(r, g), b)
    return strongest.point(lambda v: 255 if v > PIXEL_TOLERANCE else 0)


def create_highlighted_diff(candidate: Image.Image, mask: Image.Image) -> Image.Image:
    """Paint changed pixels red over a faded copy of the candidate."""
    faded = Image.blend(candidate, Image.new("RGB", candidate.size, (255, 255, 255)), 0.6)
    red = Image.new("RGB", candidate.size, _HIGHLIGHT)
    return Image.composite(red, faded, mask)


class PixelComparator:
    """Pillow-backed comparator.

    The baseline for ``{report_dir}/{name}.png`` is
    ``{screenshots_dir}/{name}.png``. When the changed-pixel ratio exceeds
    ``options.mismatch_threshold`` a highlighted diff image is written to
    ``{report_dir}/{name}_differencified.png`` and ComparisonFailed is raised
    with the DiffResult as payload.
    """

    def __init__(self, options: RunnerOptions):
        self.options = options

    async def compare(self, path: str) -> str:
        result = await asyncio.to_thread(self._compare_sync, path)
        if result.passed:
            return f"no mismatch found ({result.ratio:.2%})"
        raise ComparisonFailed(
            f"mismatch found: {result.ratio:.2%} of pixels differ "
            f"(threshold {result.threshold:.2%}), diff written to {result.diff_path}",
            payload=result,
        )

    def _logical_name(self, path: str) -> str:
        """Capture name of ``path``, keeping any subdirectories under the report dir."""
        candidate = Path(path)
        try:
            relative = candidate.resolve().relative_to(Path(self.options.report_dir).resolve())
        except ValueError:
            return candidate.stem
        return relative.with_suffix("").as_posix()

    def _compare_sync(self, path: str) -> DiffResult:
        name = self._logical_name(path)
        baseline_path = resolve_baseline_path(name, self.options)
        if not Path(baseline_path).exists():
            raise ComparisonFailed(f"no baseline found at {baseline_path}")
        if not Path(path).exists():
            raise ComparisonFailed(f"no screenshot found at {path}")

        try:
            with Image.open(baseline_path) as b, Image.open(path) as c:
                baseline = b.convert("RGB")
                candidate = c.convert("RGB")
        except OSError as e:
            raise ComparisonFailed(f"could not read images: {e}") from e

        if baseline.size != candidate.size:
            logger.debug("Resizing %s from %s to baseline size %s",
                         path, candidate.size, baseline.size)
            candidate = candidate.resize(baseline.size)

        mask = compute_diff_mask(baseline, candidate)
        result = DiffResult(
            baseline_path=baseline_path,
            candidate_path=path,
            changed_pixels=mask.histogram()[255],
            total_pixels=baseline.width * baseline.height,
            threshold=self.options.mismatch_threshold,
        )
        logger.debug("Compared %s against %s: %d/%d pixels changed",
                     path, baseline_path, result.changed_pixels, result.total_pixels)

        if not result.passed:
            diff_path = resolve_diff_path(name, self.options)
            Path(diff_path).parent.mkdir(parents=True, exist_ok=True)
            create_highlighted_diff(candidate, mask).save(diff_path, "PNG")
            result.diff_path = diff_path
            logger.info("Wrote diff image to %s", diff_path)
        return result
