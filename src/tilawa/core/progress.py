"""Memorization and progress engine.

A page counts as passed when at least one recitation of it was rated
Very Good or better. Passed pages are collapsed into contiguous ranges
and bucketed into a 30-Juz completion grid of 20 pages each.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable

from tilawa.core.models import (
    PAGES_PER_JUZ,
    TOTAL_JUZ,
    TOTAL_PAGES,
    VERY_GOOD_MAX_ERRORS,
    Recitation,
)


@dataclass(frozen=True)
class JuzProgress:
    """Completion of a single Juz bucket."""

    juz: int
    completed: int
    percent: int
    is_complete: bool


@dataclass(frozen=True)
class MemorizationSummary:
    """Passed pages, their ranges and the Juz grid for one student."""

    passed_pages: list[int] = field(default_factory=list)
    page_ranges: list[str] = field(default_factory=list)
    juz_progress: list[JuzProgress] = field(default_factory=list)

    @property
    def completed_juz(self) -> int:
        return sum(1 for j in self.juz_progress if j.is_complete)


def juz_for_page(page: int) -> int:
    """Juz bucket for a page: ceil((page - 1) / 20), clamped to 1..30."""
    bucket = math.ceil((page - 1) / PAGES_PER_JUZ)
    return min(TOTAL_JUZ, max(1, bucket))


def compute_passed_pages(recitations: Iterable[Recitation]) -> list[int]:
    """Distinct pages recited with at most six errors, ascending."""
    return sorted(
        {r.page_number for r in recitations if r.error_count <= VERY_GOOD_MAX_ERRORS}
    )


def compute_page_ranges(pages: Iterable[int]) -> list[str]:
    """Collapse pages into maximal contiguous runs.

    Example:
        [1, 2, 3, 5, 6, 9] -> ["1-3", "5-6", "9"]
    """
    ordered = sorted(set(pages))
    if not ordered:
        return []

    ranges: list[str] = []
    start = prev = ordered[0]
    for page in ordered[1:]:
        if page == prev + 1:
            prev = page
            continue
        ranges.append(_format_range(start, prev))
        start = prev = page
    ranges.append(_format_range(start, prev))
    return ranges


def _format_range(start: int, end: int) -> str:
    if start == end:
        return str(start)
    return f"{start}-{end}"


def compute_juz_progress(pages: Iterable[int]) -> list[JuzProgress]:
    """Per-Juz completion for a set of passed pages.

    Pages outside 1..604 are ignored. Juz 1 spans pages 1-21 under the
    bucket formula, so its percent is capped at 100.
    """
    completed = [0] * TOTAL_JUZ
    for page in set(pages):
        if 1 <= page <= TOTAL_PAGES:
            completed[juz_for_page(page) - 1] += 1

    grid: list[JuzProgress] = []
    for index, count in enumerate(completed):
        percent = min(100, round(count * 100 / PAGES_PER_JUZ))
        grid.append(
            JuzProgress(
                juz=index + 1,
                completed=count,
                percent=percent,
                is_complete=percent >= 100,
            )
        )
    return grid


def compute_memorization(recitations: Iterable[Recitation]) -> MemorizationSummary:
    """Bundle passed pages, ranges and the Juz grid for one student."""
    passed = compute_passed_pages(recitations)
    return MemorizationSummary(
        passed_pages=passed,
        page_ranges=compute_page_ranges(passed),
        juz_progress=compute_juz_progress(passed),
    )
