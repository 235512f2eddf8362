# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Turn coverage listing files into diagnostics and purge stale listings.

A listing (``.lst``) holds one line per source line, prefixed by a
fixed-width execution counter terminated by ``|``. A counter of
``0000000|`` marks a line that never executed.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .classify import SourceFacts, is_eligible_source_argument
from .constants import (
    INTERNAL_LISTING_NAME,
    LISTING_EXTENSION,
    RUN_ASSERTION_FAILURE_STATUS,
    SENTINEL_OFFSETS,
    SOURCE_EXTENSION,
    ZERO_EXECUTIONS_SENTINEL,
)
from .models import Diagnostic, Severity

COVERAGE_TOOL_NAME: Final[str] = "coverage"
UNCOVERED_MESSAGE: Final[str] = "line not covered by tests"
STALE_NAME_MARKER: Final[str] = "-"


def listing_name_for(source: str) -> str:
    """Return the listing file name the compiler writes for ``source``.

    Path separators become ``-`` and the source extension becomes ``.lst``,
    so ``src/app/util.d`` maps to ``src-app-util.lst``.
    """

    normalized = source.removeprefix("./")
    if normalized.endswith(SOURCE_EXTENSION):
        normalized = normalized[: -len(SOURCE_EXTENSION)]
    for separator in {"/", os.sep}:
        normalized = normalized.replace(separator, "-")
    return f"{normalized}{LISTING_EXTENSION}"


def is_zero_execution_line(line: str, offsets: Sequence[int] = SENTINEL_OFFSETS) -> bool:
    """Return ``True`` when the zero-executions sentinel starts at one of ``offsets``.

    Lines too short to hold the sentinel are never misses.
    """

    return any(line.startswith(ZERO_EXECUTIONS_SENTINEL, offset) for offset in offsets)


def uncovered_lines(listing: Path) -> list[int]:
    """Return the 1-based numbers of listing lines that never executed.

    Args:
        listing: Path of the listing file.

    Returns:
        list[int]: Line numbers in ascending order; empty when the file is
        missing or unreadable.
    """

    try:
        with listing.open(encoding="utf-8", errors="replace") as handle:
            return [number for number, line in enumerate(handle, start=1) if is_zero_execution_line(line)]
    except OSError:
        return []


def _listing_is_stale(path: Path) -> bool:
    try:
        if path.stat().st_size == 0:
            return True
        with path.open(encoding="utf-8", errors="replace") as handle:
            return any(is_zero_execution_line(line) for line in handle)
    except OSError:
        return False


def _remove(path: Path) -> bool:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        return False
    return True


def should_process_coverage(*, run_eligible: bool, coverage_requested: bool, run_status: int | None) -> bool:
    """Return ``True`` when the run produced listings worth inspecting.

    A failed unittest assertion aborts the test binary before the listings
    are complete, so those runs are skipped.
    """

    return (
        run_eligible
        and coverage_requested
        and run_status is not None
        and run_status != RUN_ASSERTION_FAILURE_STATUS
    )


@dataclass(slots=True)
class CoverageReport:
    """Diagnostics synthesised from listings plus the files consumed or removed."""

    diagnostics: list[Diagnostic] = field(default_factory=list)
    consumed: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    last_source: str | None = None


@dataclass(slots=True)
class CoverageProcessor:
    """Process the listing files the run task left in ``cwd``."""

    cwd: Path

    def process(self, sources: Iterable[SourceFacts]) -> CoverageReport:
        """Report uncovered lines for every eligible source and consume its listing.

        Args:
            sources: Classified source arguments in command-line order.

        Returns:
            CoverageReport: Diagnostics in source order, and the listings consumed.
        """

        report = CoverageReport()
        for facts in sources:
            if not is_eligible_source_argument(facts.path):
                continue
            report.last_source = facts.path
            if facts.skips_run:
                reason = "defines main" if facts.is_entry_point else "has no unittest blocks"
                report.diagnostics.append(
                    Diagnostic(
                        file=facts.path,
                        severity=Severity.INFO,
                        message=f"coverage analysis skipped: file {reason}",
                        tool=COVERAGE_TOOL_NAME,
                    )
                )
                continue
            listing = self.cwd / listing_name_for(facts.path)
            if not listing.is_file():
                continue
            report.diagnostics.extend(
                Diagnostic(
                    file=facts.path,
                    line=number,
                    severity=Severity.WARNING,
                    message=UNCOVERED_MESSAGE,
                    tool=COVERAGE_TOOL_NAME,
                )
                for number in uncovered_lines(listing)
            )
            if _remove(listing):
                report.consumed.append(listing)
        return report

    def cleanup(self, last_source: str | None) -> list[Path]:
        """Delete empty or stale listings left behind by earlier runs.

        Candidates are ``.lst`` files in ``cwd`` named after ``last_source``,
        the listing of the ``-main`` stub module, or any name containing a
        hyphen. Running the pass twice leaves the same directory state. Listings
        that cannot be read or removed are left in place.

        Args:
            last_source: Most recently processed source argument, if any.

        Returns:
            list[Path]: Listings that were removed, sorted by name.
        """

        wanted = {INTERNAL_LISTING_NAME}
        if last_source is not None:
            wanted.add(listing_name_for(last_source))
        removed: list[Path] = []
        for path in sorted(self.cwd.glob(f"*{LISTING_EXTENSION}")):
            if not path.is_file():
                continue
            if path.name not in wanted and STALE_NAME_MARKER not in path.name:
                continue
            if _listing_is_stale(path) and _remove(path):
                removed.append(path)
        return removed

    def run(self, sources: Sequence[SourceFacts]) -> CoverageReport:
        """Process listings for ``sources`` and then clean up stale ones."""

        report = self.process(sources)
        report.removed = self.cleanup(report.last_source)
        return report


__all__ = [
    "COVERAGE_TOOL_NAME",
    "UNCOVERED_MESSAGE",
    "CoverageProcessor",
    "CoverageReport",
    "is_zero_execution_line",
    "listing_name_for",
    "should_process_coverage",
    "uncovered_lines",
]
