# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for coverage listing processing and cleanup."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from xdmd.classify import SourceFacts
from xdmd.coverage import (
    CoverageProcessor,
    is_zero_execution_line,
    listing_name_for,
    should_process_coverage,
    uncovered_lines,
)
from xdmd.models import Severity

LISTING = "       |module lib;\n0000000|int f() { return 1; }\n      1|unittest { }\nlib.d is 50% covered\n"


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("lib.d", "lib.lst"),
        ("./lib.d", "lib.lst"),
        ("src/pkg/util.d", "src-pkg-util.lst"),
    ],
)
def test_listing_name_for(source: str, expected: str) -> None:
    assert listing_name_for(source) == expected


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("0000000|x", True),
        (" 0000000|x", True),
        ("  0000000|x", True),
        ("   0000000|x", False),
        ("0000001|x", False),
        ("000000|", False),
        ("", False),
        ("0000", False),
    ],
)
def test_zero_execution_line(line: str, expected: bool) -> None:
    assert is_zero_execution_line(line) is expected


def test_uncovered_lines_reports_line_numbers(tmp_path: Path) -> None:
    listing = tmp_path / "lib.lst"
    listing.write_text(LISTING, encoding="utf-8")

    assert uncovered_lines(listing) == [2]
    assert uncovered_lines(tmp_path / "missing.lst") == []


def test_process_emits_one_diagnostic_per_miss_and_consumes_listing(tmp_path: Path) -> None:
    (tmp_path / "lib.lst").write_text(LISTING, encoding="utf-8")
    processor = CoverageProcessor(tmp_path)

    report = processor.process([SourceFacts(path="lib.d", is_entry_point=False, has_tests=True)])

    assert len(report.diagnostics) == 1
    diagnostic = report.diagnostics[0]
    assert diagnostic.line == 2
    assert diagnostic.severity is Severity.WARNING
    assert diagnostic.render() == "lib.d(2): Warning: line not covered by tests"
    assert report.consumed == [tmp_path / "lib.lst"]
    assert not (tmp_path / "lib.lst").exists()
    assert report.last_source == "lib.d"


def test_process_tolerates_missing_listing(tmp_path: Path) -> None:
    report = CoverageProcessor(tmp_path).process([SourceFacts(path="lib.d", is_entry_point=False, has_tests=True)])

    assert report.diagnostics == []
    assert report.consumed == []


def test_process_notes_skipped_sources(tmp_path: Path) -> None:
    sources = [
        SourceFacts(path="app.d", is_entry_point=True, has_tests=True),
        SourceFacts(path="plain.d", is_entry_point=False, has_tests=False),
    ]

    report = CoverageProcessor(tmp_path).process(sources)

    assert [d.severity for d in report.diagnostics] == [Severity.INFO, Severity.INFO]
    assert report.diagnostics[0].render() == "app.d: Info: coverage analysis skipped: file defines main"
    assert "no unittest blocks" in report.diagnostics[1].message


def _populate_stale(root: Path) -> None:
    (root / "lib.lst").write_text("0000000|x\n", encoding="utf-8")
    (root / "__main.lst").write_text("", encoding="utf-8")
    (root / "old-module.lst").write_text("      3|x\n  0000000|y\n", encoding="utf-8")
    (root / "pkg-covered.lst").write_text("      3|x\n", encoding="utf-8")
    (root / "unrelated.lst").write_text("0000000|x\n", encoding="utf-8")
    (root / "notes-file.txt").write_text("", encoding="utf-8")


def test_cleanup_removes_empty_and_stale_listings(tmp_path: Path) -> None:
    _populate_stale(tmp_path)

    removed = CoverageProcessor(tmp_path).cleanup("lib.d")

    assert [path.name for path in removed] == ["__main.lst", "lib.lst", "old-module.lst"]
    remaining = sorted(path.name for path in tmp_path.iterdir())
    assert remaining == ["notes-file.txt", "pkg-covered.lst", "unrelated.lst"]


def test_cleanup_is_idempotent(tmp_path: Path) -> None:
    _populate_stale(tmp_path)
    processor = CoverageProcessor(tmp_path)

    processor.cleanup("lib.d")
    after_first = sorted(path.name for path in tmp_path.iterdir())
    second = processor.cleanup("lib.d")

    assert second == []
    assert sorted(path.name for path in tmp_path.iterdir()) == after_first


def test_run_processes_then_cleans(tmp_path: Path) -> None:
    (tmp_path / "lib.lst").write_text(LISTING, encoding="utf-8")
    (tmp_path / "__main.lst").write_text("", encoding="utf-8")

    report = CoverageProcessor(tmp_path).run([SourceFacts(path="lib.d", is_entry_point=False, has_tests=True)])

    assert len(report.diagnostics) == 1
    assert report.removed == [tmp_path / "__main.lst"]


@pytest.mark.parametrize(
    ("run_eligible", "coverage", "status", "expected"),
    [
        (True, True, 0, True),
        (True, True, 2, True),
        (True, True, 1, False),
        (True, False, 0, False),
        (False, True, 0, False),
        (True, True, None, False),
    ],
)
def test_should_process_coverage(run_eligible: bool, coverage: bool, status: int | None, expected: bool) -> None:
    assert (
        should_process_coverage(run_eligible=run_eligible, coverage_requested=coverage, run_status=status)
        is expected
    )


def test_unreadable_listings_are_tolerated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    locked = tmp_path / "locked-module.lst"
    locked.write_text("0000000|x\n", encoding="utf-8")
    (tmp_path / "lib.lst").write_text(LISTING, encoding="utf-8")
    original_open = Path.open

    def _open(self: Path, *args: Any, **kwargs: Any) -> Any:
        if self.name == locked.name:
            raise PermissionError(13, "Permission denied", str(self))
        return original_open(self, *args, **kwargs)

    monkeypatch.setattr(Path, "open", _open)

    assert uncovered_lines(locked) == []
    report = CoverageProcessor(tmp_path).run([SourceFacts(path="lib.d", is_entry_point=False, has_tests=True)])

    assert [diagnostic.line for diagnostic in report.diagnostics] == [2]
    assert report.removed == []
    assert locked.exists()


def test_unremovable_listings_are_left_in_place(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "lib.lst").write_text(LISTING, encoding="utf-8")
    (tmp_path / "stale-module.lst").write_text("", encoding="utf-8")

    def _unlink(self: Path, missing_ok: bool = False) -> None:
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "unlink", _unlink)

    report = CoverageProcessor(tmp_path).run([SourceFacts(path="lib.d", is_entry_point=False, has_tests=True)])

    assert len(report.diagnostics) == 1
    assert report.consumed == []
    assert report.removed == []
    assert sorted(path.name for path in tmp_path.iterdir()) == ["lib.lst", "stale-module.lst"]
