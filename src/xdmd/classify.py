# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Textual heuristics answering narrow yes/no questions about D sources.

The checks are plain substring and token scans, not a parse. A keyword that
only occurs inside a string literal or a comment still counts, so the answers
are approximate by nature.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .constants import ENTRY_POINT_SIGNATURES, SOURCE_EXTENSION, SWITCH_PREFIX, TEST_KEYWORD


def _is_identifier_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def is_entry_point_file(text: str) -> bool:
    """Return ``True`` when ``text`` declares a program entry point.

    Args:
        text: Full source text.

    Returns:
        bool: ``True`` if any canonical ``main`` declaration occurs in ``text``.
    """

    return any(signature in text for signature in ENTRY_POINT_SIGNATURES)


def has_at_least_one_test_block(text: str, keyword: str = TEST_KEYWORD) -> bool:
    """Return ``True`` when ``keyword`` occurs as a whole token in ``text``.

    An occurrence counts only when the characters on both sides (if any) are
    not identifier characters, so ``unittests`` or ``my_unittest`` do not match.

    Args:
        text: Full source text.
        keyword: Token to look for.

    Returns:
        bool: ``True`` on the first whole-token occurrence, ``False`` otherwise.
    """

    start = text.find(keyword)
    while start != -1:
        end = start + len(keyword)
        before_ok = start == 0 or not _is_identifier_char(text[start - 1])
        after_ok = end == len(text) or not _is_identifier_char(text[end])
        if before_ok and after_ok:
            return True
        start = text.find(keyword, start + 1)
    return False


def is_eligible_source_argument(arg: str) -> bool:
    """Return ``True`` when ``arg`` is a source path rather than a switch."""

    return not arg.startswith(SWITCH_PREFIX) and arg.endswith(SOURCE_EXTENSION)


@dataclass(frozen=True, slots=True)
class SourceFacts:
    """Classifier answers for one source argument."""

    path: str
    is_entry_point: bool
    has_tests: bool

    @property
    def skips_run(self) -> bool:
        """Return ``True`` when running unittests for this source is pointless."""

        return self.is_entry_point or not self.has_tests


def classify_source(path: str, *, cwd: Path | None = None) -> SourceFacts:
    """Read ``path`` and classify its contents.

    A file that cannot be read is classified as having neither an entry point
    nor tests; the compiler reports the missing file itself.

    Args:
        path: Source argument as given on the command line.
        cwd: Directory relative paths are resolved against.

    Returns:
        SourceFacts: Classification of the file's text.
    """

    resolved = Path(path) if cwd is None else cwd / path
    try:
        text = resolved.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return SourceFacts(path=path, is_entry_point=False, has_tests=False)
    return SourceFacts(
        path=path,
        is_entry_point=is_entry_point_file(text),
        has_tests=has_at_least_one_test_block(text),
    )


__all__ = [
    "SourceFacts",
    "classify_source",
    "has_at_least_one_test_block",
    "is_entry_point_file",
    "is_eligible_source_argument",
]
