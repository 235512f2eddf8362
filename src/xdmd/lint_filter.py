# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parse D-Scanner output and suppress its known-noisy style warnings."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Final, Literal

from .models import Diagnostic, Severity, TaskOutcome

LINT_TOOL_NAME: Final[str] = "dscanner"

DSCANNER_PATTERN = re.compile(
    r"^(?P<file>.+?)\((?P<line>\d+):(?P<column>\d+)\)\[(?P<kind>[a-z]+)\]:\s*(?P<message>.*)$",
)

_KIND_SEVERITY: Final[dict[str, Severity]] = {
    "warn": Severity.WARNING,
    "warning": Severity.WARNING,
    "error": Severity.ERROR,
}

NOISY_WARNING_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\bis undocumented\b"),
    re.compile(r"\bLine is longer than \d+ characters\b"),
    re.compile(r"\bdoes not match style guidelines\b"),
)

StreamLiteral = Literal["stdout", "stderr"]


@dataclass(frozen=True, slots=True)
class LintMessage:
    """One line of linter output that survived filtering."""

    stream: StreamLiteral
    text: str
    diagnostic: Diagnostic | None = None


def parse_dscanner_line(line: str) -> Diagnostic | None:
    """Return the diagnostic encoded in ``line`` or ``None`` for other text.

    Args:
        line: Single output line without its newline.

    Returns:
        Diagnostic | None: Parsed diagnostic when ``line`` matches the
        ``file(line:col)[kind]: message`` layout.
    """

    match = DSCANNER_PATTERN.match(line)
    if match is None:
        return None
    return Diagnostic(
        file=match.group("file"),
        line=int(match.group("line")),
        column=int(match.group("column")),
        severity=_KIND_SEVERITY.get(match.group("kind"), Severity.NOTICE),
        message=match.group("message"),
        tool=LINT_TOOL_NAME,
    )


def is_suppressed(diagnostic: Diagnostic, patterns: Sequence[re.Pattern[str]] = NOISY_WARNING_PATTERNS) -> bool:
    """Return ``True`` for warnings matching one of the noisy ``patterns``."""

    if diagnostic.severity is not Severity.WARNING:
        return False
    return any(pattern.search(diagnostic.message) for pattern in patterns)


def filter_lint_stream(text: str, stream: StreamLiteral) -> list[LintMessage]:
    """Return the lines of ``text`` that should be forwarded, tagged with ``stream``.

    Lines that do not parse as diagnostics pass through untouched.
    """

    kept: list[LintMessage] = []
    for raw_line in text.splitlines(keepends=True):
        diagnostic = parse_dscanner_line(raw_line.rstrip("\r\n"))
        if diagnostic is not None and is_suppressed(diagnostic):
            continue
        kept.append(LintMessage(stream=stream, text=raw_line, diagnostic=diagnostic))
    return kept


def filter_lint_outcome(outcome: TaskOutcome) -> list[LintMessage]:
    """Filter both captured streams of a lint ``outcome``, stdout first.

    The parsed diagnostics that survive are recorded on ``outcome``.
    """

    messages = [*filter_lint_stream(outcome.stdout, "stdout"), *filter_lint_stream(outcome.stderr, "stderr")]
    outcome.diagnostics = [message.diagnostic for message in messages if message.diagnostic is not None]
    return messages


def join_stream(messages: Iterable[LintMessage], stream: StreamLiteral) -> str:
    return "".join(message.text for message in messages if message.stream == stream)


__all__ = [
    "DSCANNER_PATTERN",
    "LINT_TOOL_NAME",
    "NOISY_WARNING_PATTERNS",
    "LintMessage",
    "filter_lint_outcome",
    "filter_lint_stream",
    "is_suppressed",
    "join_stream",
    "parse_dscanner_line",
]
