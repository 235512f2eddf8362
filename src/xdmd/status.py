# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Fold the exit statuses of the three tasks into one process status."""

from __future__ import annotations

from typing import Final

from .constants import LINT_SEGFAULT_STATUSES, LINT_WARNINGS_STATUS

# Lint is advisory: a crashing linter or one that merely found style issues
# must not fail the build.
IGNORED_LINT_STATUSES: Final[frozenset[int]] = LINT_SEGFAULT_STATUSES | {LINT_WARNINGS_STATUS}


def effective_lint_status(status: int | None) -> int:
    """Return ``status`` with the advisory lint codes mapped to ``0``."""

    if status is None or status in IGNORED_LINT_STATUSES:
        return 0
    return status


def aggregate_status(check: int | None, run: int | None, lint: int | None) -> int:
    """Return the harness exit status for the given task statuses.

    Check wins over Run, which wins over Lint. ``None`` marks a task that was
    not run and counts as success.

    Args:
        check: Exit status of the check task.
        run: Exit status of the run task.
        lint: Exit status of the lint task.

    Returns:
        int: First non-zero status in priority order, or ``0``.
    """

    if check:
        return check
    if run:
        return run
    return effective_lint_status(lint)


__all__ = ["IGNORED_LINT_STATUSES", "aggregate_status", "effective_lint_status"]
