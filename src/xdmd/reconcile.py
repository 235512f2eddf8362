# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Drop run-task output that repeats what the check task already printed."""

from __future__ import annotations

from .models import TaskOutcome


def strip_duplicate_prefix(already_shown: str, text: str) -> str:
    """Return ``text`` without ``already_shown`` when it is an exact prefix.

    Args:
        already_shown: Output forwarded earlier by the check task.
        text: Output captured from the run task.

    Returns:
        str: Remainder of ``text``; ``text`` unchanged when the prefix differs.
    """

    if already_shown and text.startswith(already_shown):
        return text[len(already_shown) :]
    return text


def reconcile_outputs(check: TaskOutcome | None, run: TaskOutcome) -> tuple[str, str]:
    """Return the ``(stdout, stderr)`` of ``run`` still worth forwarding.

    The compiler emits the same diagnostics during check and during the
    unittest build, so each run stream loses its check counterpart when it
    starts with it.
    """

    if check is None:
        return run.stdout, run.stderr
    return (
        strip_duplicate_prefix(check.stdout, run.stdout),
        strip_duplicate_prefix(check.stderr, run.stderr),
    )


__all__ = ["reconcile_outputs", "strip_duplicate_prefix"]
