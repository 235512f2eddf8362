# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exceptions raised by the harness before or while launching tools."""

from __future__ import annotations

import errno
from collections.abc import Sequence


class HarnessError(RuntimeError):
    """Error raised when the harness must stop and exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        """Initialise the error with a message and exit code.

        Args:
            message: Human-readable error message shown to the user.
            exit_code: Exit status associated with the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code


class SelfRecursionError(HarnessError):
    """Raised when an invocation looks like the harness analysing itself."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"refusing potentially self-recursive invocation: {reason}", exit_code=2)
        self.reason = reason


class ExecutableNotFoundError(HarnessError, FileNotFoundError):
    """Raised when none of the candidate executables for a task can be found."""

    def __init__(self, candidates: Sequence[str]) -> None:
        names = ", ".join(candidates) or "<none>"
        super().__init__(f"no executable found on PATH among: {names}", exit_code=127)
        self.candidates = tuple(candidates)


class TaskLaunchError(HarnessError):
    """Raised when the operating system refuses to spawn a task subprocess."""

    def __init__(self, command: Sequence[str], error: OSError) -> None:
        """Initialise the error from the failed command and the OS error.

        Args:
            command: Argument vector that failed to spawn.
            error: Operating system error raised by :mod:`subprocess`.
        """

        exit_code = 127 if error.errno == errno.ENOENT else 126
        super().__init__(f"failed to launch '{command[0]}': {error.strerror or error}", exit_code=exit_code)
        self.command = tuple(command)
        self.error = error


__all__ = [
    "ExecutableNotFoundError",
    "HarnessError",
    "SelfRecursionError",
    "TaskLaunchError",
]
