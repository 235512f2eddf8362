# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Core data models shared across the xdmd package."""

from __future__ import annotations

from enum import Enum
from typing import Final

from pydantic import BaseModel, ConfigDict, Field


class TaskKind(str, Enum):
    """The three tool passes the harness can run over a set of sources."""

    CHECK = "check"
    RUN = "run"
    LINT = "lint"


# Order in which finished tasks are waited on and reported.
WAIT_ORDER: Final[tuple[TaskKind, ...]] = (TaskKind.CHECK, TaskKind.LINT, TaskKind.RUN)


class RedirectionMode(str, Enum):
    """Whether task output is captured by the harness or inherited."""

    INHERIT = "inherit"
    CAPTURE = "capture"


class Severity(str, Enum):
    """Severity levels normalising different tool vocabularies."""

    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"
    INFO = "info"


_SEVERITY_LABELS: Final[dict[Severity, str]] = {
    Severity.ERROR: "Error",
    Severity.WARNING: "Warning",
    Severity.NOTICE: "Notice",
    Severity.INFO: "Info",
}


class Diagnostic(BaseModel):
    """Normalized diagnostic produced by a tool or synthesised by the harness."""

    model_config = ConfigDict(frozen=True)

    file: str
    line: int | None = None
    column: int | None = None
    severity: Severity
    message: str
    tool: str

    def render(self) -> str:
        """Return the diagnostic in the compiler's ``file(line,col): Label: message`` form.

        Returns:
            str: Single-line textual rendering without a trailing newline.
        """

        location = self.file
        if self.line is not None:
            position = str(self.line) if self.column is None else f"{self.line},{self.column}"
            location = f"{location}({position})"
        return f"{location}: {_SEVERITY_LABELS[self.severity]}: {self.message}"


class TaskOutcome(BaseModel):
    """Exit status and captured streams of a finished task."""

    model_config = ConfigDict(validate_assignment=True)

    kind: TaskKind
    returncode: int
    stdout: str = ""
    stderr: str = ""
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return ``True`` when the task exited successfully."""
        return self.returncode == 0


__all__ = [
    "WAIT_ORDER",
    "Diagnostic",
    "RedirectionMode",
    "Severity",
    "TaskKind",
    "TaskOutcome",
]
