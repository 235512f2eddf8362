# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Decide which tool passes run for an invocation and how their output flows."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .classify import SourceFacts
from .config import HarnessConfig
from .constants import PROG_NAME, SINGLE_USE_SWITCHES, SWITCH_PREFIX
from .errors import ExecutableNotFoundError, SelfRecursionError
from .executables import ExecutableResolver
from .invocation import Invocation
from .models import WAIT_ORDER, RedirectionMode, TaskKind

# Output of two or more concurrent tasks would interleave on shared streams.
_CAPTURE_THRESHOLD: Final[int] = 2


@dataclass(frozen=True, slots=True)
class TaskPlan:
    """Eligibility and executables chosen for each task kind."""

    check: bool
    run: bool
    lint: bool
    redirection: RedirectionMode
    check_executable: Path
    run_executable: Path | None = None
    lint_executable: Path | None = None
    check_sanitized: bool = False
    run_sanitized: bool = False
    allocator_library: Path | None = None
    demangler: Path | None = None
    coverage: bool = False
    sources: tuple[SourceFacts, ...] = field(default_factory=tuple)

    def is_eligible(self, kind: TaskKind) -> bool:
        return {TaskKind.CHECK: self.check, TaskKind.RUN: self.run, TaskKind.LINT: self.lint}[kind]

    @property
    def eligible_kinds(self) -> tuple[TaskKind, ...]:
        """Return eligible task kinds in wait order."""

        return tuple(kind for kind in WAIT_ORDER if self.is_eligible(kind))

    def describe(self) -> str:
        """Return a ``key=value`` summary suitable for debug logging."""

        return (
            f"check={self.check} run={self.run} lint={self.lint} "
            f"redirect={self.redirection.value} coverage={self.coverage}"
        )


def check_self_recursion(invocation: Invocation, *, environ: Mapping[str, str], marker: str) -> None:
    """Reject invocations that look like the harness running itself.

    Args:
        invocation: Classified command-line arguments.
        environ: Environment of the current process.
        marker: Name of the variable every harness child inherits.

    Raises:
        SelfRecursionError: If the marker is set, a single-use switch is
            repeated, or an argument names the harness itself.
    """

    if environ.get(marker):
        raise SelfRecursionError(f"already running inside {PROG_NAME} (${marker} is set)")
    for switch in SINGLE_USE_SWITCHES:
        if invocation.count_switch(switch) > 1:
            raise SelfRecursionError(f"switch {switch} given more than once")
    for argument in invocation.compiler_arguments:
        if argument.startswith(SWITCH_PREFIX):
            continue
        candidate = Path(argument)
        if PROG_NAME in (candidate.name, candidate.stem):
            raise SelfRecursionError(f"argument {argument!r} refers to {PROG_NAME} itself")


def _first_existing(paths: Sequence[Path]) -> Path | None:
    for path in paths:
        if path.is_file():
            return path
    return None


def _honours_sanitizer(executable: Path | None, config: HarnessConfig) -> bool:
    return executable is not None and executable.name in config.sanitizer_compilers


def plan_tasks(
    invocation: Invocation,
    sources: Sequence[SourceFacts],
    *,
    resolver: ExecutableResolver,
    config: HarnessConfig,
    environ: Mapping[str, str],
) -> TaskPlan:
    """Return the :class:`TaskPlan` for ``invocation``.

    Check always runs. Run needs ``-run`` and is skipped when any source is a
    program (defines ``main``) or contains no ``unittest`` block. Lint is
    best-effort and joins whenever the linter is installed and there are
    sources to inspect.

    Args:
        invocation: Classified command-line arguments.
        sources: Classifier results for every source argument.
        resolver: Resolver used to locate tool executables.
        config: Effective harness configuration.
        environ: Environment of the current process.

    Returns:
        TaskPlan: Eligibility, executables and redirection for the invocation.

    Raises:
        SelfRecursionError: When the invocation looks self-recursive.
        ExecutableNotFoundError: When no compiler can be found for an eligible task.
    """

    check_self_recursion(invocation, environ=environ, marker=config.recursion_marker)

    check_executable = resolver.preferred(*config.check_compilers)
    if check_executable is None:
        raise ExecutableNotFoundError(config.check_compilers)

    run = invocation.requests_run and not any(facts.skips_run for facts in sources)
    run_executable: Path | None = None
    if run:
        sanitized_compiler = (
            resolver.preferred(*config.sanitizer_compilers) if invocation.sanitizer_switches else None
        )
        run_executable = sanitized_compiler or resolver.preferred(*config.run_compilers)
        if run_executable is None:
            raise ExecutableNotFoundError(config.run_compilers)

    lint_executable = resolver.resolve(config.linter) if config.linter and invocation.source_paths else None
    lint = lint_executable is not None

    eligible_count = 1 + int(run) + int(lint)
    redirection = RedirectionMode.CAPTURE if eligible_count >= _CAPTURE_THRESHOLD else RedirectionMode.INHERIT

    return TaskPlan(
        check=True,
        run=run,
        lint=lint,
        redirection=redirection,
        check_executable=check_executable,
        run_executable=run_executable,
        lint_executable=lint_executable,
        check_sanitized=_honours_sanitizer(check_executable, config),
        run_sanitized=_honours_sanitizer(run_executable, config),
        allocator_library=_first_existing(config.allocator_libraries),
        demangler=resolver.resolve(config.demangler) if config.use_demangler else None,
        coverage=invocation.requests_coverage,
        sources=tuple(sources),
    )


__all__ = ["TaskPlan", "check_self_recursion", "plan_tasks"]
