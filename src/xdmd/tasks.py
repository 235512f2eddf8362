# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-kind command construction and subprocess lifetime for harness tasks."""

from __future__ import annotations

# Bandit: subprocess usage is intentional; argument vectors are passed
# directly without shell expansion.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .config import HarnessConfig
from .constants import (
    COMPILE_ONLY_FLAG,
    EXECUTION_SWITCHES,
    IMPORT_DIR_SWITCH,
    SANITIZER_SWITCH_PREFIX,
    SUPPRESS_DEPRECATIONS_FLAG,
)
from .errors import TaskLaunchError
from .invocation import Invocation
from .models import RedirectionMode, TaskKind, TaskOutcome
from .planning import TaskPlan


@dataclass(frozen=True, slots=True)
class TaskSpec:
    """Fully resolved description of one subprocess to launch.

    ``env`` only holds the overrides for this child; they are merged over the
    parent environment at spawn time and never applied to the harness itself.
    """

    kind: TaskKind
    argv: tuple[str, ...]
    env: Mapping[str, str]
    cwd: Path
    redirection: RedirectionMode

    def render(self) -> str:
        return " ".join(self.argv)


def _without_sanitizer(arguments: Sequence[str]) -> list[str]:
    return [arg for arg in arguments if not arg.startswith(SANITIZER_SWITCH_PREFIX)]


def check_arguments(arguments: Sequence[str], *, keep_sanitizer: bool = False) -> list[str]:
    """Return the compiler arguments for a diagnostics-only pass.

    Execution requests are dropped and the compile-only flag is added, so the
    compiler reports diagnostics without producing a binary. Harness flags go
    first because everything after ``-run <file>`` belongs to the program.

    Args:
        arguments: Compiler arguments, without the program arguments after ``-run <file>``.
        keep_sanitizer: ``True`` when the check compiler understands ``-fsanitize=``.

    Returns:
        list[str]: Arguments excluding the executable.
    """

    kept = [arg for arg in arguments if arg not in EXECUTION_SWITCHES]
    if not keep_sanitizer:
        kept = _without_sanitizer(kept)
    flags = [] if COMPILE_ONLY_FLAG in kept else [COMPILE_ONLY_FLAG]
    return [*flags, *kept]


def run_arguments(arguments: Sequence[str], *, keep_sanitizer: bool = False) -> list[str]:
    """Return the compiler arguments for building and running the unittests.

    Deprecations are silenced because the check pass already reported them.
    Program arguments following ``-run <file>`` are not part of ``arguments``;
    the caller appends them as given.
    """

    kept = list(arguments) if keep_sanitizer else _without_sanitizer(arguments)
    flags = [] if SUPPRESS_DEPRECATIONS_FLAG in kept else [SUPPRESS_DEPRECATIONS_FLAG]
    return [*flags, *kept]


def lint_arguments(invocation: Invocation, lint_template: Sequence[str]) -> list[str]:
    """Return linter arguments: the fixed template, import dirs, then sources."""

    import_switches = [f"{IMPORT_DIR_SWITCH}{directory}" for directory in invocation.import_dirs]
    return [*lint_template, *import_switches, *invocation.source_paths]


def task_environment(
    kind: TaskKind,
    plan: TaskPlan,
    config: HarnessConfig,
    parent_environ: Mapping[str, str],
) -> dict[str, str]:
    """Return the environment overrides for a ``kind`` task.

    Every child carries the recursion marker. Compiler tasks additionally get
    the allocator library preloaded when one was found; an existing preload
    list is extended rather than replaced.
    """

    overrides = dict(config.extra_environment)
    overrides[config.recursion_marker] = "1"
    if kind is not TaskKind.LINT and plan.allocator_library is not None:
        existing = parent_environ.get(config.preload_variable, "")
        library = str(plan.allocator_library)
        overrides[config.preload_variable] = f"{existing}:{library}" if existing else library
    return overrides


def build_task_spec(
    kind: TaskKind,
    invocation: Invocation,
    plan: TaskPlan,
    *,
    config: HarnessConfig,
    cwd: Path,
    parent_environ: Mapping[str, str],
) -> TaskSpec:
    """Return the :class:`TaskSpec` for ``kind`` under ``plan``.

    Args:
        kind: Task kind to construct.
        invocation: Classified command-line arguments.
        plan: Plan the task is eligible under.
        config: Effective harness configuration.
        cwd: Working directory for the child.
        parent_environ: Environment the child inherits.

    Returns:
        TaskSpec: Launchable description of the task.

    Raises:
        ValueError: If ``kind`` is not eligible under ``plan``.
    """

    if not plan.is_eligible(kind):
        raise ValueError(f"{kind.value} task is not eligible for this invocation")

    prefix: list[str] = [str(plan.demangler)] if plan.demangler is not None else []
    match kind:
        case TaskKind.CHECK:
            argv = [
                *prefix,
                str(plan.check_executable),
                *check_arguments(invocation.compiler_arguments, keep_sanitizer=plan.check_sanitized),
            ]
        case TaskKind.RUN:
            argv = [
                *prefix,
                str(plan.run_executable),
                *run_arguments(invocation.compiler_arguments, keep_sanitizer=plan.run_sanitized),
                *invocation.program_arguments,
            ]
        case TaskKind.LINT:
            argv = [str(plan.lint_executable), *lint_arguments(invocation, config.lint_arguments)]

    return TaskSpec(
        kind=kind,
        argv=tuple(argv),
        env=task_environment(kind, plan, config, parent_environ),
        cwd=cwd,
        redirection=plan.redirection,
    )


@dataclass(slots=True)
class RunningTask:
    """A launched task owning its subprocess and captured streams."""

    spec: TaskSpec
    process: subprocess.Popen[str]

    @property
    def kind(self) -> TaskKind:
        return self.spec.kind

    def wait(self) -> TaskOutcome:
        """Block until the subprocess exits and return its outcome.

        Captured pipes are drained with ``communicate`` so a chatty child can
        never block on a full pipe buffer.

        Returns:
            TaskOutcome: Exit status (negative for signals) and captured output.
        """

        stdout, stderr = self.process.communicate()
        return TaskOutcome(
            kind=self.spec.kind,
            returncode=self.process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )


def launch(spec: TaskSpec, *, parent_environ: Mapping[str, str]) -> RunningTask:
    """Spawn ``spec`` and return immediately.

    Args:
        spec: Task description to launch.
        parent_environ: Environment the overrides are merged over.

    Returns:
        RunningTask: Handle for waiting on the task.

    Raises:
        TaskLaunchError: If the operating system fails to spawn the process.
    """

    capture = spec.redirection is RedirectionMode.CAPTURE
    pipe = subprocess.PIPE if capture else None
    env = {**parent_environ, **spec.env}
    try:
        process = subprocess.Popen(  # nosec B603 - argument vector, no shell
            list(spec.argv),
            cwd=str(spec.cwd),
            env=env,
            stdin=subprocess.DEVNULL if capture else None,
            stdout=pipe,
            stderr=pipe,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        raise TaskLaunchError(spec.argv, exc) from exc
    return RunningTask(spec=spec, process=process)


__all__ = [
    "RunningTask",
    "TaskSpec",
    "build_task_spec",
    "check_arguments",
    "launch",
    "lint_arguments",
    "run_arguments",
    "task_environment",
]
