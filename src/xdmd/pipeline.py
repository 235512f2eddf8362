# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run the check, unittest and lint passes for one invocation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .classify import classify_source
from .config import HarnessConfig
from .constants import LINT_SEGFAULT_STATUSES, PROG_NAME
from .coverage import CoverageProcessor, CoverageReport, should_process_coverage
from .errors import TaskLaunchError
from .executables import ExecutableResolver
from .invocation import Invocation
from .lint_filter import filter_lint_outcome, join_stream
from .logging import HarnessLogger
from .models import RedirectionMode, TaskKind, TaskOutcome
from .planning import TaskPlan, plan_tasks
from .reconcile import reconcile_outputs
from .status import aggregate_status
from .tasks import RunningTask, build_task_spec, launch

# Tasks are spawned in this order so the slowest (run) starts as early as the check.
LAUNCH_ORDER: Final[tuple[TaskKind, ...]] = (TaskKind.CHECK, TaskKind.RUN, TaskKind.LINT)


@dataclass(slots=True)
class PipelineResult:
    """Everything one pipeline invocation produced."""

    plan: TaskPlan
    status: int
    outcomes: dict[TaskKind, TaskOutcome] = field(default_factory=dict)
    coverage: CoverageReport | None = None

    def returncode(self, kind: TaskKind) -> int | None:
        outcome = self.outcomes.get(kind)
        return None if outcome is None else outcome.returncode


class Pipeline:
    """Plan, launch, wait for and report the tasks of one invocation."""

    def __init__(
        self,
        *,
        config: HarnessConfig,
        logger: HarnessLogger,
        cwd: Path,
        environ: Mapping[str, str],
        resolver: ExecutableResolver | None = None,
    ) -> None:
        self._config = config
        self._logger = logger
        self._cwd = cwd
        self._environ = dict(environ)
        self._resolver = resolver or ExecutableResolver.from_environ(environ)

    def plan(self, invocation: Invocation) -> TaskPlan:
        """Classify the sources of ``invocation`` and return its task plan."""

        sources = [classify_source(path, cwd=self._cwd) for path in invocation.source_paths]
        plan = plan_tasks(
            invocation,
            sources,
            resolver=self._resolver,
            config=self._config,
            environ=self._environ,
        )
        self._logger.debug(f"plan {plan.describe()}")
        return plan

    def run(self, arguments: Sequence[str]) -> PipelineResult:
        """Execute the pipeline for ``arguments`` and return its result.

        Args:
            arguments: Compiler-style arguments excluding the program name.

        Returns:
            PipelineResult: Outcomes of every task and the aggregate status.

        Raises:
            SelfRecursionError: When planning detects a self-recursive call.
            ExecutableNotFoundError: When a required compiler is missing.
            TaskLaunchError: When a task cannot be spawned.
        """

        invocation = Invocation.from_arguments(arguments)
        plan = self.plan(invocation)
        running = self._launch_all(invocation, plan)
        captured = plan.redirection is RedirectionMode.CAPTURE
        result = PipelineResult(plan=plan, status=0)

        check = self._finish(running[TaskKind.CHECK], result)
        if captured:
            self._logger.echo(check.stdout)
            self._logger.echo(check.stderr, err=True)
        if not check.ok and self._config.exit_early_on_check_failure:
            self._logger.info(
                f"{PROG_NAME}: check failed with status {check.returncode}; skipping lint and unittest output",
            )
            for kind in (TaskKind.LINT, TaskKind.RUN):
                if kind in running:
                    self._finish(running[kind], result)
            result.status = check.returncode
            return result

        if TaskKind.LINT in running:
            lint = self._finish(running[TaskKind.LINT], result)
            if captured:
                messages = filter_lint_outcome(lint)
                self._logger.debug(f"lint diagnostics={len(lint.diagnostics)}")
                self._logger.echo(join_stream(messages, "stdout"))
                self._logger.echo(join_stream(messages, "stderr"), err=True)
            if lint.returncode in LINT_SEGFAULT_STATUSES:
                linter = plan.lint_executable.name if plan.lint_executable else "linter"
                self._logger.warn(f"{PROG_NAME}: {linter} crashed with status {lint.returncode}; lint ignored")

        if TaskKind.RUN in running:
            run = self._finish(running[TaskKind.RUN], result)
            if captured:
                stdout, stderr = reconcile_outputs(check, run)
                self._logger.echo(stdout)
                self._logger.echo(stderr, err=True)
            if should_process_coverage(
                run_eligible=plan.run,
                coverage_requested=plan.coverage,
                run_status=run.returncode,
            ):
                result.coverage = self._report_coverage(plan)

        result.status = aggregate_status(
            result.returncode(TaskKind.CHECK),
            result.returncode(TaskKind.RUN),
            result.returncode(TaskKind.LINT),
        )
        self._logger.debug(f"aggregate status={result.status}")
        return result

    def _launch_all(self, invocation: Invocation, plan: TaskPlan) -> dict[TaskKind, RunningTask]:
        running: dict[TaskKind, RunningTask] = {}
        try:
            for kind in LAUNCH_ORDER:
                if not plan.is_eligible(kind):
                    continue
                spec = build_task_spec(
                    kind,
                    invocation,
                    plan,
                    config=self._config,
                    cwd=self._cwd,
                    parent_environ=self._environ,
                )
                self._logger.debug(f"launch kind={kind.value} command=\"{spec.render()}\"")
                running[kind] = launch(spec, parent_environ=self._environ)
        except TaskLaunchError:
            # Already spawned children are still waited for; they are never killed.
            for task in running.values():
                task.wait()
            raise
        return running

    def _finish(self, task: RunningTask, result: PipelineResult) -> TaskOutcome:
        outcome = task.wait()
        result.outcomes[task.kind] = outcome
        self._logger.debug(f"exit kind={task.kind.value} status={outcome.returncode}")
        return outcome

    def _report_coverage(self, plan: TaskPlan) -> CoverageReport:
        report = CoverageProcessor(self._cwd).run(plan.sources)
        for diagnostic in report.diagnostics:
            self._logger.echo(diagnostic.render())
        for path in report.consumed:
            self._logger.debug(f"consumed listing={path.name}")
        for path in report.removed:
            self._logger.debug(f"removed listing={path.name}")
        return report


__all__ = ["LAUNCH_ORDER", "Pipeline", "PipelineResult"]
