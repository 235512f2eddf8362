# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for per-kind task construction and launching."""

from __future__ import annotations

from pathlib import Path

import pytest

from xdmd.config import HarnessConfig
from xdmd.errors import TaskLaunchError
from xdmd.invocation import Invocation
from xdmd.models import RedirectionMode, TaskKind
from xdmd.planning import TaskPlan
from xdmd.tasks import (
    TaskSpec,
    build_task_spec,
    check_arguments,
    launch,
    lint_arguments,
    run_arguments,
    task_environment,
)


def _plan(**overrides: object) -> TaskPlan:
    values: dict[str, object] = {
        "check": True,
        "run": True,
        "lint": True,
        "redirection": RedirectionMode.CAPTURE,
        "check_executable": Path("/opt/d/dmd"),
        "run_executable": Path("/opt/d/dmd"),
        "lint_executable": Path("/opt/d/dscanner"),
    }
    values.update(overrides)
    return TaskPlan(**values)  # type: ignore[arg-type]


def test_check_arguments_drop_execution_and_add_compile_only() -> None:
    arguments = ["-unittest", "-main", "-run", "-fsanitize=address", "app.d"]

    assert check_arguments(arguments) == ["-o-", "-unittest", "app.d"]
    assert check_arguments(arguments, keep_sanitizer=True) == ["-o-", "-unittest", "-fsanitize=address", "app.d"]
    assert check_arguments(["-o-", "app.d"]) == ["-o-", "app.d"]


def test_run_arguments_silence_deprecations() -> None:
    arguments = ["-unittest", "-main", "-fsanitize=address", "-run", "app.d"]

    assert run_arguments(arguments) == ["-d", "-unittest", "-main", "-run", "app.d"]
    assert run_arguments(arguments, keep_sanitizer=True) == ["-d", *arguments]
    assert run_arguments(["-d", "-run", "app.d"]) == ["-d", "-run", "app.d"]


def test_lint_arguments_keep_only_sources_and_imports() -> None:
    invocation = Invocation.from_arguments(["-unittest", "-Isrc", "-Ivendor", "lib.d", "-run", "app.d", "extra.d"])

    assert lint_arguments(invocation, ("--styleCheck",)) == [
        "--styleCheck",
        "-Isrc",
        "-Ivendor",
        "lib.d",
        "app.d",
    ]


def test_environment_preloads_allocator_for_compilers_only() -> None:
    config = HarnessConfig()
    plan = _plan(allocator_library=Path("/usr/lib/libmimalloc.so"))

    check_env = task_environment(TaskKind.CHECK, plan, config, {})
    lint_env = task_environment(TaskKind.LINT, plan, config, {})
    run_env = task_environment(TaskKind.RUN, plan, config, {"LD_PRELOAD": "/lib/libfoo.so"})

    assert check_env == {"LD_PRELOAD": "/usr/lib/libmimalloc.so", "XDMD_ACTIVE": "1"}
    assert lint_env == {"XDMD_ACTIVE": "1"}
    assert run_env["LD_PRELOAD"] == "/lib/libfoo.so:/usr/lib/libmimalloc.so"


def test_environment_includes_configured_extras() -> None:
    config = HarnessConfig(extra_environment={"DFLAGS": "-preview=dip1000"})

    env = task_environment(TaskKind.LINT, _plan(), config, {})

    assert env == {"DFLAGS": "-preview=dip1000", "XDMD_ACTIVE": "1"}


def test_build_task_spec_per_kind(tmp_path: Path) -> None:
    invocation = Invocation.from_arguments(["-unittest", "-Isrc", "-run", "app.d"])
    plan = _plan(demangler=Path("/usr/bin/ddemangled"))
    config = HarnessConfig()

    check = build_task_spec(TaskKind.CHECK, invocation, plan, config=config, cwd=tmp_path, parent_environ={})
    run = build_task_spec(TaskKind.RUN, invocation, plan, config=config, cwd=tmp_path, parent_environ={})
    lint = build_task_spec(TaskKind.LINT, invocation, plan, config=config, cwd=tmp_path, parent_environ={})

    assert check.argv == ("/usr/bin/ddemangled", "/opt/d/dmd", "-o-", "-unittest", "-Isrc", "app.d")
    assert run.argv == ("/usr/bin/ddemangled", "/opt/d/dmd", "-d", "-unittest", "-Isrc", "-run", "app.d")
    assert lint.argv == ("/opt/d/dscanner", "--styleCheck", "-Isrc", "app.d")
    assert {spec.redirection for spec in (check, run, lint)} == {RedirectionMode.CAPTURE}
    assert check.cwd == tmp_path


def test_program_arguments_only_reach_the_run_task(tmp_path: Path) -> None:
    invocation = Invocation.from_arguments(["-unittest", "-run", "app.d", "--verbose", "-fsanitize=x", "input.d"])
    plan = _plan()
    config = HarnessConfig()

    check = build_task_spec(TaskKind.CHECK, invocation, plan, config=config, cwd=tmp_path, parent_environ={})
    run = build_task_spec(TaskKind.RUN, invocation, plan, config=config, cwd=tmp_path, parent_environ={})
    lint = build_task_spec(TaskKind.LINT, invocation, plan, config=config, cwd=tmp_path, parent_environ={})

    assert check.argv == ("/opt/d/dmd", "-o-", "-unittest", "app.d")
    assert run.argv == ("/opt/d/dmd", "-d", "-unittest", "-run", "app.d", "--verbose", "-fsanitize=x", "input.d")
    assert lint.argv == ("/opt/d/dscanner", "--styleCheck", "app.d")


def test_build_task_spec_rejects_ineligible_kind(tmp_path: Path) -> None:
    plan = _plan(run=False, run_executable=None)

    with pytest.raises(ValueError, match="run task is not eligible"):
        build_task_spec(
            TaskKind.RUN,
            Invocation.from_arguments(["app.d"]),
            plan,
            config=HarnessConfig(),
            cwd=tmp_path,
            parent_environ={},
        )


def test_launch_captures_output_and_status(tmp_path: Path) -> None:
    script = tmp_path / "tool"
    script.write_text(
        "#!/bin/sh\necho \"out:$XDMD_ACTIVE\"\necho err >&2\nexit 3\n",
        encoding="utf-8",
    )
    script.chmod(0o755)
    spec = TaskSpec(
        kind=TaskKind.CHECK,
        argv=(str(script),),
        env={"XDMD_ACTIVE": "1"},
        cwd=tmp_path,
        redirection=RedirectionMode.CAPTURE,
    )

    outcome = launch(spec, parent_environ={"PATH": "/usr/bin:/bin"}).wait()

    assert outcome.kind is TaskKind.CHECK
    assert outcome.returncode == 3
    assert outcome.ok is False
    assert outcome.stdout == "out:1\n"
    assert outcome.stderr == "err\n"


def test_launch_failure_raises_task_launch_error(tmp_path: Path) -> None:
    spec = TaskSpec(
        kind=TaskKind.RUN,
        argv=(str(tmp_path / "missing-compiler"),),
        env={},
        cwd=tmp_path,
        redirection=RedirectionMode.INHERIT,
    )

    with pytest.raises(TaskLaunchError) as excinfo:
        launch(spec, parent_environ={})

    assert excinfo.value.exit_code == 127
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)
