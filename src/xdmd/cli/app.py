# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point forwarding compiler arguments to the pipeline."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any, Final

import typer

from ..config import ConfigError, load_config
from ..constants import PROG_NAME
from ..errors import HarnessError
from ..logging import build_logger, fail
from ..pipeline import Pipeline

CONFIG_ERROR_EXIT_CODE: Final[int] = 2
END_OF_OPTIONS: Final[str] = "--"

# Every argument belongs to the compiler; the harness owns no options, not even --help.
PASSTHROUGH_CONTEXT: Final[dict[str, Any]] = {
    "ignore_unknown_options": True,
    "allow_extra_args": True,
    "allow_interspersed_args": True,
}

app = typer.Typer(
    name=PROG_NAME,
    add_completion=False,
    pretty_exceptions_enable=False,
    help="Run check, unittest and lint passes over D sources in one go.",
)


@app.command(context_settings=PASSTHROUGH_CONTEXT, add_help_option=False)
def compile_command(
    arguments: Annotated[
        list[str] | None,
        typer.Argument(help="Compiler arguments: switches and .d source files.", show_default=False),
    ] = None,
) -> None:
    """Typer entry point running the pipeline for ``arguments``.

    Args:
        arguments: Compiler-style arguments, forwarded verbatim.

    Raises:
        typer.Exit: Always, carrying the aggregate status of the invocation.
    """

    cwd = Path.cwd()
    environ = dict(os.environ)
    try:
        config = load_config(cwd, environ)
    except ConfigError as exc:
        fail(str(exc), use_emoji=False)
        raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE) from exc

    logger = build_logger(config)
    pipeline = Pipeline(config=config, logger=logger, cwd=cwd, environ=environ)
    try:
        result = pipeline.run(arguments or [])
    except HarnessError as exc:
        logger.fail(f"{PROG_NAME}: {exc}")
        raise typer.Exit(code=exc.exit_code) from exc
    raise typer.Exit(code=result.status)


def passthrough_arguments(argv: Sequence[str]) -> list[str]:
    """Return ``argv`` shielded from option parsing.

    Click drops the first ``--`` it sees, even with unknown options ignored.
    A leading ``--`` ends option parsing up front, so every argument,
    including a later ``--`` meant for the test program, arrives verbatim.
    """

    return [END_OF_OPTIONS, *argv]


def main() -> None:
    """Console-script entry point."""

    app(args=passthrough_arguments(sys.argv[1:]), prog_name=PROG_NAME)


__all__ = ["app", "compile_command", "main", "passthrough_arguments"]
