# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Classification of a compiler-style argument vector."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .classify import is_eligible_source_argument
from .constants import (
    COVERAGE_SWITCH,
    IMPORT_DIR_SWITCH,
    RUN_SWITCH,
    SANITIZER_SWITCH_PREFIX,
    SWITCH_PREFIX,
)


def split_program_arguments(arguments: Sequence[str]) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Split ``arguments`` at the end of the first ``-run <file>`` pair.

    The compiler hands everything after ``-run <file>`` to the program it
    runs, so those arguments are never compiler switches or sources.

    Args:
        arguments: Raw command-line arguments as passed to the compiler.

    Returns:
        tuple[tuple[str, ...], tuple[str, ...]]: Compiler arguments (up to and
        including the run file) and the program arguments that follow.
    """

    args = tuple(arguments)
    if RUN_SWITCH not in args:
        return args, ()
    boundary = min(args.index(RUN_SWITCH) + 2, len(args))
    return args[:boundary], args[boundary:]


@dataclass(frozen=True, slots=True)
class Invocation:
    """Arguments of one harness invocation split into the parts tasks care about.

    ``arguments`` preserves the caller's order verbatim. ``compiler_arguments``
    and ``program_arguments`` partition it at the end of ``-run <file>``; the
    remaining fields only look at the compiler part.
    """

    arguments: tuple[str, ...]
    compiler_arguments: tuple[str, ...]
    program_arguments: tuple[str, ...]
    switches: tuple[str, ...]
    source_paths: tuple[str, ...]
    import_dirs: tuple[str, ...]

    @classmethod
    def from_arguments(cls, arguments: Sequence[str]) -> Invocation:
        """Split ``arguments`` (excluding the program name) into an :class:`Invocation`.

        Args:
            arguments: Raw command-line arguments as passed to the compiler.

        Returns:
            Invocation: Classified view of ``arguments``.
        """

        compiler, program = split_program_arguments(arguments)
        switches = tuple(arg for arg in compiler if arg.startswith(SWITCH_PREFIX))
        sources = tuple(arg for arg in compiler if is_eligible_source_argument(arg))
        import_dirs = tuple(
            switch[len(IMPORT_DIR_SWITCH) :]
            for switch in switches
            if switch.startswith(IMPORT_DIR_SWITCH) and len(switch) > len(IMPORT_DIR_SWITCH)
        )
        return cls(
            arguments=(*compiler, *program),
            compiler_arguments=compiler,
            program_arguments=program,
            switches=switches,
            source_paths=sources,
            import_dirs=import_dirs,
        )

    def has_switch(self, name: str) -> bool:
        return name in self.switches

    def count_switch(self, name: str) -> int:
        return self.switches.count(name)

    def has_switch_prefix(self, prefix: str) -> bool:
        return any(switch.startswith(prefix) for switch in self.switches)

    @property
    def requests_run(self) -> bool:
        """Return ``True`` when the caller asked for the unittests to be executed."""

        return self.has_switch(RUN_SWITCH)

    @property
    def requests_coverage(self) -> bool:
        """Return ``True`` for ``-cov`` as well as ``-cov=<threshold>`` forms."""

        return self.has_switch(COVERAGE_SWITCH) or self.has_switch_prefix(f"{COVERAGE_SWITCH}=")

    @property
    def sanitizer_switches(self) -> tuple[str, ...]:
        return tuple(switch for switch in self.switches if switch.startswith(SANITIZER_SWITCH_PREFIX))


__all__ = ["Invocation", "split_program_arguments"]
