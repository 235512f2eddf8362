# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared constants describing the D toolchain the harness drives."""

from __future__ import annotations

import signal
from pathlib import Path
from typing import Final

PROG_NAME: Final[str] = "xdmd"

SOURCE_EXTENSION: Final[str] = ".d"
SWITCH_PREFIX: Final[str] = "-"
IMPORT_DIR_SWITCH: Final[str] = "-I"

ENTRY_POINT_SIGNATURES: Final[tuple[str, ...]] = ("void main(", "int main(")
TEST_KEYWORD: Final[str] = "unittest"

RUN_SWITCH: Final[str] = "-run"
MAIN_SWITCH: Final[str] = "-main"
COVERAGE_SWITCH: Final[str] = "-cov"
SANITIZER_SWITCH_PREFIX: Final[str] = "-fsanitize="
COMPILE_ONLY_FLAG: Final[str] = "-o-"
SUPPRESS_DEPRECATIONS_FLAG: Final[str] = "-d"

# Switches that may appear at most once in a single invocation.
SINGLE_USE_SWITCHES: Final[tuple[str, ...]] = (RUN_SWITCH, MAIN_SWITCH)
# Switches requesting a runnable artefact; irrelevant for a diagnostics-only pass.
EXECUTION_SWITCHES: Final[frozenset[str]] = frozenset({RUN_SWITCH, MAIN_SWITCH})

DEFAULT_CHECK_COMPILERS: Final[tuple[str, ...]] = ("dmd", "ldmd2")
DEFAULT_RUN_COMPILERS: Final[tuple[str, ...]] = ("dmd", "ldmd2")
DEFAULT_SANITIZER_COMPILERS: Final[tuple[str, ...]] = ("ldmd2",)
DEFAULT_LINTER: Final[str] = "dscanner"
DEFAULT_LINT_ARGUMENTS: Final[tuple[str, ...]] = ("--styleCheck",)
DEFAULT_DEMANGLER: Final[str] = "ddemangled"

_SYSTEM_LIB_DIRS: Final[tuple[Path, ...]] = (
    Path("/usr/lib/x86_64-linux-gnu"),
    Path("/usr/lib64"),
    Path("/usr/lib"),
)
DEFAULT_ALLOCATOR_LIBRARIES: Final[tuple[Path, ...]] = tuple(
    lib_dir / name for name in ("libmimalloc.so", "libtcmalloc.so") for lib_dir in _SYSTEM_LIB_DIRS
)
PRELOAD_VARIABLE: Final[str] = "LD_PRELOAD"
SEARCH_PATH_VARIABLE: Final[str] = "PATH"

# Set in every child environment so a nested harness refuses to start.
RECURSION_MARKER_VARIABLE: Final[str] = "XDMD_ACTIVE"

RUN_ASSERTION_FAILURE_STATUS: Final[int] = 1
LINT_WARNINGS_STATUS: Final[int] = 1
LINT_SEGFAULT_STATUSES: Final[frozenset[int]] = frozenset({-signal.SIGSEGV, 128 + signal.SIGSEGV})

LISTING_EXTENSION: Final[str] = ".lst"
ZERO_EXECUTIONS_SENTINEL: Final[str] = "0000000|"
SENTINEL_OFFSETS: Final[tuple[int, ...]] = (0, 1, 2)
INTERNAL_LISTING_NAME: Final[str] = "__main" + LISTING_EXTENSION

CONFIG_FILE_NAME: Final[str] = ".xdmd.toml"
PYPROJECT_FILE_NAME: Final[str] = "pyproject.toml"
PYPROJECT_SECTION_KEY: Final[str] = "xdmd"
ENV_PREFIX: Final[str] = "XDMD_"

__all__ = [
    "COMPILE_ONLY_FLAG",
    "CONFIG_FILE_NAME",
    "COVERAGE_SWITCH",
    "DEFAULT_ALLOCATOR_LIBRARIES",
    "DEFAULT_CHECK_COMPILERS",
    "DEFAULT_DEMANGLER",
    "DEFAULT_LINTER",
    "DEFAULT_LINT_ARGUMENTS",
    "DEFAULT_RUN_COMPILERS",
    "DEFAULT_SANITIZER_COMPILERS",
    "ENTRY_POINT_SIGNATURES",
    "ENV_PREFIX",
    "EXECUTION_SWITCHES",
    "IMPORT_DIR_SWITCH",
    "INTERNAL_LISTING_NAME",
    "LINT_SEGFAULT_STATUSES",
    "LINT_WARNINGS_STATUS",
    "LISTING_EXTENSION",
    "MAIN_SWITCH",
    "PRELOAD_VARIABLE",
    "PROG_NAME",
    "PYPROJECT_FILE_NAME",
    "PYPROJECT_SECTION_KEY",
    "RECURSION_MARKER_VARIABLE",
    "RUN_ASSERTION_FAILURE_STATUS",
    "RUN_SWITCH",
    "SANITIZER_SWITCH_PREFIX",
    "SEARCH_PATH_VARIABLE",
    "SENTINEL_OFFSETS",
    "SINGLE_USE_SWITCHES",
    "SOURCE_EXTENSION",
    "SUPPRESS_DEPRECATIONS_FLAG",
    "SWITCH_PREFIX",
    "TEST_KEYWORD",
    "ZERO_EXECUTIONS_SENTINEL",
]
