# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures providing a fake D toolchain."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from xdmd.config import HarnessConfig
from xdmd.logging import HarnessLogger

# Behaves like dmd/ldmd2/dscanner/ddemangled closely enough for the pipeline:
# records its argv and selected environment, prints canned output and exits
# with a canned status. The pass is derived from the argv (``-o-`` = check).
FAKE_TOOL_SOURCE = '''
import json
import os
import subprocess
import sys
from pathlib import Path

name = Path(sys.argv[0]).name
args = sys.argv[1:]
if name == "ddemangled":
    sys.exit(subprocess.call(args))
if name == "dscanner":
    mode = "lint"
elif "-o-" in args:
    mode = "check"
else:
    mode = "run"
log_dir = os.environ.get("FAKE_LOG_DIR")
if log_dir:
    record = {
        "tool": name,
        "argv": args,
        "marker": os.environ.get("XDMD_ACTIVE"),
        "preload": os.environ.get("LD_PRELOAD"),
    }
    Path(log_dir, f"{mode}.json").write_text(json.dumps(record), encoding="utf-8")
key = mode.upper()
listings = os.environ.get(f"FAKE_{key}_LISTINGS")
if listings:
    for file_name, content in json.loads(listings).items():
        Path(file_name).write_text(content, encoding="utf-8")
sys.stdout.write(os.environ.get(f"FAKE_{key}_STDOUT", ""))
sys.stderr.write(os.environ.get(f"FAKE_{key}_STDERR", ""))
sys.exit(int(os.environ.get(f"FAKE_{key}_STATUS", "0")))
'''


def write_tool(bin_dir: Path, name: str, source: str = FAKE_TOOL_SOURCE) -> Path:
    """Write an executable Python script called ``name`` into ``bin_dir``."""

    bin_dir.mkdir(parents=True, exist_ok=True)
    script = bin_dir / name
    script.write_text(f"#!{sys.executable}\n{source}", encoding="utf-8")
    script.chmod(0o755)
    return script


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    path = tmp_path / "log"
    path.mkdir()
    return path


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def make_tools(bin_dir: Path) -> Callable[..., Path]:
    """Return a factory installing fake tools by name into ``bin_dir``."""

    def _make(*names: str) -> Path:
        for name in names:
            write_tool(bin_dir, name)
        return bin_dir

    return _make


@pytest.fixture
def quiet_config(tmp_path: Path) -> HarnessConfig:
    """Configuration without allocator preloading or demangling."""

    return HarnessConfig(
        allocator_libraries=(tmp_path / "missing" / "liballoc.so",),
        use_demangler=False,
        use_color=False,
    )


@pytest.fixture
def logger() -> HarnessLogger:
    return HarnessLogger(use_color=False)


@pytest.fixture
def tool_record(log_dir: Path) -> Callable[[str], dict[str, Any] | None]:
    """Return a reader for the argv/environment record a fake tool left per pass."""

    def _read(mode: str) -> dict[str, Any] | None:
        path = log_dir / f"{mode}.json"
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    return _read
