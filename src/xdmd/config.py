# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration model and layered loading for the xdmd harness."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import (
    CONFIG_FILE_NAME,
    DEFAULT_ALLOCATOR_LIBRARIES,
    DEFAULT_CHECK_COMPILERS,
    DEFAULT_DEMANGLER,
    DEFAULT_LINT_ARGUMENTS,
    DEFAULT_LINTER,
    DEFAULT_RUN_COMPILERS,
    DEFAULT_SANITIZER_COMPILERS,
    ENV_PREFIX,
    PRELOAD_VARIABLE,
    PYPROJECT_FILE_NAME,
    PYPROJECT_SECTION_KEY,
    RECURSION_MARKER_VARIABLE,
)

PYPROJECT_TOOL_KEY: Final[str] = "tool"
_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off", ""})


class ConfigError(Exception):
    """Raised when configuration input is invalid."""


class HarnessConfig(BaseModel):
    """Tool selection and behaviour switches for a harness invocation."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    check_compilers: tuple[str, ...] = DEFAULT_CHECK_COMPILERS
    run_compilers: tuple[str, ...] = DEFAULT_RUN_COMPILERS
    sanitizer_compilers: tuple[str, ...] = DEFAULT_SANITIZER_COMPILERS
    linter: str | None = DEFAULT_LINTER
    lint_arguments: tuple[str, ...] = DEFAULT_LINT_ARGUMENTS
    allocator_libraries: tuple[Path, ...] = DEFAULT_ALLOCATOR_LIBRARIES
    preload_variable: str = PRELOAD_VARIABLE
    demangler: str = DEFAULT_DEMANGLER
    use_demangler: bool = True
    exit_early_on_check_failure: bool = False
    debug: bool = False
    use_color: bool = True
    use_emoji: bool = False
    recursion_marker: str = RECURSION_MARKER_VARIABLE
    extra_environment: dict[str, str] = Field(default_factory=dict)

    def with_updates(self, data: Mapping[str, Any], *, source: str) -> HarnessConfig:
        """Return a copy of the configuration with ``data`` merged on top.

        Args:
            data: Raw mapping of field overrides.
            source: Human-readable origin used in error messages.

        Returns:
            HarnessConfig: Validated configuration including the overrides.

        Raises:
            ConfigError: If ``data`` names unknown fields or holds invalid values.
        """

        if not data:
            return self
        payload = self.model_dump()
        payload.update(data)
        try:
            return HarnessConfig.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(f"invalid configuration in {source}: {exc}") from exc


class TomlConfigSource:
    """Load configuration data from a standalone TOML document."""

    def __init__(self, path: Path, *, name: str | None = None) -> None:
        self._path = path
        self.name = name or str(path)

    def load(self) -> Mapping[str, Any]:
        if not self._path.is_file():
            return {}
        try:
            with self._path.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"could not parse {self._path}: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigError(f"Configuration at {self._path} must be a table")
        return _normalise_keys(data)

    def describe(self) -> str:
        return f"TOML configuration at {self.name}"


class PyProjectConfigSource(TomlConfigSource):
    """Read configuration from ``[tool.xdmd]`` within ``pyproject.toml``."""

    def load(self) -> Mapping[str, Any]:
        data = super().load()
        tool_section = data.get(PYPROJECT_TOOL_KEY)
        if not isinstance(tool_section, Mapping):
            return {}
        section = tool_section.get(PYPROJECT_SECTION_KEY)
        if not isinstance(section, Mapping):
            return {}
        return _normalise_keys(section)

    def describe(self) -> str:
        return f"pyproject.toml ({self.name})"


class EnvironmentConfigSource:
    """Translate ``XDMD_*`` environment variables into configuration fields."""

    FLAG_FIELDS: Final[dict[str, tuple[str, bool]]] = {
        "DEBUG": ("debug", False),
        "NO_COLOR": ("use_color", True),
        "NO_EMOJI": ("use_emoji", True),
        "NO_DEMANGLE": ("use_demangler", True),
        "EXIT_EARLY": ("exit_early_on_check_failure", False),
    }

    def __init__(self, environ: Mapping[str, str]) -> None:
        self._environ = environ
        self.name = "environment"

    def load(self) -> Mapping[str, Any]:
        data: dict[str, Any] = {}
        for suffix, (field_name, inverted) in self.FLAG_FIELDS.items():
            raw = self._environ.get(f"{ENV_PREFIX}{suffix}")
            if raw is None:
                continue
            enabled = _parse_flag(f"{ENV_PREFIX}{suffix}", raw)
            data[field_name] = not enabled if inverted else enabled
        no_lint = self._environ.get(f"{ENV_PREFIX}NO_LINT")
        if no_lint is not None and _parse_flag(f"{ENV_PREFIX}NO_LINT", no_lint):
            data["linter"] = None
        return data

    def describe(self) -> str:
        return "environment variables"


def _parse_flag(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean flag, got {raw!r}")


def _normalise_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``data`` with TOML-style dashed keys converted to field names."""

    return {str(key).replace("-", "_"): value for key, value in data.items()}


def load_config(cwd: Path, environ: Mapping[str, str]) -> HarnessConfig:
    """Resolve the effective configuration for an invocation rooted at ``cwd``.

    Sources are applied in increasing precedence: built-in defaults,
    ``[tool.xdmd]`` in ``pyproject.toml``, ``.xdmd.toml`` and finally the
    ``XDMD_*`` environment variables.

    Args:
        cwd: Working directory of the invocation.
        environ: Process environment used for overrides.

    Returns:
        HarnessConfig: Fully merged configuration.

    Raises:
        ConfigError: If any source is malformed.
    """

    config = HarnessConfig()
    sources = (
        PyProjectConfigSource(cwd / PYPROJECT_FILE_NAME),
        TomlConfigSource(cwd / CONFIG_FILE_NAME),
        EnvironmentConfigSource(environ),
    )
    for source in sources:
        config = config.with_updates(source.load(), source=source.describe())
    return config


__all__ = [
    "ConfigError",
    "EnvironmentConfigSource",
    "HarnessConfig",
    "PyProjectConfigSource",
    "TomlConfigSource",
    "load_config",
]
