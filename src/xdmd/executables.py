# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Locate tool executables on the search path."""

from __future__ import annotations

import os
import shutil
from collections.abc import Mapping
from pathlib import Path

from .constants import SEARCH_PATH_VARIABLE


class ExecutableResolver:
    """Resolve logical tool names against a ``PATH``-style search path.

    The search path is read once at construction time and never written.
    Lookups are memoised for the lifetime of the resolver.
    """

    def __init__(self, search_path: str | None = None, *, pathsep: str = os.pathsep) -> None:
        """Create a resolver for ``search_path``.

        Args:
            search_path: Separator-joined directory list; defaults to ``$PATH``.
            pathsep: Separator used to split ``search_path``.
        """

        raw = os.environ.get(SEARCH_PATH_VARIABLE, "") if search_path is None else search_path
        self._directories = tuple(Path(entry) for entry in raw.split(pathsep) if entry)
        self._cache: dict[str, Path | None] = {}

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> ExecutableResolver:
        return cls(environ.get(SEARCH_PATH_VARIABLE, ""))

    @property
    def directories(self) -> tuple[Path, ...]:
        return self._directories

    def resolve(self, name: str) -> Path | None:
        """Return the first ``directory/name`` that is an executable file.

        Lookup is delegated to :func:`shutil.which` restricted to this
        resolver's directories.

        Args:
            name: Bare executable name, e.g. ``dmd``.

        Returns:
            Path | None: First match in search-path order, or ``None``.
        """

        if name in self._cache:
            return self._cache[name]
        search_path = os.pathsep.join(str(directory) for directory in self._directories)
        location = shutil.which(name, path=search_path) if search_path else None
        found = Path(location) if location is not None else None
        self._cache[name] = found
        return found

    def preferred(self, *names: str) -> Path | None:
        """Return the resolution of the first resolvable name in ``names``.

        Args:
            *names: Candidate executable names in order of preference.

        Returns:
            Path | None: Location of the most preferred available executable.
        """

        for name in names:
            found = self.resolve(name)
            if found is not None:
                return found
        return None


__all__ = ["ExecutableResolver"]
