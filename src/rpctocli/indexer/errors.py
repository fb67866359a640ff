"""Failures that stop a package from being loaded at all."""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class SourceLoadError(Exception):
    """Raised when the symbol table for a package cannot be built."""

    def __init__(self, message: str, path: Path, line: Optional[int] = None) -> None:
        location = f"{path}:{line}" if line is not None else str(path)
        super().__init__(f"{location}: {message}")
        self.path = path
        self.line = line


class DirectoryNotFoundError(SourceLoadError):
    pass


class NoSourceFilesError(SourceLoadError):
    pass


class GoSyntaxError(SourceLoadError):
    pass


class TypeCheckError(SourceLoadError):
    pass


class SourceReadError(SourceLoadError):
    pass
