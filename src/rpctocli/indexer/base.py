from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from ..models.records import ParsedSource


class ParserAdapter(ABC):
    suffix: str

    @abstractmethod
    def parse(self, source: str, path: Path) -> ParsedSource:
        """Return the package clause and declarations found in the given source."""

    def is_ignored(self, source: str) -> bool:
        """True when the file is excluded from the build."""
        return False
