from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..analysis.classifier import RPCClassifier, Verdict
from ..analysis.registry import ServiceRegistryBuilder
from ..config import Settings
from ..models.records import ParsedSource, ServiceRegistry, SymbolTable
from .base import ParserAdapter
from .errors import DirectoryNotFoundError, NoSourceFilesError, SourceReadError
from .go_parser import GoParser
from .linker import build_symbol_table

logger = logging.getLogger(__name__)


class AnalyzerService:
    def __init__(self, settings: Settings, parser: ParserAdapter | None = None) -> None:
        self.settings = settings
        self.parser = parser or GoParser()
        self.builder = ServiceRegistryBuilder(RPCClassifier(error_type=settings.error_type))

    # --- public API ---
    def load(self) -> SymbolTable:
        directory = self.settings.source_dir
        sources: List[ParsedSource] = []
        for path in self._source_files(self.parser.suffix):
            content = self._read(path)
            if self.parser.is_ignored(content):
                logger.debug("skipping %s: excluded by build constraint", path.name)
                continue
            parsed = self.parser.parse(content, path)
            if path.stem.endswith("_test") and parsed.package.endswith("_test"):
                logger.debug("skipping %s: external test package %s", path.name, parsed.package)
                continue
            sources.append(parsed)
        if not sources:
            raise NoSourceFilesError("no buildable Go source files", directory)
        table = build_symbol_table(directory, sources)
        logger.debug(
            "loaded package %s: %d types, %d functions",
            table.package,
            len(table.types),
            len(table.functions),
        )
        return table

    def analyze(self) -> ServiceRegistry:
        services = self.builder.build(self.load())
        return services.select(self.settings.types)

    def explain(self) -> List[Verdict]:
        return self.builder.verdicts(self.load())

    # --- helpers ---
    def _source_files(self, suffix: str) -> List[Path]:
        directory = self.settings.source_dir
        if not directory.is_dir():
            raise DirectoryNotFoundError("not a readable directory", directory)
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            raise DirectoryNotFoundError(f"failed to read directory: {exc}", directory) from exc
        files: List[Path] = []
        for path in entries:
            if not path.is_file() or path.suffix != suffix:
                continue
            if path.name.endswith(f"_test{suffix}") and not self.settings.include_tests:
                logger.debug("skipping test file %s", path.name)
                continue
            files.append(path)
        return files

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise SourceReadError(f"invalid UTF-8 at byte {exc.start}", path) from exc
        except OSError as exc:
            raise SourceReadError(f"failed to read file: {exc.strerror or exc}", path) from exc
