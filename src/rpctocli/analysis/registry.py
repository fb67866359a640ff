from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..models.records import FuncDecl, MethodCollision, Service, ServiceRegistry, SymbolTable
from .classifier import RPCClassifier, Verdict

logger = logging.getLogger(__name__)


class ServiceRegistryBuilder:
    """Groups the accepted methods of a symbol table into services by receiver type."""

    def __init__(self, classifier: Optional[RPCClassifier] = None) -> None:
        self.classifier = classifier or RPCClassifier()

    def build(self, table: SymbolTable) -> ServiceRegistry:
        registry = ServiceRegistry(package=table.package)
        for verdict in self.verdicts(table):
            if verdict.record is None:
                continue
            self._add(registry, verdict)
        return registry

    def verdicts(
        self, table: SymbolTable, functions: Optional[Iterable[FuncDecl]] = None
    ) -> List[Verdict]:
        decls = table.functions if functions is None else functions
        results: List[Verdict] = []
        for decl in decls:
            verdict = self.classifier.classify(decl, table)
            if verdict.accepted:
                logger.debug("accepted %s", verdict.record.qualified_name)
            else:
                logger.debug(
                    "rejected %s (%s:%d): %s%s",
                    decl.name,
                    decl.file_path,
                    decl.line,
                    verdict.rejection.value,
                    f" [{verdict.detail}]" if verdict.detail else "",
                )
            results.append(verdict)
        return results

    def _add(self, registry: ServiceRegistry, verdict: Verdict) -> None:
        record = verdict.record
        service = registry.services.get(record.service)
        if service is None:
            service = Service(name=record.service)
            registry.services[record.service] = service
        previous = service.methods.get(record.name)
        if previous is not None:
            logger.warning(
                "%s redeclared at %s:%d, replacing declaration at %s:%d",
                record.qualified_name,
                record.file_path,
                record.line,
                previous.file_path,
                previous.line,
            )
            registry.collisions.append(MethodCollision(kept=record, dropped=previous))
        service.methods[record.name] = record


def build_services(
    table: SymbolTable, classifier: Optional[RPCClassifier] = None
) -> ServiceRegistry:
    return ServiceRegistryBuilder(classifier).build(table)
