from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Go predeclared types
BUILTIN_TYPES = frozenset({
    "any",
    "bool",
    "byte",
    "comparable",
    "complex64",
    "complex128",
    "error",
    "float32",
    "float64",
    "int",
    "int8",
    "int16",
    "int32",
    "int64",
    "rune",
    "string",
    "uint",
    "uint8",
    "uint16",
    "uint32",
    "uint64",
    "uintptr",
})


def is_exported(name: str) -> bool:
    """Go exports an identifier iff it starts with an upper-case letter."""
    return bool(name) and name[0].isupper()


@dataclass(frozen=True, slots=True)
class NamedType:
    name: str
    package: Optional[str] = None  # set for qualified references (pkg.Name)

    @property
    def exported(self) -> bool:
        return is_exported(self.name)

    def __str__(self) -> str:
        return f"{self.package}.{self.name}" if self.package else self.name


@dataclass(frozen=True, slots=True)
class BuiltinType:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class CompositeType:
    """Unnamed type literal: slice, array, map, pointer, chan, func, struct, interface."""
    kind: str
    elements: Tuple["TypeRef", ...] = ()
    text: str = ""

    def __str__(self) -> str:
        return self.text or self.kind


TypeRef = Union[NamedType, BuiltinType, CompositeType]


class PassingMode(str, Enum):
    VALUE = "value"
    REFERENCE = "reference"


@dataclass(frozen=True, slots=True)
class Param:
    type: TypeRef
    mode: PassingMode = PassingMode.VALUE
    name: Optional[str] = None
    variadic: bool = False

    @property
    def is_reference(self) -> bool:
        return self.mode is PassingMode.REFERENCE

    def type_text(self) -> str:
        prefix = "..." if self.variadic else ""
        star = "*" if self.is_reference else ""
        return f"{prefix}{star}{self.type}"

    def __str__(self) -> str:
        return f"{self.name} {self.type_text()}" if self.name else self.type_text()


class ShapeKind(str, Enum):
    STRUCT = "struct"
    INTERFACE = "interface"
    DEFINED = "defined"  # type T U
    ALIAS = "alias"  # type T = U


@dataclass(frozen=True, slots=True)
class FieldDecl:
    name: str
    type: Param
    embedded: bool = False
    tag: Optional[str] = None

    @property
    def exported(self) -> bool:
        return is_exported(self.name)


@dataclass(frozen=True, slots=True)
class TypeShape:
    kind: ShapeKind
    target: Optional[Param] = None
    fields: Tuple[FieldDecl, ...] = ()


@dataclass(frozen=True, slots=True)
class TypeDecl:
    name: str
    shape: TypeShape
    file_path: Path
    line: int
    doc: Optional[str] = None

    @property
    def exported(self) -> bool:
        return is_exported(self.name)

    @property
    def is_alias(self) -> bool:
        return self.shape.kind is ShapeKind.ALIAS


@dataclass(frozen=True, slots=True)
class FuncDecl:
    name: str
    file_path: Path
    line: int
    receiver: Optional[Param] = None
    params: Tuple[Param, ...] = ()
    results: Tuple[Param, ...] = ()
    doc: Optional[str] = None

    @property
    def exported(self) -> bool:
        return is_exported(self.name)

    @property
    def is_method(self) -> bool:
        return self.receiver is not None

    def signature(self) -> str:
        recv = f"({self.receiver}) " if self.receiver else ""
        params = ", ".join(str(p) for p in self.params)
        if not self.results:
            results = ""
        elif len(self.results) == 1 and not self.results[0].name:
            results = f" {self.results[0]}"
        else:
            results = " (" + ", ".join(str(r) for r in self.results) + ")"
        return f"func {recv}{self.name}({params}){results}"


@dataclass(slots=True)
class ParsedSource:
    package: str
    file_path: Path
    types: List[TypeDecl] = field(default_factory=list)
    functions: List[FuncDecl] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SymbolTable:
    """Declarations of one compilation unit.

    Type declarations are keyed by name; type references elsewhere in the
    table point at them by that name only.
    """
    package: str
    directory: Path
    types: Mapping[str, TypeDecl]
    functions: Tuple[FuncDecl, ...]

    def lookup(self, name: str) -> Optional[TypeDecl]:
        return self.types.get(name)


@dataclass(frozen=True, slots=True)
class MethodRecord:
    service: str
    name: str
    receiver: Param
    args: Param
    reply: Param
    result: TypeRef
    file_path: Path
    line: int
    doc: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        return f"{self.service}.{self.name}"

    def signature(self) -> str:
        return f"func ({self.receiver}) {self.name}({self.args}, {self.reply}) {self.result}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "service": self.service,
            "receiver": self.receiver.type_text(),
            "args": {"name": self.args.name, "type": self.args.type_text()},
            "reply": {"name": self.reply.name, "type": self.reply.type_text()},
            "result": str(self.result),
            "signature": self.signature(),
            "doc": self.doc,
            "file": str(self.file_path),
            "line": self.line,
        }


@dataclass(slots=True)
class Service:
    name: str
    methods: Dict[str, MethodRecord] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "methods": [self.methods[key].to_dict() for key in sorted(self.methods)],
        }


@dataclass(frozen=True, slots=True)
class MethodCollision:
    """Two accepted methods share a (service, method) pair; `kept` won."""
    kept: MethodRecord
    dropped: MethodRecord


@dataclass(slots=True)
class ServiceRegistry:
    package: str
    services: Dict[str, Service] = field(default_factory=dict)
    collisions: List[MethodCollision] = field(default_factory=list)

    def __getitem__(self, name: str) -> Service:
        return self.services[name]

    def __contains__(self, name: object) -> bool:
        return name in self.services

    def __iter__(self) -> Iterator[str]:
        return iter(self.services)

    def __len__(self) -> int:
        return len(self.services)

    def methods(self) -> Iterator[MethodRecord]:
        for name in sorted(self.services):
            service = self.services[name]
            for method in sorted(service.methods):
                yield service.methods[method]

    def select(self, names: Iterable[str]) -> "ServiceRegistry":
        """Return a new registry holding only the named services, or all of them."""
        wanted = [name for name in names if name] or list(self.services)
        for name in wanted:
            if name not in self.services:
                logger.warning("No RPC service named %s in package %s", name, self.package)
        services = {
            name: Service(name, dict(self.services[name].methods))
            for name in wanted
            if name in self.services
        }
        collisions = [c for c in self.collisions if c.kept.service in services]
        return ServiceRegistry(package=self.package, services=services, collisions=collisions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package": self.package,
            "services": [self.services[name].to_dict() for name in sorted(self.services)],
        }
