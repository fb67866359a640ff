"""Shared helpers for rpctocli tests.

Symbol tables are built by hand here so the classifier and builder can be
tested without going through the Go parser.
"""
from pathlib import Path
from typing import Iterable, Optional, Sequence

import pytest

from rpctocli.models.records import (
    BuiltinType,
    FuncDecl,
    NamedType,
    Param,
    PassingMode,
    ShapeKind,
    SymbolTable,
    TypeDecl,
    TypeRef,
    TypeShape,
)

FIXTURES = Path(__file__).parent / "fixtures" / "go"
SOURCE = Path("arith.go")

INT = BuiltinType("int")
ERROR = Param(type=BuiltinType("error"))


def val(type_ref: TypeRef, name: Optional[str] = None) -> Param:
    return Param(type=type_ref, mode=PassingMode.VALUE, name=name)


def ptr(type_ref: TypeRef, name: Optional[str] = None) -> Param:
    return Param(type=type_ref, mode=PassingMode.REFERENCE, name=name)


def named(name: str) -> NamedType:
    return NamedType(name)


def struct(name: str) -> TypeDecl:
    return TypeDecl(name=name, shape=TypeShape(ShapeKind.STRUCT), file_path=SOURCE, line=1)


def defined(name: str, target: Param) -> TypeDecl:
    return TypeDecl(
        name=name, shape=TypeShape(ShapeKind.DEFINED, target=target), file_path=SOURCE, line=1
    )


def alias(name: str, target: Param) -> TypeDecl:
    return TypeDecl(
        name=name, shape=TypeShape(ShapeKind.ALIAS, target=target), file_path=SOURCE, line=1
    )


def method(
    name: str,
    receiver: Optional[Param],
    params: Sequence[Param] = (),
    results: Sequence[Param] = (ERROR,),
    line: int = 1,
    file_path: Path = SOURCE,
) -> FuncDecl:
    return FuncDecl(
        name=name,
        file_path=file_path,
        line=line,
        receiver=receiver,
        params=tuple(params),
        results=tuple(results),
    )


def make_table(types: Iterable[TypeDecl], functions: Iterable[FuncDecl]) -> SymbolTable:
    return SymbolTable(
        package="main",
        directory=Path("."),
        types={decl.name: decl for decl in types},
        functions=tuple(functions),
    )


def arith_types() -> list:
    """Types of the Go net/rpc arithmetic example."""
    return [
        defined("Arith", val(INT)),
        defined("arith", val(INT)),
        struct("Args"),
        struct("Quotient"),
        struct("unexp"),
    ]


@pytest.fixture
def arith_dir() -> Path:
    return FIXTURES / "arith"
