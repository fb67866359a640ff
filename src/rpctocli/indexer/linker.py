from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from ..models.records import (
    BUILTIN_TYPES,
    BuiltinType,
    CompositeType,
    FieldDecl,
    FuncDecl,
    NamedType,
    Param,
    ParsedSource,
    SymbolTable,
    TypeDecl,
    TypeRef,
)
from .errors import NoSourceFilesError, TypeCheckError


def build_symbol_table(directory: Path, sources: Sequence[ParsedSource]) -> SymbolTable:
    """Merge parsed files of one package and classify every type identifier.

    A local type declaration shadows a predeclared name; identifiers that
    are neither stay as dangling `NamedType` references.
    """
    if not sources:
        raise NoSourceFilesError("no buildable Go source files", directory)

    package = _check_package(directory, sources)
    types: Dict[str, TypeDecl] = {}
    for parsed in sources:
        for decl in parsed.types:
            previous = types.get(decl.name)
            if previous is not None:
                raise TypeCheckError(
                    f"{decl.name} redeclared in this block "
                    f"(other declaration at {previous.file_path}:{previous.line})",
                    decl.file_path,
                    decl.line,
                )
            types[decl.name] = decl

    linker = _Linker(types)
    linked_types = {name: linker.type_decl(decl) for name, decl in types.items()}
    functions = tuple(
        linker.func_decl(decl) for parsed in sources for decl in parsed.functions
    )
    return SymbolTable(
        package=package,
        directory=directory,
        types=linked_types,
        functions=functions,
    )


def _check_package(directory: Path, sources: Sequence[ParsedSource]) -> str:
    first = sources[0]
    for parsed in sources[1:]:
        if parsed.package != first.package:
            raise TypeCheckError(
                f"found packages {first.package} ({first.file_path.name}) "
                f"and {parsed.package} ({parsed.file_path.name})",
                directory,
            )
    return first.package


class _Linker:
    def __init__(self, local_types: Mapping[str, TypeDecl]) -> None:
        self._local = local_types

    def ref(self, ref: TypeRef) -> TypeRef:
        if isinstance(ref, NamedType):
            if ref.package is None and ref.name not in self._local and ref.name in BUILTIN_TYPES:
                return BuiltinType(ref.name)
            return ref
        if isinstance(ref, CompositeType):
            return replace(ref, elements=tuple(self.ref(e) for e in ref.elements))
        return ref

    def param(self, param: Optional[Param]) -> Optional[Param]:
        if param is None:
            return None
        return replace(param, type=self.ref(param.type))

    def params(self, params: Sequence[Param]) -> tuple:
        return tuple(self.param(p) for p in params)

    def type_decl(self, decl: TypeDecl) -> TypeDecl:
        fields: List[FieldDecl] = [
            replace(f, type=self.param(f.type)) for f in decl.shape.fields
        ]
        shape = replace(decl.shape, target=self.param(decl.shape.target), fields=tuple(fields))
        return replace(decl, shape=shape)

    def func_decl(self, decl: FuncDecl) -> FuncDecl:
        return replace(
            decl,
            receiver=self.param(decl.receiver),
            params=self.params(decl.params),
            results=self.params(decl.results),
        )
