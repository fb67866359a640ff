from __future__ import annotations

import re
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from tree_sitter import Language, Node, Parser
from tree_sitter_go import language as go_language

from ..models.records import (
    CompositeType,
    FieldDecl,
    FuncDecl,
    NamedType,
    Param,
    ParsedSource,
    PassingMode,
    ShapeKind,
    TypeDecl,
    TypeRef,
    TypeShape,
)
from .base import ParserAdapter
from .errors import GoSyntaxError

FUNC_NODE_TYPES = {"function_declaration", "method_declaration"}

COMPOSITE_KINDS = {
    "pointer_type": "pointer",
    "slice_type": "slice",
    "array_type": "array",
    "implicit_length_array_type": "array",
    "map_type": "map",
    "channel_type": "chan",
    "function_type": "func",
    "struct_type": "struct",
    "interface_type": "interface",
}

# `//go:build ignore` or the older `// +build ignore` before the package clause
IGNORE_CONSTRAINT_RE = re.compile(r"^//\s*(?:go:build|\+build)\s+ignore\s*$", re.MULTILINE)
PACKAGE_CLAUSE_RE = re.compile(r"^package\s", re.MULTILINE)


class GoParser(ParserAdapter):
    suffix = ".go"

    def __init__(self) -> None:
        self._language = Language(go_language())
        self._parser = Parser(self._language)

    def parse(self, source: str, path: Path) -> ParsedSource:
        source_bytes = source.encode("utf-8")
        tree = self._parser.parse(source_bytes)
        root = tree.root_node

        if root.has_error:
            bad = self._first_error(root)
            line = bad.start_point[0] + 1 if bad is not None else None
            raise GoSyntaxError("syntax error", path, line)

        package = self._package_name(root, source_bytes)
        if not package:
            raise GoSyntaxError("expected 'package' clause", path, 1)

        parsed = ParsedSource(package=package, file_path=path)
        for node in root.named_children:
            if node.type == "type_declaration":
                parsed.types.extend(self._type_decls(node, source_bytes, path))
            elif node.type in FUNC_NODE_TYPES:
                parsed.functions.append(self._func_decl(node, source_bytes, path))
        return parsed

    def is_ignored(self, source: str) -> bool:
        """True when a build constraint excludes the file from every build."""
        clause = PACKAGE_CLAUSE_RE.search(source)
        header = source[: clause.start()] if clause else source
        return bool(IGNORE_CONSTRAINT_RE.search(header))

    # --- declarations ---
    def _type_decls(self, node: Node, source_bytes: bytes, path: Path) -> Iterator[TypeDecl]:
        specs = [c for c in node.named_children if c.type in {"type_spec", "type_alias"}]
        for spec in specs:
            name_node = spec.child_by_field_name("name")
            type_node = spec.child_by_field_name("type")
            if name_node is None or type_node is None:
                continue
            doc = self._doc(spec, source_bytes)
            if doc is None and len(specs) == 1:
                doc = self._doc(node, source_bytes)
            if spec.type == "type_alias":
                shape = TypeShape(ShapeKind.ALIAS, target=self._param_type(type_node, source_bytes))
            else:
                shape = self._shape(type_node, source_bytes)
            yield TypeDecl(
                name=self._text(name_node, source_bytes),
                shape=shape,
                file_path=path,
                line=spec.start_point[0] + 1,
                doc=doc,
            )

    def _shape(self, type_node: Node, source_bytes: bytes) -> TypeShape:
        type_node = self._unparen(type_node)
        if type_node.type == "struct_type":
            return TypeShape(ShapeKind.STRUCT, fields=tuple(self._fields(type_node, source_bytes)))
        if type_node.type == "interface_type":
            return TypeShape(ShapeKind.INTERFACE)
        return TypeShape(ShapeKind.DEFINED, target=self._param_type(type_node, source_bytes))

    def _fields(self, struct_node: Node, source_bytes: bytes) -> Iterator[FieldDecl]:
        for body in struct_node.named_children:
            if body.type != "field_declaration_list":
                continue
            for decl in body.named_children:
                if decl.type != "field_declaration":
                    continue
                type_node = decl.child_by_field_name("type")
                if type_node is None:
                    continue
                tag_node = decl.child_by_field_name("tag")
                tag = self._text(tag_node, source_bytes) if tag_node is not None else None
                names = decl.children_by_field_name("name")
                if names:
                    param = self._param_type(type_node, source_bytes)
                    for name_node in names:
                        yield FieldDecl(self._text(name_node, source_bytes), param, tag=tag)
                    continue
                # embedded field: the optional '*' is an anonymous sibling of the type
                param = Param(type=self._type_ref(type_node, source_bytes))
                if any(child.type == "*" for child in decl.children):
                    param = replace(param, mode=PassingMode.REFERENCE)
                name = param.type.name if isinstance(param.type, NamedType) else str(param.type)
                yield FieldDecl(name, param, embedded=True, tag=tag)

    def _func_decl(self, node: Node, source_bytes: bytes, path: Path) -> FuncDecl:
        receiver = None
        if node.type == "method_declaration":
            recv_params = self._params(node.child_by_field_name("receiver"), source_bytes)
            receiver = recv_params[0] if recv_params else None
        return FuncDecl(
            name=self._text(node.child_by_field_name("name"), source_bytes),
            file_path=path,
            line=node.start_point[0] + 1,
            receiver=receiver,
            params=self._params(node.child_by_field_name("parameters"), source_bytes),
            results=self._params(node.child_by_field_name("result"), source_bytes),
            doc=self._doc(node, source_bytes),
        )

    def _params(self, node: Optional[Node], source_bytes: bytes) -> Tuple[Param, ...]:
        if node is None:
            return ()
        if node.type != "parameter_list":
            # single unparenthesised result type
            return (self._param_type(node, source_bytes),)
        params: List[Param] = []
        for child in node.named_children:
            if child.type not in {"parameter_declaration", "variadic_parameter_declaration"}:
                continue
            type_node = child.child_by_field_name("type")
            if type_node is None:
                continue
            base = self._param_type(type_node, source_bytes)
            if child.type == "variadic_parameter_declaration":
                base = replace(base, variadic=True)
            names = child.children_by_field_name("name")
            if not names:
                params.append(base)
            for name_node in names:
                params.append(replace(base, name=self._text(name_node, source_bytes)))
        return tuple(params)

    # --- types ---
    def _param_type(self, node: Node, source_bytes: bytes) -> Param:
        node = self._unparen(node)
        if node.type == "pointer_type":
            inner = self._unparen(node.named_children[0])
            return Param(type=self._type_ref(inner, source_bytes), mode=PassingMode.REFERENCE)
        return Param(type=self._type_ref(node, source_bytes))

    def _type_ref(self, node: Node, source_bytes: bytes) -> TypeRef:
        node = self._unparen(node)
        if node.type == "type_identifier":
            return NamedType(self._text(node, source_bytes))
        if node.type == "qualified_type":
            package = node.child_by_field_name("package")
            name = node.child_by_field_name("name")
            return NamedType(
                self._text(name, source_bytes),
                package=self._text(package, source_bytes),
            )
        if node.type == "generic_type":
            # type arguments do not change which declaration is referenced
            return self._type_ref(node.child_by_field_name("type"), source_bytes)
        kind = COMPOSITE_KINDS.get(node.type, node.type.replace("_type", ""))
        return CompositeType(
            kind=kind,
            elements=tuple(self._elements(node, kind, source_bytes)),
            text=self._text(node, source_bytes),
        )

    def _elements(self, node: Node, kind: str, source_bytes: bytes) -> Iterable[TypeRef]:
        if kind == "pointer":
            yield self._type_ref(node.named_children[0], source_bytes)
        elif kind == "map":
            yield self._type_ref(node.child_by_field_name("key"), source_bytes)
            yield self._type_ref(node.child_by_field_name("value"), source_bytes)
        elif kind == "chan":
            yield self._type_ref(node.child_by_field_name("value"), source_bytes)
        elif kind in {"slice", "array"}:
            yield self._type_ref(node.child_by_field_name("element"), source_bytes)

    # --- helpers ---
    def _package_name(self, root: Node, source_bytes: bytes) -> Optional[str]:
        for node in root.named_children:
            if node.type != "package_clause":
                continue
            for child in node.named_children:
                if child.type == "package_identifier":
                    return self._text(child, source_bytes)
        return None

    def _doc(self, node: Node, source_bytes: bytes) -> Optional[str]:
        lines: List[str] = []
        expected_row = node.start_point[0] - 1
        sibling = node.prev_named_sibling
        while sibling is not None and sibling.type == "comment":
            # trailing comments of the previous line are not documentation
            if sibling.end_point[0] != expected_row or not self._starts_line(sibling, source_bytes):
                break
            lines.append(_comment_text(self._text(sibling, source_bytes)))
            expected_row = sibling.start_point[0] - 1
            sibling = sibling.prev_named_sibling
        if not lines:
            return None
        doc = "\n".join(reversed(lines)).strip()
        return doc or None

    def _starts_line(self, node: Node, source_bytes: bytes) -> bool:
        line_start = source_bytes.rfind(b"\n", 0, node.start_byte) + 1
        return not source_bytes[line_start : node.start_byte].strip()

    def _unparen(self, node: Node) -> Node:
        while node.type == "parenthesized_type" and node.named_children:
            node = node.named_children[0]
        return node

    def _first_error(self, root: Node) -> Optional[Node]:
        found: Optional[Node] = None
        for node in self._iter_nodes(root):
            if node.type != "ERROR" and not node.is_missing:
                continue
            if found is None or node.start_byte < found.start_byte:
                found = node
        return found

    def _iter_nodes(self, node: Node) -> Iterator[Node]:
        stack = [node]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(current.children)

    def _text(self, node: Node, source_bytes: bytes) -> str:
        return source_bytes[node.start_byte : node.end_byte].decode("utf-8")


def _comment_text(comment: str) -> str:
    if comment.startswith("//"):
        return comment[2:].strip()
    if comment.startswith("/*"):
        return comment[2:-2].strip()
    return comment.strip()
