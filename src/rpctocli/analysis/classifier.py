"""Eligibility rules for RPC methods.

A function qualifies when it follows the ``net/rpc`` method convention::

    func (t *T) MethodName(argType T1, replyType *T2) error

- the function is a method (has a receiver)
- the method is exported
- the receiver's type is exported
- the method has exactly two arguments
- the first argument's type is exported or builtin
- the second argument is a pointer
- the second argument's type is exported or builtin
- the method has exactly one result, of type ``error``

Checks run in that order and the first failing check names the rejection.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

from ..models.records import (
    BuiltinType,
    CompositeType,
    FuncDecl,
    MethodRecord,
    NamedType,
    Param,
    PassingMode,
    SymbolTable,
    TypeRef,
)

# Composite literals that may carry RPC arguments; func, chan, struct and
# interface literals never qualify.
ELIGIBLE_COMPOSITES = frozenset({"slice", "array", "map", "pointer"})


class Rejection(str, Enum):
    NOT_A_METHOD = "not a method"
    METHOD_NOT_EXPORTED = "method is not exported"
    RECEIVER_NOT_EXPORTED = "receiver type is not exported"
    WRONG_PARAM_COUNT = "method does not take exactly two arguments"
    ARGS_NOT_EXPORTED = "first argument type is not exported or builtin"
    REPLY_NOT_POINTER = "second argument is not a pointer"
    REPLY_NOT_EXPORTED = "second argument type is not exported or builtin"
    BAD_RESULT = "method does not return exactly one error"
    UNRESOLVED_TYPE = "type reference cannot be resolved"


class UnresolvedTypeError(LookupError):
    """A local type name has no declaration, or an alias chain loops."""

    def __init__(self, name: str, reason: str = "no declaration") -> None:
        super().__init__(f"{name}: {reason}")
        self.name = name


@dataclass(frozen=True, slots=True)
class Verdict:
    decl: FuncDecl
    record: Optional[MethodRecord] = None
    rejection: Optional[Rejection] = None
    detail: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.record is not None


class RPCClassifier:
    """Applies the ordered predicate chain to function declarations."""

    def __init__(self, error_type: str = "error") -> None:
        self.error_type = error_type
        self._checks: List[Tuple[Rejection, Callable[[FuncDecl, SymbolTable], bool]]] = [
            (Rejection.NOT_A_METHOD, self._is_method),
            (Rejection.METHOD_NOT_EXPORTED, self._method_exported),
            (Rejection.RECEIVER_NOT_EXPORTED, self._receiver_exported),
            (Rejection.WRONG_PARAM_COUNT, self._takes_two_params),
            (Rejection.ARGS_NOT_EXPORTED, self._args_eligible),
            (Rejection.REPLY_NOT_POINTER, self._reply_is_pointer),
            (Rejection.REPLY_NOT_EXPORTED, self._reply_eligible),
            (Rejection.BAD_RESULT, self._returns_error),
        ]

    # --- public API ---
    def classify(self, decl: FuncDecl, table: SymbolTable) -> Verdict:
        for rejection, check in self._checks:
            try:
                passed = check(decl, table)
            except UnresolvedTypeError as exc:
                return Verdict(decl, rejection=Rejection.UNRESOLVED_TYPE, detail=str(exc))
            if not passed:
                return Verdict(decl, rejection=rejection)
        return Verdict(decl, record=self._record(decl, table))

    def accepts(self, decl: FuncDecl, table: SymbolTable) -> bool:
        return self.classify(decl, table).accepted

    # --- predicates, each may assume the ones before it held ---
    def _is_method(self, decl: FuncDecl, table: SymbolTable) -> bool:
        return decl.receiver is not None

    def _method_exported(self, decl: FuncDecl, table: SymbolTable) -> bool:
        return decl.exported

    def _receiver_exported(self, decl: FuncDecl, table: SymbolTable) -> bool:
        owner = self._receiver_type(decl, table)
        return owner.exported

    def _takes_two_params(self, decl: FuncDecl, table: SymbolTable) -> bool:
        return len(decl.params) == 2

    def _args_eligible(self, decl: FuncDecl, table: SymbolTable) -> bool:
        return self._eligible(self._deref(decl.params[0], table).type, table)

    def _reply_is_pointer(self, decl: FuncDecl, table: SymbolTable) -> bool:
        reply = decl.params[1]
        return not reply.variadic and self._deref(reply, table).is_reference

    def _reply_eligible(self, decl: FuncDecl, table: SymbolTable) -> bool:
        return self._eligible(self._deref(decl.params[1], table).type, table)

    def _returns_error(self, decl: FuncDecl, table: SymbolTable) -> bool:
        if len(decl.results) != 1:
            return False
        result = decl.results[0]
        if result.is_reference or result.variadic:
            return False
        resolved = resolve(result.type, table)
        if self.error_type == "error":
            # a local `type error ...` shadows the predeclared interface
            return isinstance(resolved, BuiltinType) and resolved.name == "error"
        if not isinstance(resolved, (NamedType, BuiltinType)):
            return False
        return self.error_type in {resolved.name, str(resolved)}

    # --- helpers ---
    def _receiver_type(self, decl: FuncDecl, table: SymbolTable) -> NamedType:
        assert decl.receiver is not None
        resolved = resolve(decl.receiver.type, table)
        if not isinstance(resolved, NamedType) or resolved.package is not None:
            raise UnresolvedTypeError(str(decl.receiver.type), "receiver is not a local named type")
        return resolved

    def _deref(self, param: Param, table: SymbolTable) -> Param:
        """Fold an alias of a pointer type into a reference parameter."""
        if param.is_reference:
            return param
        resolved, mode = resolve_param(param, table)
        return Param(type=resolved, mode=mode, name=param.name, variadic=param.variadic)

    def _eligible(self, ref: TypeRef, table: SymbolTable) -> bool:
        resolved = resolve(ref, table)
        if isinstance(resolved, BuiltinType):
            return True
        if isinstance(resolved, NamedType):
            return resolved.exported
        if resolved.kind not in ELIGIBLE_COMPOSITES:
            return False
        return all(self._eligible(element, table) for element in resolved.elements)

    def _record(self, decl: FuncDecl, table: SymbolTable) -> MethodRecord:
        assert decl.receiver is not None
        owner = self._receiver_type(decl, table)
        return MethodRecord(
            service=owner.name,
            name=decl.name,
            receiver=decl.receiver,
            args=decl.params[0],
            reply=decl.params[1],
            result=decl.results[0].type,
            file_path=decl.file_path,
            line=decl.line,
            doc=decl.doc,
        )


def resolve(ref: TypeRef, table: SymbolTable) -> TypeRef:
    """Follow local aliases until a defined, builtin or composite type is reached."""
    resolved, _ = resolve_param(Param(type=ref), table)
    return resolved


def resolve_param(param: Param, table: SymbolTable) -> Tuple[TypeRef, PassingMode]:
    ref, mode = param.type, param.mode
    seen: Set[str] = set()
    while isinstance(ref, NamedType) and ref.package is None:
        decl = table.lookup(ref.name)
        if decl is None:
            raise UnresolvedTypeError(ref.name)
        if not decl.is_alias:
            return ref, mode
        if ref.name in seen:
            raise UnresolvedTypeError(ref.name, "alias cycle")
        seen.add(ref.name)
        target = decl.shape.target
        if target is None:
            raise UnresolvedTypeError(ref.name, "alias without target")
        if target.is_reference:
            if mode is PassingMode.REFERENCE:
                # pointer to pointer stays a composite
                return CompositeType("pointer", (target.type,), f"*{target.type}"), mode
            mode = PassingMode.REFERENCE
        ref = target.type
    return ref, mode


_default = RPCClassifier()


def classify(decl: FuncDecl, table: SymbolTable) -> Verdict:
    return _default.classify(decl, table)


def is_rpc_method(decl: FuncDecl, table: SymbolTable) -> bool:
    return _default.accepts(decl, table)
