from .classifier import (
    RPCClassifier,
    Rejection,
    UnresolvedTypeError,
    Verdict,
    classify,
    is_rpc_method,
)
from .registry import ServiceRegistryBuilder, build_services

__all__ = [
    "RPCClassifier",
    "Rejection",
    "ServiceRegistryBuilder",
    "UnresolvedTypeError",
    "Verdict",
    "build_services",
    "classify",
    "is_rpc_method",
]
