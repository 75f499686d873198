"""Table contracts and the engine's failure taxonomy.

Key principle:
- Pydantic validates config correctness
- SpatabError subclasses report bad input to the caller
- Contracts (require / ContractViolation) guard operator correctness
"""

from spatab.contracts.failure import (
    ContractViolation,
    SpatabError,
    SchemaError,
    UnknownColumn,
    DuplicateColumn,
    TypeMismatch,
    CRSError,
    CRSMismatch,
    UnknownCRS,
    TransformUndefined,
    NonUniquePivot,
    MalformedGeometry,
    IncompleteComponentSet,
    UnsupportedGeometryForFormat,
    CorruptContainer,
    ReadCancelled,
)
from spatab.contracts.base import require

__all__ = [
    "ContractViolation",
    "SpatabError",
    "SchemaError",
    "UnknownColumn",
    "DuplicateColumn",
    "TypeMismatch",
    "CRSError",
    "CRSMismatch",
    "UnknownCRS",
    "TransformUndefined",
    "NonUniquePivot",
    "MalformedGeometry",
    "IncompleteComponentSet",
    "UnsupportedGeometryForFormat",
    "CorruptContainer",
    "ReadCancelled",
    "require",
]
