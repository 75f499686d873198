"""Failure taxonomy for the table engine.

Every error the engine reports to a caller is a subclass of SpatabError and
carries the offending column/row/CRS context as attributes. Internal
invariant breaks raise ContractViolation instead.
"""

from typing import Iterable, Optional


class ContractViolation(RuntimeError):
    """Raised when an operator breaks a table invariant it promised to keep.

    Key distinction:
    - SpatabError: bad input data or an impossible request (caller error)
    - ContractViolation: engine bug (programmer error)
    """
    pass


class SpatabError(ValueError):
    """Base class for all typed failures reported to the caller."""

    def __init__(self, message: str, *, column: Optional[str] = None,
                 row: Optional[int] = None):
        super().__init__(message)
        self.column = column
        self.row = row


# =============================================================================
# Schema and typing
# =============================================================================

class SchemaError(SpatabError):
    """Unknown, duplicate or otherwise invalid column names."""
    pass


class UnknownColumn(SchemaError):
    """A referenced column is not part of the table schema."""

    def __init__(self, column: str, available: Iterable[str] = ()):
        available = list(available)
        super().__init__(
            f"Unknown column '{column}' (available: {', '.join(available) or 'none'})",
            column=column,
        )
        self.available = available


class DuplicateColumn(SchemaError):
    """A column name appears more than once."""

    def __init__(self, column: str):
        super().__init__(f"Duplicate column '{column}'", column=column)


class TypeMismatch(SpatabError):
    """Expression or aggregate applied to an incompatible value type."""
    pass


# =============================================================================
# Coordinate reference systems
# =============================================================================

class CRSError(SpatabError):
    """Base class for CRS failures."""

    def __init__(self, message: str, *, crs=None):
        super().__init__(message)
        self.crs = crs


class CRSMismatch(CRSError):
    """Two tables with different CRS identifiers were combined."""

    def __init__(self, left, right):
        super().__init__(
            f"CRS mismatch: {left} vs {right}; reproject explicitly with to_crs()",
            crs=(left, right),
        )
        self.left = left
        self.right = right


class UnknownCRS(CRSError):
    """The CRS identifier is not in the geodesy registry."""

    def __init__(self, crs):
        super().__init__(f"Unknown CRS identifier: {crs!r}", crs=crs)


class TransformUndefined(CRSError):
    """No coordinate mapping exists between two registered systems."""

    def __init__(self, source, target, reason: str = ""):
        message = f"Transform from {source} to {target} is undefined"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, crs=(source, target))
        self.source = source
        self.target = target


# =============================================================================
# Reshape, geometry and codec
# =============================================================================

class NonUniquePivot(SpatabError):
    """More than one source row maps to the same wide cell."""

    def __init__(self, name, row: int):
        super().__init__(
            f"Values are not uniquely identified: '{name}' appears more than once "
            f"for the group of source row {row}",
            column=str(name),
            row=row,
        )
        self.name = name


class MalformedGeometry(SpatabError):
    """Ring not closed, too few coordinates or otherwise degenerate part."""
    pass


class IncompleteComponentSet(SpatabError):
    """A legacy multi-file dataset is missing required component files."""

    def __init__(self, base, missing: Iterable[str]):
        missing = sorted(missing)
        super().__init__(
            f"Incomplete component set for {base}: missing {', '.join(missing)}"
        )
        self.base = base
        self.components = missing


class UnsupportedGeometryForFormat(SpatabError):
    """The target format cannot represent the table's geometry kind."""

    def __init__(self, kind, format_name: str):
        super().__init__(f"Format '{format_name}' cannot store geometry kind '{kind}'")
        self.kind = kind
        self.format_name = format_name


class CorruptContainer(SpatabError):
    """A packaged container's metadata disagrees with its contents."""
    pass


class ReadCancelled(SpatabError):
    """A read was cancelled through its stop event."""

    def __init__(self, source, rows_read: int):
        super().__init__(f"Read of {source} cancelled after {rows_read} rows")
        self.source = source
        self.rows_read = rows_read
