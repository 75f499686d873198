"""Closed expression language for mutate() and filter_rows().

Expressions are small trees built from ``col()`` and ``lit()`` with Python
operators, evaluated one row at a time over the fixed attribute value set
(int, float, str, bool, missing):

    >>> delta = col("rate05") - col("rate17")
    >>> is_a = col("group") == "A"

Missing operands propagate (comparisons and arithmetic give missing,
``&``/``|`` follow three-valued logic). Division by zero gives missing.
Plain callables taking a Row are accepted wherever an expression is.
"""

import operator
from typing import Any, Callable, FrozenSet, Iterable, Union

from spatab.contracts.failure import TypeMismatch
from spatab.table.row import Row
from spatab.table.values import normalize_value

__all__ = ['Expr', 'col', 'lit', 'evaluate', 'referenced_columns']


def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _type_name(v) -> str:
    return type(v).__name__


class Expr:
    """Base class of expression nodes."""

    def evaluate(self, row: Row) -> Any:
        raise NotImplementedError

    def columns(self) -> FrozenSet[str]:
        """Column names this expression reads."""
        return frozenset()

    def __bool__(self):
        raise TypeError("Expressions have no truth value; combine them with &, | and ~")

    __hash__ = None

    # -- arithmetic ---------------------------------------------------------

    def __add__(self, other): return BinaryOp("+", self, other)
    def __radd__(self, other): return BinaryOp("+", other, self)
    def __sub__(self, other): return BinaryOp("-", self, other)
    def __rsub__(self, other): return BinaryOp("-", other, self)
    def __mul__(self, other): return BinaryOp("*", self, other)
    def __rmul__(self, other): return BinaryOp("*", other, self)
    def __truediv__(self, other): return BinaryOp("/", self, other)
    def __rtruediv__(self, other): return BinaryOp("/", other, self)
    def __neg__(self): return UnaryOp("-", self)

    # -- comparison ---------------------------------------------------------

    def __eq__(self, other): return BinaryOp("==", self, other)
    def __ne__(self, other): return BinaryOp("!=", self, other)
    def __lt__(self, other): return BinaryOp("<", self, other)
    def __le__(self, other): return BinaryOp("<=", self, other)
    def __gt__(self, other): return BinaryOp(">", self, other)
    def __ge__(self, other): return BinaryOp(">=", self, other)

    # -- boolean ------------------------------------------------------------

    def __and__(self, other): return BinaryOp("&", self, other)
    def __rand__(self, other): return BinaryOp("&", other, self)
    def __or__(self, other): return BinaryOp("|", self, other)
    def __ror__(self, other): return BinaryOp("|", other, self)
    def __invert__(self): return UnaryOp("~", self)

    # -- predicates ---------------------------------------------------------

    def is_missing(self) -> "Expr":
        return IsMissing(self)

    def isin(self, values: Iterable[Any]) -> "Expr":
        return IsIn(self, values)


class Col(Expr):
    def __init__(self, name: str):
        self.name = name

    def evaluate(self, row: Row) -> Any:
        return row[self.name]

    def columns(self) -> FrozenSet[str]:
        return frozenset([self.name])

    def __repr__(self):
        return f"col({self.name!r})"


class Lit(Expr):
    def __init__(self, value: Any):
        self.value = normalize_value(value)

    def evaluate(self, row: Row) -> Any:
        return self.value

    def __repr__(self):
        return f"lit({self.value!r})"


def _wrap(value) -> Expr:
    return value if isinstance(value, Expr) else Lit(value)


# =============================================================================
# Operator semantics
# =============================================================================

def _arith(op: str, a, b):
    if op == "+" and isinstance(a, str) and isinstance(b, str):
        return a + b
    if not (_is_number(a) and _is_number(b)):
        raise TypeMismatch(
            f"Operator '{op}' needs numbers, got {_type_name(a)} and {_type_name(b)}"
        )
    if op == "+":
        return a + b
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if b == 0:
        return None
    return a / b


def _comparable(a, b) -> bool:
    if _is_number(a) and _is_number(b):
        return True
    return type(a) is type(b)


_COMPARE = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def _compare(op: str, a, b):
    if not _comparable(a, b):
        raise TypeMismatch(
            f"Cannot compare {_type_name(a)} with {_type_name(b)} using '{op}'"
        )
    return _COMPARE[op](a, b)


def _check_logical(op: str, v):
    if v is not None and not isinstance(v, bool):
        raise TypeMismatch(f"Operator '{op}' needs booleans, got {_type_name(v)}")


class BinaryOp(Expr):
    def __init__(self, op: str, left, right):
        self.op = op
        self.left = _wrap(left)
        self.right = _wrap(right)

    def columns(self) -> FrozenSet[str]:
        return self.left.columns() | self.right.columns()

    def evaluate(self, row: Row) -> Any:
        a = normalize_value(self.left.evaluate(row))
        b = normalize_value(self.right.evaluate(row))

        if self.op in ("&", "|"):
            _check_logical(self.op, a)
            _check_logical(self.op, b)
            if self.op == "&":
                if a is False or b is False:
                    return False
                return None if a is None or b is None else True
            if a is True or b is True:
                return True
            return None if a is None or b is None else False

        if a is None or b is None:
            return None
        if self.op in _COMPARE:
            return _compare(self.op, a, b)
        return _arith(self.op, a, b)

    def __repr__(self):
        return f"({self.left!r} {self.op} {self.right!r})"


class UnaryOp(Expr):
    def __init__(self, op: str, operand):
        self.op = op
        self.operand = _wrap(operand)

    def columns(self) -> FrozenSet[str]:
        return self.operand.columns()

    def evaluate(self, row: Row) -> Any:
        v = normalize_value(self.operand.evaluate(row))
        if v is None:
            return None
        if self.op == "~":
            _check_logical("~", v)
            return not v
        if not _is_number(v):
            raise TypeMismatch(f"Unary '-' needs a number, got {_type_name(v)}")
        return -v

    def __repr__(self):
        return f"{self.op}{self.operand!r}"


class IsMissing(Expr):
    def __init__(self, operand):
        self.operand = _wrap(operand)

    def columns(self) -> FrozenSet[str]:
        return self.operand.columns()

    def evaluate(self, row: Row) -> bool:
        return normalize_value(self.operand.evaluate(row)) is None

    def __repr__(self):
        return f"{self.operand!r}.is_missing()"


class IsIn(Expr):
    def __init__(self, operand, values: Iterable[Any]):
        self.operand = _wrap(operand)
        self.values = tuple(normalize_value(v) for v in values)

    def columns(self) -> FrozenSet[str]:
        return self.operand.columns()

    def evaluate(self, row: Row) -> bool:
        v = normalize_value(self.operand.evaluate(row))
        if v is None:
            return False
        return any(_comparable(v, x) and v == x for x in self.values if x is not None)

    def __repr__(self):
        return f"{self.operand!r}.isin({list(self.values)!r})"


# =============================================================================
# Public helpers
# =============================================================================

ExprLike = Union[Expr, Callable[[Row], Any], int, float, str, bool, None]


def col(name: str) -> Expr:
    """Reference a column (or ``"geometry"``) of the current row."""
    return Col(name)


def lit(value: Any) -> Expr:
    """A constant value."""
    return Lit(value)


def referenced_columns(expr: ExprLike) -> FrozenSet[str]:
    """Columns an expression reads; empty for callables and constants."""
    if isinstance(expr, Expr):
        return expr.columns()
    return frozenset()


def evaluate(expr: ExprLike, row: Row) -> Any:
    """Evaluate an expression, callable or constant against one row."""
    if isinstance(expr, Expr):
        return normalize_value(expr.evaluate(row))
    if callable(expr):
        try:
            return normalize_value(expr(row))
        except ZeroDivisionError:
            return None
    return normalize_value(expr)
