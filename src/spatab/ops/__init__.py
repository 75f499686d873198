"""Table operators.

- expressions: col()/lit() expression language
- relational: select, select_drop, rename, mutate, filter_rows, arrange, head
- join: bind_rows, left_join
- aggregate: group_by, summarise, dissolve
- reshape: pivot_longer, pivot_wider
"""

from spatab.ops.expressions import Expr, col, lit
from spatab.ops.relational import (
    select,
    select_drop,
    rename,
    mutate,
    filter_rows,
    arrange,
    head,
)
from spatab.ops.join import bind_rows, left_join
from spatab.ops.aggregate import Aggregate, GroupedTable, group_by, summarise, dissolve
from spatab.ops.reshape import pivot_longer, pivot_wider

# dplyr-style alias; shadows the builtin only inside this namespace
filter = filter_rows

__all__ = [
    "Expr",
    "col",
    "lit",
    "select",
    "select_drop",
    "rename",
    "mutate",
    "filter_rows",
    "filter",
    "arrange",
    "head",
    "bind_rows",
    "left_join",
    "Aggregate",
    "GroupedTable",
    "group_by",
    "summarise",
    "dissolve",
    "pivot_longer",
    "pivot_wider",
]
