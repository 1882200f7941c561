"""Finds the columns a pending update changes.

Before and after rows are compared by position: row `i` of the snapshot
taken before the change is compared with row `i` of the one after it, even
when the primary keys are known. An index where either side has no row is
skipped.

Values are compared strictly. A boolean never equals a number, numbers
compare by value whatever their type, and a key that is missing from a row
is not the same as a key that holds None.
"""

from typing import (
    Any,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
)

from vqgrid.preview.relevance import ColumnFilter, filter_relevant_columns

Row = Mapping[str, Any]


class _Missing:
    """Marks a key that is absent from a row."""

    _instance: Optional["_Missing"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def strictly_equal(a: Any, b: Any) -> bool:
    """Compare two cell values without type coercion."""
    if a is MISSING or b is MISSING or a is None or b is None:
        return a is b
    a_bool = isinstance(a, bool)
    b_bool = isinstance(b, bool)
    if a_bool or b_bool:
        return a_bool and b_bool and a == b
    a_num = isinstance(a, (int, float))
    b_num = isinstance(b, (int, float))
    if a_num or b_num:
        return a_num and b_num and a == b
    if type(a) is not type(b):
        return False
    return a == b


def cell(row: Row, column: str) -> Any:
    """The value of a column in a row, or MISSING."""
    return row.get(column, MISSING)


def union_columns(*snapshots: Iterable[Row]) -> List[str]:
    """The columns of every row of the snapshots, in first-seen order."""
    seen = {}
    for rows in snapshots:
        for row in rows:
            for key in row.keys():
                seen.setdefault(key, None)
    return list(seen.keys())


def relevant_columns(
    before: Sequence[Row],
    after: Sequence[Row],
    column_filter: ColumnFilter = filter_relevant_columns,
) -> List[str]:
    """The relevant columns present in either snapshot."""
    return column_filter(union_columns(before, after))


def compute_change_set(
    before: Sequence[Row],
    after: Sequence[Row],
    columns: Iterable[str],
) -> List[str]:
    """The columns whose value differs in at least one pair of rows.

    Args:
        before: The rows before the change.
        after: The rows after the change, aligned with `before`.
        columns: The columns to compare.

    Returns:
        The changed columns, without duplicates, in the order of `columns`.
    """
    columns = list(columns)
    changed = set()
    for i in range(max(len(before), len(after))):
        if i >= len(before) or i >= len(after):
            continue
        b_row = before[i]
        a_row = after[i]
        if b_row is None or a_row is None:
            continue
        for column in columns:
            if column in changed:
                continue
            if not strictly_equal(cell(b_row, column), cell(a_row, column)):
                changed.add(column)
    return [c for c in columns if c in changed]


def count_changed_fields(
    before: Sequence[Row],
    after: Sequence[Row],
    column_filter: ColumnFilter = filter_relevant_columns,
) -> int:
    """The number of relevant columns an update changes.

    Zero means the update is a no-op.
    """
    if not before or not after:
        return 0
    columns = relevant_columns(before, after, column_filter)
    return len(compute_change_set(before, after, columns))
