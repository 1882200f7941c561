from typing import Any, Dict, List, Sequence

from vqgrid.grid.columns import CURRENT_SUFFIX, PROPOSED_SUFFIX
from vqgrid.preview.diff import (
    MISSING,
    Row,
    cell,
    compute_change_set,
    relevant_columns,
    strictly_equal,
)
from vqgrid.preview.models import OperationDescriptor, OperationKind
from vqgrid.preview.relevance import ColumnFilter, filter_relevant_columns


# Identity columns shown next to the changes of an update.
PATH_COLUMN = "path"
TEXT_COLUMN = "task_text"
VALUE_COLUMN = "value"

# Shown only when it holds a value on at least one side.
SENTINEL_COLUMN = "array_index"

# Columns of the summary rows of a multi-statement change.
MULTI_NUMBER = "#"
MULTI_ACTION = "📋 Action"
MULTI_TABLE = "🗂️ Table"
MULTI_ROWS = "📊 Rows"
MULTI_DETAILS = "🔍 Details"
MULTI_INDEX = "_operation_index"
MULTI_DATA = "_operation_data"
EXPAND_PLACEHOLDER = "Click to expand"

OPERATION_ICONS = {
    OperationKind.INSERT: "➕",
    OperationKind.UPDATE: "✏️",
    OperationKind.DELETE: "🗑️",
}
DEFAULT_ICON = "⚙️"


def operation_icon(kind: str) -> str:
    """The icon that tags a kind of change."""
    try:
        key = OperationKind(str(kind).lower())
    except ValueError:
        return DEFAULT_ICON
    return OPERATION_ICONS.get(key, DEFAULT_ICON)


def _blank(value: Any) -> Any:
    return "" if value is None or value is MISSING else value


def _is_empty(value: Any) -> bool:
    return value is None or value is MISSING or value == ""


def changed_flag(column: str) -> str:
    """The key of the flag that tells if a row changed a column."""
    return f"_{column}_changed"


class PreviewRowBuilder:
    """Turns a pending change into the rows of its preview grid.

    The builder holds no state between calls; building the same descriptor
    twice gives equal rows.

    Attributes:
        column_filter: Drops the columns that are not worth showing.
    """

    column_filter: ColumnFilter

    def __init__(self, column_filter: ColumnFilter = filter_relevant_columns):
        self.column_filter = column_filter

    def build(self, op: OperationDescriptor) -> List[Dict[str, Any]]:
        """The preview rows of a change of any kind."""
        if op.kind == OperationKind.MULTI:
            return self.multi_rows(op)
        return self.build_detail(op)

    def build_detail(self, op: OperationDescriptor) -> List[Dict[str, Any]]:
        """The rows of a single-statement change.

        Multi-statement changes have no rows of their own here.
        """
        if op.kind == OperationKind.INSERT:
            return self.project(op.after)
        if op.kind == OperationKind.DELETE:
            return self.project(op.before)
        if op.kind == OperationKind.UPDATE:
            return self.update_rows(op.before, op.after, op.pk_cols)
        return []

    def project(self, rows: Sequence[Row]) -> List[Dict[str, Any]]:
        """Keep the relevant columns of the first row in every row.

        Missing and None values become empty strings.
        """
        if not rows:
            return []
        keys = self.column_filter(rows[0].keys())
        return [{key: _blank(cell(row, key)) for key in keys} for row in rows]

    def update_rows(
        self,
        before: Sequence[Row],
        after: Sequence[Row],
        pk_cols: Sequence[str],
    ) -> List[Dict[str, Any]]:
        """The rows of an update, one per row before the change.

        Unchanged primary-key columns come first, followed by the identity
        columns and then, for every changed column `C`, the values
        `C (current)` and `C (proposed)` and the `_C_changed` flag. An
        update that changes nothing has no rows.
        """
        if not before or not after:
            return []

        columns = relevant_columns(before, after, self.column_filter)
        changed = compute_change_set(before, after, columns)
        if not changed:
            return []

        pks = self.column_filter(pk_cols)
        stable_pks = [pk for pk in pks if pk not in changed]

        result = []
        for index, b_row in enumerate(before):
            a_row = after[index] if index < len(after) else {}
            row: Dict[str, Any] = {}

            for pk in stable_pks:
                value = cell(b_row, pk)
                if pk == SENTINEL_COLUMN and _is_empty(value):
                    continue
                row[pk] = _blank(value)

            if PATH_COLUMN in b_row and PATH_COLUMN not in pks:
                row[PATH_COLUMN] = b_row[PATH_COLUMN]

            if (
                TEXT_COLUMN in b_row
                and TEXT_COLUMN not in pks
                and TEXT_COLUMN not in changed
            ):
                row[TEXT_COLUMN] = b_row[TEXT_COLUMN]

            if VALUE_COLUMN in b_row and VALUE_COLUMN not in changed:
                row.setdefault(VALUE_COLUMN, b_row[VALUE_COLUMN])

            for column in changed:
                current = _blank(cell(b_row, column))
                proposed = _blank(cell(a_row, column))
                if (
                    column == SENTINEL_COLUMN
                    and _is_empty(current)
                    and _is_empty(proposed)
                ):
                    continue
                row[f"{column}{CURRENT_SUFFIX}"] = current
                row[f"{column}{PROPOSED_SUFFIX}"] = proposed
                row[changed_flag(column)] = not strictly_equal(
                    current, proposed
                )
            result.append(row)
        return result

    def multi_rows(self, op: OperationDescriptor) -> List[Dict[str, Any]]:
        """One summary row per statement of a multi-statement change.

        The nested descriptor travels with the row, in a private column, so
        that the row can be expanded later.
        """
        return [
            {
                MULTI_NUMBER: index + 1,
                MULTI_ACTION: (
                    f"{operation_icon(nested.kind)} {nested.kind.upper()}"
                ),
                MULTI_TABLE: nested.table,
                MULTI_ROWS: nested.row_count,
                MULTI_DETAILS: EXPAND_PLACEHOLDER,
                MULTI_INDEX: index,
                MULTI_DATA: nested,
            }
            for index, nested in enumerate(op.nested)
        ]
