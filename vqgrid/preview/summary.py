"""The sentences shown around a change preview."""

from typing import Any, Callable, Optional

from vqgrid.preview.diff import count_changed_fields
from vqgrid.preview.models import OperationDescriptor, OperationKind
from vqgrid.preview.relevance import ColumnFilter, filter_relevant_columns

Translator = Callable[..., str]


def _identity(key: str, d: str, **kwargs: Any) -> str:
    return d.format(**kwargs)


def plural(count: int, singular: str = "", many: str = "s") -> str:
    return singular if count == 1 else many


def summary_text(
    op: OperationDescriptor,
    t: Optional[Translator] = None,
    column_filter: ColumnFilter = filter_relevant_columns,
) -> str:
    """Describe what applying a change will do."""
    t = t or _identity
    count = op.row_count
    if op.kind == OperationKind.INSERT:
        return t(
            "preview.summary.insert",
            '✅ {count} new row{s} will be inserted into table "{table}".',
            count=count,
            s=plural(count),
            table=op.table,
        )
    if op.kind == OperationKind.UPDATE:
        changed = count_changed_fields(op.before, op.after, column_filter)
        if changed == 0:
            return t(
                "preview.summary.update_noop",
                "ℹ️ No changes to apply. The {count} matching row{s} "
                "already {have} the specified values.",
                count=count,
                s=plural(count),
                have=plural(count, "has", "have"),
            )
        return t(
            "preview.summary.update",
            'ℹ️ {count} row{s} will be updated in table "{table}". '
            "{changed} field{fs} changed.",
            count=count,
            s=plural(count),
            table=op.table,
            changed=changed,
            fs=plural(changed),
        )
    if op.kind == OperationKind.DELETE:
        return t(
            "preview.summary.delete",
            '⚠️ {count} row{s} will be deleted from table "{table}".',
            count=count,
            s=plural(count),
            table=op.table,
        )
    return t(
        "preview.summary.multi",
        "🔄 Multi-statement operation affecting {total} rows across "
        "{ops} operations.",
        total=op.total_row_count,
        ops=len(op.nested),
    )


def confirmation_message(
    op: OperationDescriptor, t: Optional[Translator] = None
) -> str:
    """The question asked before a change is applied."""
    t = t or _identity
    count = op.row_count
    if op.kind == OperationKind.INSERT:
        return t(
            "preview.confirm.insert",
            'Are you sure you want to insert {count} row{s} into "{table}"?',
            count=count,
            s=plural(count),
            table=op.table,
        )
    if op.kind == OperationKind.UPDATE:
        return t(
            "preview.confirm.update",
            'Are you sure you want to update {count} row{s} in "{table}"?',
            count=count,
            s=plural(count),
            table=op.table,
        )
    if op.kind == OperationKind.DELETE:
        return t(
            "preview.confirm.delete",
            'Are you sure you want to delete {count} row{s} from "{table}"?'
            "\n\nThis action cannot be undone.",
            count=count,
            s=plural(count),
            table=op.table,
        )
    return t(
        "preview.confirm.multi",
        "Are you sure you want to execute {ops} operations affecting "
        "multiple tables?",
        ops=len(op.nested),
    )


def has_actions(
    op: OperationDescriptor,
    column_filter: ColumnFilter = filter_relevant_columns,
) -> bool:
    """Whether there is anything to apply.

    Changes that touch no rows, and updates that change no relevant
    column, have nothing to apply.
    """
    if op.total_row_count == 0:
        return False
    if op.kind == OperationKind.UPDATE:
        return count_changed_fields(op.before, op.after, column_filter) > 0
    return True
