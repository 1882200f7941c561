from unittest.mock import MagicMock

import pytest

from vqgrid.preview.models import OperationDescriptor
from vqgrid.preview.summary import (
    confirmation_message,
    has_actions,
    plural,
    summary_text,
)


def test_plural():
    assert plural(1) == ""
    assert plural(0) == "s"
    assert plural(2, "has", "have") == "have"


def test_insert_summary():
    op = OperationDescriptor(kind="insert", table="tasks", after=[{"a": 1}])
    assert summary_text(op) == (
        '✅ 1 new row will be inserted into table "tasks".'
    )


def test_update_summary_counts_changed_fields():
    op = OperationDescriptor(
        kind="update",
        table="tasks",
        before=[{"id": 1, "a": 1, "b": 1}, {"id": 2, "a": 1, "b": 1}],
        after=[{"id": 1, "a": 2, "b": 2}, {"id": 2, "a": 1, "b": 1}],
    )
    assert summary_text(op) == (
        'ℹ️ 2 rows will be updated in table "tasks". 2 fields changed.'
    )


def test_update_without_changes():
    rows = [{"id": 1, "a": 1}]
    op = OperationDescriptor(
        kind="update", table="tasks", before=rows, after=rows
    )
    assert summary_text(op) == (
        "ℹ️ No changes to apply. The 1 matching row already has the "
        "specified values."
    )
    assert not has_actions(op)


def test_delete_summary_and_confirmation():
    op = OperationDescriptor(
        kind="delete", table="notes", before=[{"a": 1}, {"a": 2}]
    )
    assert summary_text(op) == (
        '⚠️ 2 rows will be deleted from table "notes".'
    )
    message = confirmation_message(op)
    assert message.startswith(
        'Are you sure you want to delete 2 rows from "notes"?'
    )
    assert "cannot be undone" in message


def test_multi_summary():
    op = OperationDescriptor.from_dict(
        {
            "op": "multi",
            "multi_results": [
                {"op": "insert", "table": "a", "after": [{"x": 1}]},
                {"op": "delete", "table": "b", "before": [{"x": 1}, {"x": 2}]},
            ],
        }
    )
    assert summary_text(op) == (
        "🔄 Multi-statement operation affecting 3 rows across "
        "2 operations."
    )
    assert confirmation_message(op) == (
        "Are you sure you want to execute 2 operations affecting "
        "multiple tables?"
    )
    assert has_actions(op)


@pytest.mark.parametrize(
    "data, expected",
    [
        ({"op": "insert", "after": []}, False),
        ({"op": "insert", "after": [{"a": 1}]}, True),
        ({"op": "delete", "before": [{"a": 1}]}, True),
        ({"op": "multi", "multi_results": []}, False),
        (
            {
                "op": "update",
                "before": [{"a": 1}],
                "after": [{"a": 2}],
            },
            True,
        ),
    ],
)
def test_has_actions(data, expected):
    assert has_actions(OperationDescriptor.from_dict(data)) is expected


def test_translator_receives_keys():
    t = MagicMock(return_value="translated")
    op = OperationDescriptor(kind="insert", table="tasks", after=[{"a": 1}])

    assert summary_text(op, t) == "translated"
    assert t.call_args.args[0] == "preview.summary.insert"
    assert t.call_args.kwargs["table"] == "tasks"

    assert confirmation_message(op, t) == "translated"
    assert t.call_args.args[0] == "preview.confirm.insert"
