import pytest

from vqgrid.preview.models import OperationDescriptor, OperationKind
from vqgrid.preview.rows import (
    EXPAND_PLACEHOLDER,
    MULTI_ACTION,
    MULTI_DATA,
    MULTI_DETAILS,
    MULTI_INDEX,
    MULTI_NUMBER,
    MULTI_ROWS,
    MULTI_TABLE,
    PreviewRowBuilder,
    changed_flag,
    operation_icon,
)


@pytest.fixture
def builder():
    return PreviewRowBuilder()


def make(kind, **kwargs):
    return OperationDescriptor(kind=kind, table="tasks", **kwargs)


def test_insert_projects_after_rows(builder):
    op = make("insert", after=[{"a": 1, "b": 2}])
    assert builder.build(op) == [{"a": 1, "b": 2}]


def test_insert_blanks_missing_and_null_values(builder):
    op = make("insert", after=[{"a": 1, "b": 2}, {"a": None}])
    assert builder.build(op) == [{"a": 1, "b": 2}, {"a": "", "b": ""}]


def test_insert_drops_bookkeeping_columns(builder):
    op = make("insert", after=[{"rowid": 4, "a": 1, "modified": 99}])
    assert builder.build(op) == [{"a": 1}]


def test_delete_projects_before_rows(builder):
    op = make("delete", before=[{"a": 1, "b": None}], after=[])
    assert builder.build(op) == [{"a": 1, "b": ""}]


def test_update_pairs_changed_columns(builder):
    op = make(
        "update",
        pk_cols=["a"],
        before=[{"a": 1, "b": 2}],
        after=[{"a": 1, "b": 3}],
    )
    assert builder.build(op) == [
        {"a": 1, "b (current)": 2, "b (proposed)": 3, "_b_changed": True}
    ]


def test_update_without_changes_has_no_rows(builder):
    rows = [{"a": 1, "b": 2}, {"a": 2, "b": 3}]
    op = make("update", pk_cols=["a"], before=rows, after=rows)
    assert builder.build(op) == []


def test_update_flags_are_per_row(builder):
    op = make(
        "update",
        pk_cols=["id"],
        before=[{"id": 1, "status": "x"}, {"id": 2, "status": "y"}],
        after=[{"id": 1, "status": "x"}, {"id": 2, "status": "z"}],
    )
    rows = builder.build(op)
    assert [r[changed_flag("status")] for r in rows] == [False, True]
    assert rows[0]["status (current)"] == "x"
    assert rows[0]["status (proposed)"] == "x"


def test_update_hides_empty_array_index(builder):
    op = make(
        "update",
        pk_cols=["path", "array_index"],
        before=[{"path": "/a.md", "array_index": None, "status": "todo"}],
        after=[{"path": "/a.md", "array_index": None, "status": "done"}],
    )
    assert builder.build(op) == [
        {
            "path": "/a.md",
            "status (current)": "todo",
            "status (proposed)": "done",
            "_status_changed": True,
        }
    ]


def test_update_keeps_array_index_with_a_value(builder):
    op = make(
        "update",
        pk_cols=["path", "array_index"],
        before=[{"path": "/a.md", "array_index": 2, "status": "todo"}],
        after=[{"path": "/a.md", "array_index": 2, "status": "done"}],
    )
    (row,) = builder.build(op)
    assert row["array_index"] == 2


def test_update_adds_identity_columns(builder):
    op = make(
        "update",
        pk_cols=["id"],
        before=[
            {
                "id": 1,
                "path": "/a.md",
                "task_text": "Buy milk",
                "status": "todo",
            }
        ],
        after=[
            {
                "id": 1,
                "path": "/a.md",
                "task_text": "Buy milk",
                "status": "done",
            }
        ],
    )
    (row,) = builder.build(op)
    assert list(row.keys()) == [
        "id",
        "path",
        "task_text",
        "status (current)",
        "status (proposed)",
        "_status_changed",
    ]


def test_update_changed_text_is_shown_as_a_pair(builder):
    op = make(
        "update",
        pk_cols=["id"],
        before=[{"id": 1, "task_text": "old"}],
        after=[{"id": 1, "task_text": "new"}],
    )
    (row,) = builder.build(op)
    assert "task_text" not in row
    assert row["task_text (current)"] == "old"
    assert row["task_text (proposed)"] == "new"


def test_update_changed_primary_key_is_not_stable(builder):
    op = make(
        "update",
        pk_cols=["id"],
        before=[{"id": 1, "v": "a"}],
        after=[{"id": 2, "v": "a"}],
    )
    (row,) = builder.build(op)
    assert "id" not in row
    assert row["id (current)"] == 1
    assert row["id (proposed)"] == 2


def test_update_with_fewer_after_rows(builder):
    op = make(
        "update",
        pk_cols=["id"],
        before=[{"id": 1, "v": "a"}, {"id": 2, "v": "b"}],
        after=[{"id": 1, "v": "c"}],
    )
    rows = builder.build(op)
    assert len(rows) == 2
    assert rows[1]["v (proposed)"] == ""
    assert rows[1]["_v_changed"] is True


def test_building_twice_gives_equal_rows(builder):
    op = make(
        "update",
        pk_cols=["id"],
        before=[{"id": 1, "v": "a", "w": None}],
        after=[{"id": 1, "v": "b", "w": 3}],
    )
    assert builder.build(op) == builder.build(op)

    multi = OperationDescriptor(kind="multi", nested=[op])
    assert builder.build(multi) == builder.build(multi)


def test_multi_has_one_summary_row_per_statement(builder):
    insert = make("insert", after=[{"a": 1}, {"a": 2}])
    delete = OperationDescriptor(
        kind="delete", table="notes", before=[{"a": 1}]
    )
    op = OperationDescriptor(kind="multi", nested=[insert, delete])

    rows = builder.build(op)
    assert rows == [
        {
            MULTI_NUMBER: 1,
            MULTI_ACTION: "➕ INSERT",
            MULTI_TABLE: "tasks",
            MULTI_ROWS: 2,
            MULTI_DETAILS: EXPAND_PLACEHOLDER,
            MULTI_INDEX: 0,
            MULTI_DATA: insert,
        },
        {
            MULTI_NUMBER: 2,
            MULTI_ACTION: "🗑️ DELETE",
            MULTI_TABLE: "notes",
            MULTI_ROWS: 1,
            MULTI_DETAILS: EXPAND_PLACEHOLDER,
            MULTI_INDEX: 1,
            MULTI_DATA: delete,
        },
    ]


def test_multi_has_no_detail_rows_of_its_own(builder):
    op = OperationDescriptor(kind="multi")
    assert builder.build_detail(op) == []
    assert builder.build(op) == []


def test_custom_column_filter():
    builder = PreviewRowBuilder(
        column_filter=lambda cols: [c for c in cols if c != "secret"]
    )
    op = make("insert", after=[{"a": 1, "secret": "x"}])
    assert builder.build(op) == [{"a": 1}]


@pytest.mark.parametrize(
    "kind, icon",
    [
        (OperationKind.INSERT, "➕"),
        ("update", "✏️"),
        ("DELETE", "🗑️"),
        ("multi", "⚙️"),
        ("merge", "⚙️"),
    ],
)
def test_operation_icon(kind, icon):
    assert operation_icon(kind) == icon
