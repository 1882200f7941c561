from datetime import datetime

import pytest

from vqgrid.grid.columns import (
    DEFAULT_WIDTH,
    MIN_WIDTH,
    PAIRED_WIDTH,
    ROLE_CLICKABLE,
    ROLE_CURRENT,
    ROLE_MARKDOWN,
    ROLE_PATH,
    ROLE_PROPOSED,
    ColumnDef,
    build_column,
    build_columns,
    default_column_width,
    has_markdown_content,
    prepare_data,
)
from vqgrid.utils.formatting import (
    format_by_field,
    format_date_string,
    format_timestamp,
)


@pytest.mark.parametrize(
    "key, width",
    [
        ("path", 220),
        ("content", 300),
        ("id", 60),
        ("array_index", 60),
        ("status (current)", PAIRED_WIDTH),
        ("status (proposed)", PAIRED_WIDTH),
        ("anything", DEFAULT_WIDTH),
    ],
)
def test_default_column_width(key, width):
    assert default_column_width(key) == width


def test_build_columns_skips_private_keys():
    columns = build_columns(
        {"path": "/a.md", "_secret": 1, "status": "x", "_x_changed": True}
    )
    assert [c.id for c in columns] == ["path", "status"]
    assert all(c.sortable and c.resizable for c in columns)
    assert all(c.min_width == MIN_WIDTH for c in columns)


def test_build_column_roles():
    assert build_column("path").role == ROLE_PATH
    assert build_column("v (current)").role == ROLE_CURRENT
    assert build_column("v (proposed)").role == ROLE_PROPOSED
    assert build_column("content").role is None
    assert build_column("content", markdown=True).role == ROLE_MARKDOWN
    assert build_columns({"a": 1}, clickable=["a"])[0].role == ROLE_CLICKABLE


def test_has_markdown_content():
    assert has_markdown_content(build_columns({"content": ""}, markdown=True))
    assert not has_markdown_content(build_columns({"content": ""}))


def test_column_base_name_and_flag():
    column = build_column("status (current)")
    assert column.base_name == "status"
    assert column.changed_flag == "_status_changed"
    assert build_column("status").base_name == "status"


def test_default_format():
    column = ColumnDef(id="a", name="a", field="a")
    assert column.format(None, {}) == ""
    assert column.format(True, {}) == "true"
    assert column.format(3, {}) == "3"


def test_content_fences_are_rewritten():
    column = build_column("content")
    text = "x\n```vaultquery\nSELECT 1\n```"
    assert column.format(text, {}) == "x\n```sql\nSELECT 1\n```"


def test_with_width_copies():
    column = build_column("a")
    wider = column.with_width(300)
    assert wider.width == 300
    assert column.width == DEFAULT_WIDTH


def test_prepare_data_numbers_rows():
    assert prepare_data([{"a": 1}, {"a": 2}]) == [
        {"id": 0, "a": 1},
        {"id": 1, "a": 2},
    ]
    assert prepare_data([{"id": "x"}]) == [{"id": "x"}]


def test_format_timestamp():
    stamp = 1700000000000
    expected = datetime.fromtimestamp(stamp / 1000).strftime("%x %X")
    assert format_timestamp(stamp) == expected
    assert format_timestamp(str(stamp)) == expected
    assert format_timestamp(None) == ""
    assert format_timestamp("soon") == "N/A"
    assert format_timestamp(-5) == "N/A"


def test_format_dates():
    assert format_date_string("2024-02-30") == "2024-02-30"
    assert format_date_string("tomorrow") == "tomorrow"
    assert format_date_string("2024-01-31") == (
        datetime(2024, 1, 31).strftime("%x")
    )
    assert format_by_field("2024-01-31", "due_date") == (
        datetime(2024, 1, 31).strftime("%x")
    )
    assert format_by_field(False, "done") == "false"
    assert format_by_field(None, "done") == ""


def test_paired_columns_format_like_their_base():
    column = build_column("modified (current)")
    assert column.format(-1, {}) == "N/A"
