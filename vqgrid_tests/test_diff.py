import pytest

from vqgrid.preview.diff import (
    MISSING,
    compute_change_set,
    count_changed_fields,
    relevant_columns,
    strictly_equal,
    union_columns,
)


def brute_force(before, after, columns):
    """The changed columns, computed the obvious way."""
    result = set()
    for b_row, a_row in zip(before, after):
        for col in columns:
            if not strictly_equal(
                b_row.get(col, MISSING), a_row.get(col, MISSING)
            ):
                result.add(col)
    return result


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (1, 1, True),
        (1, 1.0, True),
        ("a", "a", True),
        (None, None, True),
        (True, True, True),
        (1, "1", False),
        (True, 1, False),
        (False, 0, False),
        (None, "", False),
        (None, MISSING, False),
        (MISSING, MISSING, True),
        ("a", "b", False),
    ],
)
def test_strictly_equal(a, b, expected):
    assert strictly_equal(a, b) is expected
    assert strictly_equal(b, a) is expected


def test_identical_snapshots_have_no_changes():
    rows = [{"a": 1, "b": "x"}, {"a": 2, "b": None}]
    copy = [dict(r) for r in rows]
    assert compute_change_set(rows, copy, ["a", "b"]) == []


@pytest.mark.parametrize(
    "before, after",
    [
        ([{"a": 1, "b": 2}], [{"a": 1, "b": 3}]),
        ([{"a": 1}, {"a": 2}], [{"a": 1}, {"a": "2"}]),
        ([{"a": 1, "b": 2}, {"a": 3}], [{"a": 1}, {"a": 3, "b": None}]),
        ([{"a": True, "c": 0}], [{"a": 1, "c": False}]),
        ([{"x": "q"}, {"x": "r"}], [{"x": "r"}, {"x": "q"}]),
    ],
)
def test_change_set_matches_pairwise_inequality(before, after):
    columns = union_columns(before, after)
    result = compute_change_set(before, after, columns)
    assert set(result) == brute_force(before, after, columns)
    assert len(result) == len(set(result))


def test_change_set_keeps_column_order():
    before = [{"a": 1, "b": 1, "c": 1}]
    after = [{"a": 2, "b": 1, "c": 2}]
    assert compute_change_set(before, after, ["c", "b", "a"]) == ["c", "a"]


def test_unpaired_rows_are_skipped():
    before = [{"a": 1}, {"a": 2}]
    after = [{"a": 1}]
    assert compute_change_set(before, after, ["a"]) == []
    assert compute_change_set(after, before, ["a"]) == []


def test_rows_are_aligned_by_position():
    # The same rows in another order count as changes.
    before = [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}]
    after = [{"id": 2, "v": "b"}, {"id": 1, "v": "a"}]
    assert compute_change_set(before, after, ["id", "v"]) == ["id", "v"]


def test_union_columns_spans_every_row():
    before = [{"a": 1}, {"a": 1, "late": 2}]
    after = [{"b": 1}]
    assert union_columns(before, after) == ["a", "late", "b"]


def test_relevant_columns_drop_bookkeeping():
    before = [{"rowid": 1, "path": "/a.md", "modified": 10, "status": "x"}]
    after = [{"rowid": 1, "path": "/a.md", "modified": 20, "status": "y"}]
    assert relevant_columns(before, after) == ["path", "status"]


def test_count_changed_fields_ignores_bookkeeping():
    before = [{"id": 1, "modified": 10, "status": "todo"}]
    after = [{"id": 1, "modified": 20, "status": "todo"}]
    assert count_changed_fields(before, after) == 0

    after = [{"id": 1, "modified": 20, "status": "done"}]
    assert count_changed_fields(before, after) == 1


def test_count_changed_fields_with_empty_side():
    assert count_changed_fields([], [{"a": 1}]) == 0
    assert count_changed_fields([{"a": 1}], []) == 0


def test_missing_marker():
    assert repr(MISSING) == "MISSING"
    assert not MISSING
    assert type(MISSING)() is MISSING
