from vqgrid.grid.columns import ColumnDef, build_columns
from vqgrid.grid.width_cache import ColumnWidthCache
from vqgrid.utils.fingerprint import query_fingerprint


def column(key, width=None):
    return ColumnDef(id=key, name=key, field=key, width=width)


def test_save_then_restore():
    cache = ColumnWidthCache()
    cache.save("fp", [column("a", 120), column("b", 120)])
    assert cache.restore("fp", "a") == 120
    assert cache.restore("fp", "b") == 120


def test_restore_unknown():
    cache = ColumnWidthCache()
    assert cache.restore("nope", "a") is None
    cache.save("fp", [column("a", 80)])
    assert cache.restore("fp", "b") is None


def test_columns_without_width_are_not_saved():
    cache = ColumnWidthCache()
    cache.save("fp", [column("a"), column("b", 90)])
    assert cache.restore("fp", "a") is None
    assert cache.restore("fp", "b") == 90


def test_save_replaces_the_previous_mapping():
    cache = ColumnWidthCache()
    cache.save("fp", [column("a", 80), column("b", 90)])
    cache.save("fp", [column("b", 100)])
    assert cache.restore("fp", "a") is None
    assert cache.restore("fp", "b") == 100
    assert len(cache) == 1
    assert "fp" in cache


def test_clear():
    cache = ColumnWidthCache()
    cache.save("fp", [column("a", 80)])
    cache.clear()
    assert len(cache) == 0
    assert cache.restore("fp", "a") is None


def test_saved_widths_are_used_when_building_columns():
    cache = ColumnWidthCache()
    fp = query_fingerprint("SELECT path, status FROM tasks")
    cache.save(fp, [column("path", 333)])

    columns = build_columns(
        {"path": "/a.md", "status": "x"}, query_hash=fp, width_cache=cache
    )
    assert [c.width for c in columns] == [333, 120]

    other = build_columns(
        {"path": "/a.md"},
        query_hash=query_fingerprint("SELECT path FROM notes"),
        width_cache=cache,
    )
    assert other[0].width == 220


def test_fingerprint_depends_on_text_only():
    assert query_fingerprint("SELECT 1") == query_fingerprint("SELECT 1")
    assert query_fingerprint("SELECT 1") != query_fingerprint("SELECT 2")
