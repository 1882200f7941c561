"""Decides which columns of a table matter to the user.

Bookkeeping columns maintained by the database or the indexer are noise in
a change preview and are left out of diffs.
"""

from typing import Callable, Iterable, List

ColumnFilter = Callable[[Iterable[str]], List[str]]

METADATA_COLUMNS = frozenset(("created", "modified", "title", "size"))


def is_relevant_column(name: str) -> bool:
    return not (
        name == "rowid"
        or name.startswith("sqlite_")
        or name.startswith("__")
        or name in METADATA_COLUMNS
    )


def filter_relevant_columns(columns: Iterable[str]) -> List[str]:
    """Keep the relevant columns, in their original order."""
    return [c for c in columns if is_relevant_column(c)]
