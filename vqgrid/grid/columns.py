"""Column definitions for the result grids."""

import re
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
)

from attrs import define, evolve, field

from vqgrid.utils.formatting import (
    DATE_COLUMNS,
    TIMESTAMP_COLUMNS,
    format_by_field,
    format_date_string,
    format_timestamp,
)

if TYPE_CHECKING:
    from vqgrid.grid.width_cache import ColumnWidthCache

CURRENT_SUFFIX = " (current)"
PROPOSED_SUFFIX = " (proposed)"

DEFAULT_WIDTH = 120
MIN_WIDTH = 50
PAIRED_WIDTH = 140

# Roles drive how the cells of a column are presented.
ROLE_CURRENT = "current"
ROLE_PROPOSED = "proposed"
ROLE_MARKDOWN = "markdown"
ROLE_CLICKABLE = "clickable"
ROLE_PATH = "path"

_COLUMN_WIDTHS: Dict[str, int] = {
    **dict.fromkeys(
        (
            "id",
            "rowid",
            "row_index",
            "table_index",
            "level",
            "line_number",
            "array_index",
            "size",
        ),
        60,
    ),
    "completed": 80,
    **dict.fromkeys(("priority", "value_type", "link_type"), 90),
    **dict.fromkeys(("key", "tag_name", "column_name", "table_name"), 120),
    **dict.fromkeys(TIMESTAMP_COLUMNS + DATE_COLUMNS, 130),
    **dict.fromkeys(("title", "link_text", "link_target"), 180),
    "path": 220,
    **dict.fromkeys(("value", "task_text", "heading_text", "cell_value"), 250),
    "content": 300,
    "tags": 150,
}

_QUERY_FENCE = re.compile(r"```vaultquery[^\n]*")

Formatter = Callable[[Any, "ColumnDef", Mapping[str, Any]], str]


@define
class ColumnDef:
    """Describes one column of a grid.

    Attributes:
        id: Unique identifier of the column inside its grid.
        name: The header label.
        field: The key of the row mapping that holds the value.
        width: The width in pixels, or None to use the grid default.
        min_width: The smallest width the user can shrink the column to.
        sortable: Whether clicking the header sorts by this column.
        resizable: Whether the user may resize the column.
        role: Optional presentation role (see the ROLE_* constants).
        formatter: Optional function that turns a raw value into text.
    """

    id: str
    name: str
    field: str
    width: Optional[int] = None
    min_width: int = MIN_WIDTH
    sortable: bool = True
    resizable: bool = True
    role: Optional[str] = None
    formatter: Optional[Formatter] = field(default=None, eq=False)

    def format(self, value: Any, row: Mapping[str, Any]) -> str:
        """Produce the display text for a value of this column."""
        if self.formatter is not None:
            return self.formatter(value, self, row)
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def with_width(self, width: Optional[int]) -> "ColumnDef":
        """Return a copy of this column with another width."""
        return evolve(self, width=width)

    @property
    def base_name(self) -> str:
        """The name without the `(current)` or `(proposed)` suffix."""
        for suffix in (CURRENT_SUFFIX, PROPOSED_SUFFIX):
            if self.name.endswith(suffix):
                return self.name[: -len(suffix)]
        return self.name

    @property
    def changed_flag(self) -> str:
        """The key of the row flag that tells if the value was changed."""
        return f"_{self.base_name}_changed"


def default_column_width(key: str) -> int:
    """The initial width of a column, based on its name."""
    if CURRENT_SUFFIX in key or PROPOSED_SUFFIX in key:
        return PAIRED_WIDTH
    return _COLUMN_WIDTHS.get(key, DEFAULT_WIDTH)


def _paired_formatter(
    value: Any, column: ColumnDef, row: Mapping[str, Any]
) -> str:
    return format_by_field(value, column.base_name)


def _timestamp_formatter(
    value: Any, column: ColumnDef, row: Mapping[str, Any]
) -> str:
    return format_timestamp(value)


def _date_formatter(
    value: Any, column: ColumnDef, row: Mapping[str, Any]
) -> str:
    return format_date_string(value)


def _content_formatter(
    value: Any, column: ColumnDef, row: Mapping[str, Any]
) -> str:
    content = "" if value is None else str(value)
    return _QUERY_FENCE.sub("```sql", content)


def build_column(
    key: str,
    *,
    markdown: bool = False,
    query_hash: Optional[str] = None,
    width_cache: Optional["ColumnWidthCache"] = None,
) -> ColumnDef:
    """Create the definition for a single column.

    Args:
        key: The key of the row mapping.
        markdown: Whether markdown rendering is enabled for `content`.
        query_hash: The fingerprint of the query that produced the rows.
        width_cache: The cache to consult for a width the user chose before.
    """
    column = ColumnDef(
        id=key, name=key, field=key, width=default_column_width(key)
    )
    if CURRENT_SUFFIX in key:
        column.role = ROLE_CURRENT
        column.formatter = _paired_formatter
    elif PROPOSED_SUFFIX in key:
        column.role = ROLE_PROPOSED
        column.formatter = _paired_formatter
    elif key == "path":
        column.role = ROLE_PATH
    elif key in TIMESTAMP_COLUMNS:
        column.formatter = _timestamp_formatter
    elif key in DATE_COLUMNS:
        column.formatter = _date_formatter
    elif key == "content":
        column.formatter = _content_formatter
        if markdown:
            column.role = ROLE_MARKDOWN

    if query_hash and width_cache is not None:
        saved = width_cache.restore(query_hash, key)
        if saved is not None:
            column.width = saved
    return column


def build_columns(
    first_row: Mapping[str, Any],
    *,
    markdown: bool = False,
    query_hash: Optional[str] = None,
    width_cache: Optional["ColumnWidthCache"] = None,
    clickable: Sequence[str] = (),
) -> List[ColumnDef]:
    """Create the column definitions for a set of rows.

    Keys that start with an underscore are private and never become
    columns.

    Args:
        first_row: A sample row; its keys, in order, become the columns.
        markdown: Whether markdown rendering is enabled for `content`.
        query_hash: The fingerprint of the query that produced the rows.
        width_cache: The cache to consult for widths the user chose before.
        clickable: Keys of the columns whose cells react to clicks.
    """
    result = []
    for key in first_row.keys():
        if key.startswith("_"):
            continue
        column = build_column(
            key,
            markdown=markdown,
            query_hash=query_hash,
            width_cache=width_cache,
        )
        if key in clickable:
            column.role = ROLE_CLICKABLE
        result.append(column)
    return result


@define(frozen=True)
class GridOptions:
    """Options a grid widget is built with.

    Attributes:
        row_height: The height of every data row in pixels.
        header_height: The height of the header row in pixels.
        default_width: The width of columns that do not specify one.
        sorting: Whether clicking a header sorts the rows.
        markdown: Whether cells of markdown columns are painted as markdown.
    """

    row_height: int = 32
    header_height: int = 30
    default_width: int = DEFAULT_WIDTH
    sorting: bool = True
    markdown: bool = False


def has_markdown_content(columns: Sequence[ColumnDef]) -> bool:
    """Whether any of the columns is painted as markdown."""
    return any(c.role == ROLE_MARKDOWN for c in columns)


def prepare_data(rows: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Copy the rows, giving each one an `id` equal to its position.

    A key named `id` in the row itself takes precedence.
    """
    return [{"id": index, **row} for index, row in enumerate(rows)]
