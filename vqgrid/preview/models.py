from enum import StrEnum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from attrs import define, field

Row = Mapping[str, Any]


class OperationKind(StrEnum):
    """The kinds of data changes that can be previewed."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    MULTI = "multi"


def _freeze_rows(rows: Optional[Iterable[Row]]) -> Tuple[Row, ...]:
    # Mapping proxies keep the order of the keys and refuse writes.
    if rows is None:
        return ()
    return tuple(MappingProxyType(dict(row)) for row in rows)


def _freeze_strings(values: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    if values is None:
        return ()
    return tuple(str(v) for v in values)


def _freeze_ids(
    values: Optional[Iterable[Any]],
) -> Tuple[Tuple[Any, ...], ...]:
    if values is None:
        return ()
    return tuple(tuple(v) for v in values)


@define(frozen=True)
class SqlAndParams:
    """A statement and its bound parameters.

    Attributes:
        sql: The text of the statement.
        params: The values bound to the statement's placeholders.
    """

    sql: str
    params: Tuple[Any, ...] = field(default=(), converter=tuple)

    @classmethod
    def from_dict(cls, data: Any) -> "SqlAndParams":
        if isinstance(data, SqlAndParams):
            return data
        if isinstance(data, str):
            return cls(sql=data)
        return cls(sql=data["sql"], params=data.get("params") or ())


def _freeze_statements(values: Optional[Iterable[Any]]):
    if values is None:
        return ()
    return tuple(SqlAndParams.from_dict(v) for v in values)


def _freeze_nested(values: Optional[Iterable[Any]]):
    if values is None:
        return ()
    return tuple(OperationDescriptor.from_dict(v) for v in values)


@define(frozen=True)
class OperationDescriptor:
    """A pending data change, as planned before it is applied.

    The before and after rows are aligned by position: `before[i]` is the
    state of the row that `after[i]` will replace. Rows are read-only
    mappings.

    Attributes:
        kind: What the change does.
        table: The table the change targets.
        pk_cols: Names of the primary-key columns of the table.
        before: The rows as they are now.
        after: The rows as they will be.
        sql_to_apply: The statements that apply the change.
        nested: For multi-statement changes, one descriptor per statement.
        ids: The primary-key values of the affected rows.
        rowids: The row ids of the affected rows, when known.
        warnings: Problems found while planning the change.
    """

    kind: OperationKind = field(converter=OperationKind)
    table: str = ""
    pk_cols: Tuple[str, ...] = field(default=(), converter=_freeze_strings)
    before: Tuple[Row, ...] = field(default=(), converter=_freeze_rows)
    after: Tuple[Row, ...] = field(default=(), converter=_freeze_rows)
    sql_to_apply: Tuple[SqlAndParams, ...] = field(
        default=(), converter=_freeze_statements
    )
    nested: Tuple["OperationDescriptor", ...] = field(
        default=(), converter=_freeze_nested
    )
    ids: Tuple[Tuple[Any, ...], ...] = field(default=(), converter=_freeze_ids)
    rowids: Optional[Tuple[int, ...]] = field(
        default=None,
        converter=lambda v: None if v is None else tuple(int(x) for x in v),
    )
    warnings: Tuple[str, ...] = field(default=(), converter=_freeze_strings)

    @classmethod
    def from_dict(cls, data: Any) -> "OperationDescriptor":
        """Create a descriptor from the output of the change planner.

        Both snake_case and camelCase keys are accepted (`pk_cols` or
        `pkCols`, `sql_to_apply` or `sqlToApply`, `multi_results` or
        `multiResults`). The kind is read from `op` or `kind`.
        """
        if isinstance(data, OperationDescriptor):
            return data

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        return cls(
            kind=pick("op", "kind"),
            table=pick("table", default=""),
            pk_cols=pick("pk_cols", "pkCols", default=()),
            before=pick("before", default=()),
            after=pick("after", default=()),
            sql_to_apply=pick("sql_to_apply", "sqlToApply", default=()),
            nested=pick("multi_results", "multiResults", "nested", default=()),
            ids=pick("ids", default=()),
            rowids=pick("rowids"),
            warnings=pick("warnings", default=()),
        )

    @property
    def row_count(self) -> int:
        """Number of rows the change touches."""
        return max(len(self.before), len(self.after))

    @property
    def total_row_count(self) -> int:
        """Number of rows touched, summed over nested statements."""
        if self.kind == OperationKind.MULTI:
            return sum(op.row_count for op in self.nested)
        return self.row_count

    def statements(self) -> Sequence[SqlAndParams]:
        """The statements to show, flattened over nested statements."""
        if self.kind == OperationKind.MULTI and self.nested:
            return [s for op in self.nested for s in op.sql_to_apply]
        return list(self.sql_to_apply)
