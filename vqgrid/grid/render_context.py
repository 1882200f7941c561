from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

from attrs import define, field
from PyQt5.QtWidgets import QWidget

from vqgrid.utils.aio import MaybeAsync

if TYPE_CHECKING:
    from vqgrid.local_settings import GridSettings


@define(frozen=True)
class ParsedQuery:
    """What the query parser tells the grids about a query.

    Attributes:
        query: The text of the query; only used to compute a fingerprint.
        filters_current_document: Whether the query filters by the document
            it is embedded in. Such a query only needs refreshing when that
            document changed.
    """

    query: str = ""
    filters_current_document: bool = False


@define
class RenderContext:
    """A request to render a result grid.

    Attributes:
        rows: The result rows.
        container: The widget to render into.
        parsed: The parsed query that produced the rows.
        open_document: Called with a path when the user clicks a path cell.
        on_refresh: Re-runs the query and renders the new results; may be a
            coroutine function.
        settings: Settings that override those of the context.
        source_path: Path of the document the query is embedded in.
    """

    rows: Sequence[Mapping[str, Any]]
    container: QWidget
    parsed: Optional[ParsedQuery] = None
    open_document: Optional[Callable[[str], Any]] = None
    on_refresh: Optional[MaybeAsync] = None
    settings: Optional["GridSettings"] = None
    source_path: Optional[str] = None

    @property
    def query_text(self) -> str:
        return self.parsed.query if self.parsed is not None else ""

    @property
    def filters_current_document(self) -> bool:
        return bool(self.parsed and self.parsed.filters_current_document)


@define
class PreviewRenderContext(RenderContext):
    """A request to render the preview of a pending change.

    Attributes:
        on_apply: Applies the change; may be a coroutine function.
        on_cancel: Discards the change.
    """

    rows: Sequence[Mapping[str, Any]] = field(factory=list)
    on_apply: Optional[MaybeAsync] = field(default=None, kw_only=True)
    on_cancel: Optional[MaybeAsync] = field(default=None, kw_only=True)
