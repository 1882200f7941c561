from enum import StrEnum
from typing import TYPE_CHECKING, Any, List, Mapping, Optional

from attrs import define
from PyQt5.QtWidgets import QWidget

from vqgrid.grid.columns import ColumnDef, GridOptions
from vqgrid.utils.widgets import is_attached

if TYPE_CHECKING:
    from vqgrid.grid.render_context import RenderContext
    from vqgrid.grid.visibility import VisibilityObserver
    from vqgrid.grid.widget import GridWidget


class InstanceState(StrEnum):
    """The lifecycle states of a grid instance."""

    MOUNTED = "mounted"
    HIDDEN = "hidden"
    RECREATING = "recreating"
    DESTROYED = "destroyed"


@define
class GridInstance:
    """A live grid owned by the instance registry.

    The rows, columns and options are the ones the grid was last built
    with; recreation builds the new widget from exactly these.

    Attributes:
        widget: The grid widget currently bound to the mount.
        mount: The widget the grid is mounted into.
        container: The widget the caller asked to render into.
        rows: The rows the grid was built with.
        columns: The column definitions the grid was built with.
        options: The options the grid was built with.
        context: The render request that produced the grid, if any.
        observer: The visibility observer watching the mount, if any.
        state: Where the instance is in its lifecycle.
        query_hash: Fingerprint of the query that produced the rows.
    """

    widget: "GridWidget"
    mount: QWidget
    container: QWidget
    rows: List[Mapping[str, Any]]
    columns: List[ColumnDef]
    options: GridOptions
    context: Optional["RenderContext"] = None
    observer: Optional["VisibilityObserver"] = None
    state: InstanceState = InstanceState.MOUNTED
    query_hash: Optional[str] = None

    @property
    def is_destroyed(self) -> bool:
        return self.state == InstanceState.DESTROYED

    @property
    def is_detached(self) -> bool:
        """Whether the mount is no longer part of a live widget tree."""
        return not is_attached(self.mount)

    @property
    def is_hollow(self) -> bool:
        """Whether the grid lost its view while the mount survived."""
        return self.widget is None or self.widget.is_destroyed
