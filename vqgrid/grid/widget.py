import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from attrs import define, field
from PyQt5 import sip
from PyQt5.QtCore import QEvent, QObject, QPoint, Qt
from PyQt5.QtWidgets import QAbstractItemView, QHeaderView, QTableView, QWidget

from vqgrid.errors import GridDestroyedError
from vqgrid.grid.columns import (
    ROLE_MARKDOWN,
    ColumnDef,
    GridOptions,
)
from vqgrid.grid.delegate import MarkdownDelegate
from vqgrid.grid.rows_model import RowsModel
from vqgrid.utils.widgets import ensure_layout

logger = logging.getLogger(__name__)
VERBOSE = 1

EVENT_CLICK = "click"
EVENT_SCROLL = "scroll"
EVENT_COLUMNS_RESIZED = "columns_resized"
EVENT_BEFORE_DESTROY = "before_destroy"
EVENTS = (
    EVENT_CLICK,
    EVENT_SCROLL,
    EVENT_COLUMNS_RESIZED,
    EVENT_BEFORE_DESTROY,
)

Handler = Callable[..., Any]


@define
class GridClickEvent:
    """A click on a cell of the grid.

    Attributes:
        row: Index of the clicked row in the data of the grid, or None when
            the click landed outside the data rows.
        column: The definition of the clicked column, if any.
        item: The clicked row mapping, if any.
        pos: The position of the click in viewport coordinates.
        view_row: The position of the row in the view, panels included.
        from_offset: True if the row was derived from the pixel offset of
            the click rather than from the index under the cursor.
    """

    row: Optional[int]
    column: Optional[ColumnDef]
    item: Optional[Mapping[str, Any]]
    pos: QPoint
    view_row: int = -1
    from_offset: bool = False
    handled: bool = field(default=False, init=False)


class GridWidget(QObject):
    """A virtualized grid over a list of row mappings.

    The grid places a table view inside a mount widget. Qt only paints the
    rows that are visible, so the grid must be told to redraw when the host
    moves it around.

    Every operation raises `GridDestroyedError` once the view is gone,
    either because `destroy()` was called or because the host deleted the
    mount together with its children.

    Attributes:
        options: The options the grid was built with.
    """

    options: GridOptions
    _mount: QWidget
    _view: QTableView
    _model: RowsModel
    _columns: List[ColumnDef]
    _handlers: Dict[str, List[Handler]]
    _panels: Dict[str, QWidget]
    _destroyed: bool
    _applying_columns: bool
    _sort_column: int
    _sort_order: Qt.SortOrder

    def __init__(
        self,
        mount: QWidget,
        rows: Sequence[Mapping[str, Any]],
        columns: Sequence[ColumnDef],
        options: Optional[GridOptions] = None,
    ):
        super().__init__()
        self.options = options or GridOptions()
        self._mount = mount
        self._columns = list(columns)
        self._handlers = {e: [] for e in EVENTS}
        self._panels = {}
        self._destroyed = False
        self._applying_columns = False
        self._sort_column = -1
        self._sort_order = Qt.SortOrder.AscendingOrder

        self._model = RowsModel(rows, self._columns, self)

        view = QTableView(mount)
        view.setObjectName("vqgrid-view")
        view.setModel(self._model)
        view.setWordWrap(self.options.markdown)
        view.setVerticalScrollMode(QAbstractItemView.ScrollMode.ScrollPerPixel)
        view.setHorizontalScrollMode(
            QAbstractItemView.ScrollMode.ScrollPerPixel
        )
        view.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        view.setSelectionMode(
            QAbstractItemView.SelectionMode.ExtendedSelection
        )

        v_header = view.verticalHeader()
        v_header.setSectionResizeMode(QHeaderView.ResizeMode.Fixed)
        v_header.setDefaultSectionSize(self.options.row_height)

        h_header = view.horizontalHeader()
        h_header.setMinimumHeight(self.options.header_height)
        h_header.setDefaultSectionSize(self.options.default_width)
        h_header.setSectionResizeMode(QHeaderView.ResizeMode.Interactive)
        h_header.setStretchLastSection(False)
        if self.options.sorting:
            h_header.setSectionsClickable(True)
            h_header.setSortIndicatorShown(True)
            h_header.sectionClicked.connect(self._on_header_clicked)
        h_header.sectionResized.connect(self._on_section_resized)

        view.verticalScrollBar().valueChanged.connect(self._on_scroll)
        view.viewport().installEventFilter(self)

        self._view = view
        self._apply_columns()
        ensure_layout(mount).addWidget(view)

    # Introspection.

    @property
    def view(self) -> QTableView:
        """The table view, if it still exists."""
        self._check("access the view")
        return self._view

    @property
    def model(self) -> RowsModel:
        return self._model

    @property
    def is_destroyed(self) -> bool:
        """Whether the view is gone."""
        return self._destroyed or sip.isdeleted(self._view)

    def get_data(self) -> List[Mapping[str, Any]]:
        """The rows the grid currently shows, in their original order."""
        return list(self._model.rows)

    def get_columns(self) -> List[ColumnDef]:
        """The column definitions, with their current widths."""
        self._check("get columns")
        return list(self._columns)

    def container_node(self) -> QWidget:
        """The widget the grid was mounted into."""
        self._check("get the container")
        return self._mount

    # Redrawing.

    def resize_canvas(self):
        """Recompute the geometry of the view after its size changed."""
        self._check("resize the canvas")
        self._view.updateGeometries()
        self._view.viewport().update()

    def invalidate(self):
        """Mark the currently painted rows as stale."""
        self._check("invalidate")
        self._view.viewport().update()

    def invalidate_all_rows(self):
        """Mark every row as stale, painted or not."""
        self._check("invalidate all rows")
        rows = self._model.rowCount()
        cols = self._model.columnCount()
        if rows and cols:
            self._model.dataChanged.emit(
                self._model.index(0, 0),
                self._model.index(rows - 1, cols - 1),
            )
        self._view.viewport().update()

    def render(self):
        """Repaint the stale rows now."""
        self._check("render")
        self._view.doItemsLayout()
        self._view.viewport().repaint()

    # Data.

    def set_data(self, rows: Sequence[Mapping[str, Any]]):
        """Replace the rows of the grid. Open panels are discarded."""
        self._check("set data")
        self._discard_panels()
        self._model.set_rows(rows)

    def update_row_count(self):
        """Pick up rows appended to or removed from the data in place."""
        self._check("update the row count")
        self._model.sync_row_count()

    def set_columns(self, columns: Sequence[ColumnDef]):
        """Replace the column definitions, widths included."""
        self._check("set columns")
        self._columns = list(columns)
        self._model.set_columns(self._columns)
        self._apply_columns()

    def _apply_columns(self):
        header = self._view.horizontalHeader()
        self._applying_columns = True
        try:
            if self._columns:
                header.setMinimumSectionSize(
                    min(c.min_width for c in self._columns)
                )
            for i, column in enumerate(self._columns):
                self._view.setItemDelegateForColumn(i, None)
                if column.role == ROLE_MARKDOWN and self.options.markdown:
                    self._view.setItemDelegateForColumn(
                        i, MarkdownDelegate(self._view)
                    )
                header.setSectionResizeMode(
                    i,
                    QHeaderView.ResizeMode.Interactive
                    if column.resizable
                    else QHeaderView.ResizeMode.Fixed,
                )
                header.resizeSection(
                    i, column.width or self.options.default_width
                )
        finally:
            self._applying_columns = False

    # Events.

    def subscribe(self, event: str, handler: Handler):
        """Register a handler for one of the grid events.

        Events:
            click: receives a `GridClickEvent`;
            scroll: receives the vertical scroll offset;
            columns_resized: receives the list of column definitions;
            before_destroy: receives the grid, before the view goes away.
        """
        if event not in self._handlers:
            raise ValueError(f"Unknown grid event {event}")
        self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: Handler):
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def _emit(self, event: str, *args: Any):
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(*args)
            except Exception as e:
                logger.error(
                    "Error in %s handler: %s", event, e, exc_info=True
                )

    def _on_scroll(self, value: int):
        self._emit(EVENT_SCROLL, value)

    def _on_section_resized(self, index: int, old_size: int, new_size: int):
        if self._applying_columns or not 0 <= index < len(self._columns):
            return
        self._columns[index] = self._columns[index].with_width(new_size)
        self._emit(EVENT_COLUMNS_RESIZED, list(self._columns))

    def _on_header_clicked(self, index: int):
        if not 0 <= index < len(self._columns):
            return
        if not self._columns[index].sortable:
            return
        if self._sort_column == index:
            self._sort_order = (
                Qt.SortOrder.DescendingOrder
                if self._sort_order == Qt.SortOrder.AscendingOrder
                else Qt.SortOrder.AscendingOrder
            )
        else:
            self._sort_column = index
            self._sort_order = Qt.SortOrder.AscendingOrder
        self._discard_panels()
        self._model.sort(index, self._sort_order)
        self._view.horizontalHeader().setSortIndicator(index, self._sort_order)

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        if (
            event.type() == QEvent.Type.MouseButtonRelease
            and event.button() == Qt.MouseButton.LeftButton
            and not self.is_destroyed
        ):
            click = self.resolve_click(event.pos())
            self._emit(EVENT_CLICK, click)
        return False

    def resolve_click(self, pos: QPoint) -> GridClickEvent:
        """Find the row and column under a point of the viewport.

        The index under the point is used when there is one. Otherwise the
        row is derived from the vertical pixel offset divided by the row
        height, which is exact only while no panel is open above the point.
        """
        index = self._view.indexAt(pos)
        from_offset = False
        if index.isValid():
            view_row = index.row()
            col_idx = index.column()
        else:
            from_offset = True
            offset = pos.y() + self._view.verticalScrollBar().value()
            view_row = offset // max(1, self.options.row_height)
            col_idx = self._view.columnAt(pos.x())

        data_row = self._model.data_row(view_row)
        column = (
            self._columns[col_idx]
            if 0 <= col_idx < len(self._columns)
            else None
        )
        item = self._model.rows[data_row] if data_row is not None else None
        return GridClickEvent(
            row=data_row,
            column=column,
            item=item,
            pos=pos,
            view_row=view_row,
            from_offset=from_offset,
        )

    # Panels.

    def insert_panel(self, after_row: int, key: str, panel: QWidget):
        """Show a widget spanning a whole row right after a data row.

        Args:
            after_row: Index of the data row the panel follows.
            key: Unique key used to remove the panel later.
            panel: The widget to show. The grid takes ownership.
        """
        self._check("insert a panel")
        position = self._model.add_panel(key, after_row)
        cols = max(1, self._model.columnCount())
        if cols > 1:
            self._view.setSpan(position, 0, 1, cols)
        self._view.setIndexWidget(self._model.index(position, 0), panel)
        self._view.setRowHeight(
            position, max(panel.sizeHint().height(), self.options.row_height)
        )
        self._panels[key] = panel
        logger.log(VERBOSE, "Panel %s inserted at view row %d", key, position)

    def remove_panel(self, key: str) -> bool:
        """Remove a panel; returns False if there was none with that key."""
        self._check("remove a panel")
        panel = self._panels.pop(key, None)
        if panel is not None and not sip.isdeleted(panel):
            panel.hide()
            panel.deleteLater()
        return self._model.drop_panel(key)

    def panel_keys(self) -> List[str]:
        return list(self._panels.keys())

    def get_panel(self, key: str) -> Optional[QWidget]:
        return self._panels.get(key)

    def scroll_to_row(self, row: int):
        """Bring a data row into view."""
        self._check("scroll")
        view_row = self._model.view_row_of_data(row)
        if view_row >= 0:
            self._view.scrollTo(self._model.index(view_row, 0))

    def _discard_panels(self):
        for key in list(self._panels.keys()):
            self.remove_panel(key)

    # Lifetime.

    def destroy(self):
        """Tear down the view.

        Handlers of `before_destroy` run first, then the view is removed
        from the mount and scheduled for deletion. The mount itself is left
        in place.
        """
        self._check("destroy")
        self._emit(EVENT_BEFORE_DESTROY, self)
        self._destroyed = True
        self._panels.clear()
        view = self._view
        view.viewport().removeEventFilter(self)
        view.setModel(None)
        view.hide()
        view.setParent(None)
        view.deleteLater()
        for handlers in self._handlers.values():
            handlers.clear()
        logger.log(VERBOSE, "Grid view destroyed")

    def _check(self, operation: str):
        if self._destroyed or sip.isdeleted(self._view):
            raise GridDestroyedError(operation)
