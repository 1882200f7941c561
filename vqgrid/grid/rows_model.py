import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, cast

from PyQt5.QtCore import QAbstractTableModel, QModelIndex, QObject, Qt
from PyQt5.QtGui import QColor, QFont

from vqgrid.grid.columns import (
    ROLE_CLICKABLE,
    ROLE_CURRENT,
    ROLE_PATH,
    ROLE_PROPOSED,
    ColumnDef,
)

logger = logging.getLogger(__name__)

# Kinds of entries in the layout of the model.
ENTRY_ROW = "row"
ENTRY_PANEL = "panel"

DIMMED_COLOR = "#8a8a8a"
LINK_COLOR = "#2a6fdb"


def _sort_key(value: Any) -> Tuple[int, Any]:
    # Empty values go last; mixed types compare by their text.
    if value is None or value == "":
        return (2, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value).lower())


class RowsModel(QAbstractTableModel):
    """Table model over a list of row mappings.

    Besides the data rows the model can hold panel rows, placeholders that
    follow a data row and host a widget spanning the whole row. The view
    position of a data row therefore differs from its index in `rows`;
    use `data_row` to map one to the other.

    Attributes:
        rows: The row mappings, in their original order.
        columns: The column definitions.
        order: The indexes into `rows` in display order.
        panels: Maps the key of each panel to the index of the data row it
            follows.
    """

    rows: List[Mapping[str, Any]]
    columns: List[ColumnDef]
    order: List[int]
    panels: Dict[str, int]
    _layout: List[Tuple[str, Any]]

    def __init__(
        self,
        rows: Sequence[Mapping[str, Any]],
        columns: Sequence[ColumnDef],
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.rows = list(rows)
        self.columns = list(columns)
        self.order = list(range(len(self.rows)))
        self.panels = {}
        self._layout = []
        self._rebuild_layout()

    def _rebuild_layout(self):
        anchored: Dict[int, List[str]] = {}
        for key, data_idx in self.panels.items():
            anchored.setdefault(data_idx, []).append(key)

        layout: List[Tuple[str, Any]] = []
        for data_idx in self.order:
            layout.append((ENTRY_ROW, data_idx))
            for key in anchored.get(data_idx, []):
                layout.append((ENTRY_PANEL, key))
        self._layout = layout

    def set_rows(self, rows: Sequence[Mapping[str, Any]]):
        """Replace the rows, dropping every panel."""
        self.beginResetModel()
        self.rows = list(rows)
        self.order = list(range(len(self.rows)))
        self.panels = {}
        self._rebuild_layout()
        self.endResetModel()

    def set_columns(self, columns: Sequence[ColumnDef]):
        self.beginResetModel()
        self.columns = list(columns)
        self.endResetModel()

    def sync_row_count(self):
        """Bring the layout in line with rows appended or removed in place."""
        if len(self.order) == len(self.rows):
            return
        self.set_rows(self.rows)

    def data_row(self, view_row: int) -> Optional[int]:
        """The index into `rows` shown at a view row, or None for panels."""
        if view_row < 0 or view_row >= len(self._layout):
            return None
        kind, value = self._layout[view_row]
        if kind != ENTRY_ROW:
            return None
        return value

    def view_row_of_data(self, data_idx: int) -> int:
        """The view row that shows a data row, or -1."""
        for i, (kind, value) in enumerate(self._layout):
            if kind == ENTRY_ROW and value == data_idx:
                return i
        return -1

    def view_row_of_panel(self, key: str) -> int:
        """The view row that hosts a panel, or -1."""
        for i, (kind, value) in enumerate(self._layout):
            if kind == ENTRY_PANEL and value == key:
                return i
        return -1

    def add_panel(self, key: str, after_row: int) -> int:
        """Insert a panel row after a data row.

        Args:
            key: Unique key of the panel.
            after_row: The index into `rows` of the data row the panel
                follows.

        Returns:
            The view row of the new panel.
        """
        if key in self.panels:
            raise KeyError(f"Panel {key} already exists")
        anchor = self.view_row_of_data(after_row)
        if anchor < 0:
            raise IndexError(f"No data row {after_row}")

        # The panel goes after the anchor and any panel already there.
        position = anchor + 1
        while (
            position < len(self._layout)
            and self._layout[position][0] == ENTRY_PANEL
        ):
            position += 1

        self.beginInsertRows(QModelIndex(), position, position)
        self.panels[key] = after_row
        self._layout.insert(position, (ENTRY_PANEL, key))
        self.endInsertRows()
        return position

    def drop_panel(self, key: str) -> bool:
        """Remove a panel row; returns False if there is no such panel."""
        position = self.view_row_of_panel(key)
        if position < 0:
            return False
        self.beginRemoveRows(QModelIndex(), position, position)
        del self.panels[key]
        del self._layout[position]
        self.endRemoveRows()
        return True

    def rowCount(self, parent: QModelIndex = QModelIndex()):
        if parent.isValid():
            return 0
        return len(self._layout)

    def columnCount(self, parent: QModelIndex = QModelIndex()):
        if parent.isValid():
            return 0
        return len(self.columns)

    def data(
        self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole
    ):
        if not index.isValid():
            return None
        data_idx = self.data_row(index.row())
        if data_idx is None:
            return None
        try:
            column = self.columns[index.column()]
        except IndexError:
            return None
        row = self.rows[data_idx]
        value = row.get(column.field)

        if role == Qt.ItemDataRole.DisplayRole:
            return column.format(value, row)
        elif role == Qt.ItemDataRole.ToolTipRole:
            text = column.format(value, row)
            return text if text else None
        elif role == Qt.ItemDataRole.UserRole:
            return value
        elif role == Qt.ItemDataRole.FontRole:
            return self._font(column, row)
        elif role == Qt.ItemDataRole.ForegroundRole:
            return self._foreground(column, row)
        return None

    def _font(self, column: ColumnDef, row: Mapping[str, Any]):
        if column.role in (ROLE_PATH, ROLE_CLICKABLE):
            font = QFont()
            font.setUnderline(True)
            return font
        if column.role not in (ROLE_CURRENT, ROLE_PROPOSED):
            return None
        if not row.get(column.changed_flag):
            return None
        font = QFont()
        if column.role == ROLE_CURRENT:
            font.setItalic(True)
        else:
            font.setBold(True)
        return font

    def _foreground(self, column: ColumnDef, row: Mapping[str, Any]):
        if column.role in (ROLE_PATH, ROLE_CLICKABLE):
            return QColor(LINK_COLOR)
        if column.role in (ROLE_CURRENT, ROLE_PROPOSED):
            if not row.get(column.changed_flag):
                return QColor(DIMMED_COLOR)
        return None

    def headerData(
        self, section: int, orientation: Qt.Orientation, role: int = 0
    ):
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            if 0 <= section < len(self.columns):
                return self.columns[section].name
            return None
        data_idx = self.data_row(section)
        if data_idx is None:
            return ""
        return f"{data_idx + 1}"

    def flags(self, index: QModelIndex):
        if not index.isValid():
            return Qt.ItemFlag.NoItemFlags
        if self.data_row(index.row()) is None:
            return Qt.ItemFlag.ItemIsEnabled
        return cast(
            Qt.ItemFlags,
            Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable,
        )

    def sort(
        self, column: int, order: Qt.SortOrder = Qt.SortOrder.AscendingOrder
    ) -> None:
        if not 0 <= column < len(self.columns):
            return
        col_def = self.columns[column]
        if not col_def.sortable:
            return
        self.beginResetModel()
        try:
            self.order = sorted(
                range(len(self.rows)),
                key=lambda i: _sort_key(self.rows[i].get(col_def.field)),
                reverse=order == Qt.SortOrder.DescendingOrder,
            )
        except Exception as e:
            logger.error("Error sorting rows: %s", e, exc_info=True)
        self.panels = {}
        self._rebuild_layout()
        self.endResetModel()
