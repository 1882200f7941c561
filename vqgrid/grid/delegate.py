from typing import Optional

from PyQt5.QtCore import QModelIndex, QObject, QRectF, Qt
from PyQt5.QtGui import QPainter, QTextDocument
from PyQt5.QtWidgets import (
    QStyle,
    QStyledItemDelegate,
    QStyleOptionViewItem,
)


class MarkdownDelegate(QStyledItemDelegate):
    """Paints the text of a cell as markdown.

    The cell is clipped to its rectangle; the full text remains available
    in the tooltip.
    """

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._doc = QTextDocument(self)
        self._doc.setDocumentMargin(4)

    def paint(
        self,
        painter: QPainter,
        option: QStyleOptionViewItem,
        index: QModelIndex,
    ):
        text = index.data(Qt.ItemDataRole.DisplayRole)
        if not text:
            super().paint(painter, option, index)
            return

        opt = QStyleOptionViewItem(option)
        self.initStyleOption(opt, index)
        opt.text = ""
        style = opt.widget.style() if opt.widget else None
        if style is not None:
            style.drawControl(
                QStyle.ControlElement.CE_ItemViewItem, opt, painter, opt.widget
            )

        self._doc.setDefaultFont(opt.font)
        self._doc.setMarkdown(str(text))
        self._doc.setTextWidth(opt.rect.width())

        painter.save()
        painter.translate(opt.rect.topLeft())
        self._doc.drawContents(
            painter, QRectF(0, 0, opt.rect.width(), opt.rect.height())
        )
        painter.restore()
