import logging
from typing import Any, Optional

from PyQt5.QtWidgets import QMessageBox, QTextBrowser, QWidget

from vqgrid.utils.widgets import ensure_layout

logger = logging.getLogger(__name__)


class HostAdapter:
    """The services the embedding application provides to the grids.

    Subclass it to plug the grids into an application. The base class
    renders markdown in a read-only text browser and asks for confirmation
    with a message box; it cannot open documents.

    Attributes:
        parent: Default parent of the dialogs.
    """

    parent: Optional[QWidget]

    def __init__(self, parent: Optional[QWidget] = None):
        self.parent = parent

    def open_document(self, path: str) -> Any:
        """Open the document at a path in the host."""
        raise NotImplementedError(
            "The host application must provide a way to open documents"
        )

    def render_markdown(
        self,
        node: QWidget,
        text: str,
        source_path: Optional[str] = None,
        owner: Optional[Any] = None,
    ) -> QWidget:
        """Render markdown text into a widget.

        Args:
            node: The widget that receives the rendered text.
            text: The markdown source.
            source_path: Path of the document the text belongs to; used by
                hosts to resolve relative links.
            owner: The object whose lifetime bounds the rendered content.

        Returns:
            The widget that shows the text.
        """
        browser = QTextBrowser(node)
        browser.setReadOnly(True)
        browser.setOpenLinks(False)
        browser.setMarkdown(text)
        doc_height = int(browser.document().size().height())
        browser.setMinimumHeight(min(max(doc_height + 12, 40), 400))
        ensure_layout(node).addWidget(browser)
        return browser

    def confirm(self, message: str, title: str = "Confirm") -> bool:
        """Ask the user a yes/no question."""
        answer = QMessageBox.question(
            self.parent,
            title,
            message,
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        return answer == QMessageBox.StandardButton.Yes
