import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

from PyQt5 import sip
from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import QApplication, QHBoxLayout, QToolButton, QWidget

from vqgrid.context_use import GridUseContext
from vqgrid.utils.aio import MaybeAsync, run_action
from vqgrid.utils.markdown_table import generate_markdown_table

if TYPE_CHECKING:
    from vqgrid.context import GridContext

logger = logging.getLogger(__name__)

COPY_GLYPH = "📋"
REFRESH_GLYPH = "⟳"
SUCCESS_GLYPH = "✓"
FAILURE_GLYPH = "✕"


class FloatingButtons(QWidget, GridUseContext):
    """A row of small buttons shown at the top right of a grid.

    Buttons briefly show a check mark or a cross after their action
    completed, then revert to their own glyph.

    Attributes:
        copy_button: Copies the rows as a markdown table, if added.
        refresh_button: Re-runs the query, if added.
        refreshing: True while a refresh started by the button is running.
    """

    copy_button: Optional[QToolButton]
    refresh_button: Optional[QToolButton]
    refreshing: bool

    def __init__(self, ctx: "GridContext", parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.ctx = ctx
        self.copy_button = None
        self.refresh_button = None
        self.refreshing = False
        self.setObjectName("vqgrid-floating-buttons")

        ly = QHBoxLayout(self)
        ly.setContentsMargins(0, 0, 0, 0)
        ly.setSpacing(2)
        ly.addStretch(1)

    def _add_button(self, glyph: str, tooltip: str) -> QToolButton:
        button = QToolButton(self)
        button.setText(glyph)
        button.setToolTip(tooltip)
        button.setAutoRaise(True)
        button.setCursor(Qt.CursorShape.PointingHandCursor)
        self.layout().addWidget(button)
        return button

    def add_copy_button(
        self, rows: Sequence[Mapping[str, Any]]
    ) -> QToolButton:
        """Add the button that copies the rows as a markdown table."""
        button = self._add_button(
            COPY_GLYPH, self.t("grid.copy_md", "Copy as Markdown")
        )
        button.clicked.connect(lambda: self.copy_rows(rows))
        self.copy_button = button
        return button

    def copy_rows(self, rows: Sequence[Mapping[str, Any]]) -> bool:
        """Put the rows on the clipboard as a markdown table."""
        assert self.copy_button is not None
        try:
            QApplication.clipboard().setText(generate_markdown_table(rows))
        except Exception as e:
            logger.error("Copy failed: %s", e, exc_info=True)
            self.flash(self.copy_button, FAILURE_GLYPH, COPY_GLYPH)
            return False
        self.flash(self.copy_button, SUCCESS_GLYPH, COPY_GLYPH)
        return True

    def add_refresh_button(self, on_refresh: MaybeAsync) -> QToolButton:
        """Add the button that re-runs the query."""
        button = self._add_button(
            REFRESH_GLYPH, self.t("grid.refresh", "Refresh")
        )
        button.clicked.connect(lambda: self.refresh(on_refresh))
        self.refresh_button = button
        return button

    def refresh(self, on_refresh: MaybeAsync) -> bool:
        """Run the refresh callback unless one is already running.

        Returns:
            False if the call was ignored because a refresh is running.
        """
        if self.refreshing:
            return False
        self.refreshing = True
        button = self.refresh_button
        if button is not None:
            button.setEnabled(False)
        run_action(on_refresh, self._refresh_done)
        return True

    def _refresh_done(self, error: Optional[BaseException]):
        button = self.refresh_button
        if error is None:
            self.refreshing = False
            if button is not None and not sip.isdeleted(button):
                button.setEnabled(True)
            return

        logger.error(
            "Refresh failed: %s",
            error,
            exc_info=(type(error), error, error.__traceback__),
        )
        if button is None or sip.isdeleted(button):
            self.refreshing = False
            return
        button.setEnabled(True)

        def release():
            self.refreshing = False

        self.flash(button, FAILURE_GLYPH, REFRESH_GLYPH, release)

    def flash(
        self,
        button: QToolButton,
        glyph: str,
        restore: str,
        then: Optional[Callable[[], None]] = None,
    ):
        """Show a glyph on a button for a while, then restore the original.

        Args:
            button: The button to change.
            glyph: The glyph shown for a while.
            restore: The glyph shown afterwards.
            then: Called after the glyph was restored.
        """
        button.setText(glyph)

        def revert():
            if not sip.isdeleted(button):
                button.setText(restore)
            if then is not None:
                then()

        self.ctx.scheduler.call_later(self.ctx.stg.revert_delay_ms, revert)
