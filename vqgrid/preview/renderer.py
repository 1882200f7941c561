import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from attrs import define, field
from PyQt5 import sip
from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from vqgrid.context_use import GridUseContext
from vqgrid.controls.floating_buttons import FAILURE_GLYPH, FloatingButtons
from vqgrid.grid.render_context import (
    ParsedQuery,
    PreviewRenderContext,
    RenderContext,
)
from vqgrid.grid.renderer import error_label
from vqgrid.grid.widget import EVENT_CLICK, GridClickEvent
from vqgrid.plugins import vqgrid_pm
from vqgrid.preview.models import OperationDescriptor, OperationKind
from vqgrid.preview.rows import (
    MULTI_DETAILS,
    MULTI_INDEX,
    PreviewRowBuilder,
    operation_icon,
)
from vqgrid.preview.summary import (
    confirmation_message,
    has_actions,
    summary_text,
)
from vqgrid.utils.aio import run_action
from vqgrid.utils.plugins import safe_hook_call
from vqgrid.utils.sql_formatter import sql_code_block
from vqgrid.utils.widgets import (
    clear_children,
    ensure_layout,
    ensure_widget_id,
)

if TYPE_CHECKING:
    from vqgrid.context import GridContext
    from vqgrid.grid.instance import GridInstance
    from vqgrid.grid.widget import GridWidget

logger = logging.getLogger(__name__)
VERBOSE = 1

DETAIL_VISIBLE_ROWS = 8
HEADER_HEIGHT = 30


@define
class PreviewView:
    """The widgets a preview was laid out with.

    Attributes:
        container: The widget the preview was rendered into.
        descriptor: The change being previewed.
        rows: The rows of the preview grid.
        grid_id: The identifier of the preview grid, if one was created.
        summary: The label that describes the change.
        apply_button: Applies the change; None when there is nothing to
            apply.
        cancel_button: Discards the change; None when there is nothing to
            apply.
        floating: The copy and refresh buttons, if any.
        warnings: One label per warning of the change.
    """

    container: QWidget
    descriptor: OperationDescriptor
    rows: List[Dict[str, Any]] = field(factory=list)
    grid_id: Optional[str] = None
    summary: Optional[QLabel] = None
    apply_button: Optional[QPushButton] = None
    cancel_button: Optional[QPushButton] = None
    floating: Optional[FloatingButtons] = None
    warnings: List[QLabel] = field(factory=list)


def details_key(index: int) -> str:
    """The key of the detail panel of a nested statement."""
    return f"details-{index}"


def scroll_into_view(widget: QWidget):
    """Scroll the nearest scroll area so that the widget is visible."""
    parent = widget.parentWidget()
    while parent is not None:
        if isinstance(parent, QScrollArea):
            parent.ensureWidgetVisible(widget)
            return
        parent = parent.parentWidget()


class PreviewRenderer(GridUseContext):
    """Lays out the preview of a pending change.

    From top to bottom the preview shows the statements that will run, the
    preview grid, the warnings, a summary and the buttons that apply or
    discard the change. In a multi-statement preview, clicking the details
    cell of a statement opens its own grid right below it.

    Attributes:
        builder: Builds the rows of the preview grids.
    """

    builder: PreviewRowBuilder
    _expandable: Dict[str, Tuple[OperationDescriptor, PreviewRenderContext]]

    def __init__(
        self,
        ctx: "GridContext",
        builder: Optional[PreviewRowBuilder] = None,
    ):
        self.ctx = ctx
        self.builder = builder or PreviewRowBuilder()
        self._expandable = {}
        ctx.registry.widget_hooks.append(self._wire_widget)

    def render_preview(
        self,
        descriptor: Union[OperationDescriptor, Mapping[str, Any]],
        context: PreviewRenderContext,
    ) -> PreviewView:
        """Render the preview of a change into the container of the context.

        Args:
            descriptor: The change, or the planner output it is built from.
            context: Where to render and what to call on apply or cancel.

        Returns:
            The widgets of the preview.
        """
        op = OperationDescriptor.from_dict(descriptor)
        container = context.container
        self.ctx.registry.cleanup_container(container)
        clear_children(container)
        self._forget_stale()

        container_id = ensure_widget_id(container, "vqgrid-preview")
        layout = ensure_layout(container)
        view = PreviewView(container=container, descriptor=op)

        self._add_statements(op, context)
        self._add_grid(op, context, view)
        for warning in op.warnings:
            label = QLabel(f"⚠️ {warning}", container)
            label.setObjectName("vqgrid-warning")
            label.setWordWrap(True)
            layout.addWidget(label)
            view.warnings.append(label)

        view.summary = QLabel(summary_text(op, self.t), container)
        view.summary.setObjectName(f"vqgrid-summary-{op.kind}")
        view.summary.setWordWrap(True)
        layout.addWidget(view.summary)

        if has_actions(op, self.builder.column_filter):
            self._add_actions(op, context, view)

        if view.rows or context.on_refresh is not None:
            view.floating = FloatingButtons(self.ctx, container)
            if view.rows:
                view.floating.add_copy_button(view.rows)
            if context.on_refresh is not None:
                view.floating.add_refresh_button(context.on_refresh)
                self.ctx.broadcaster.register(container_id, context.on_refresh)
            layout.insertWidget(0, view.floating)

        logger.log(
            VERBOSE,
            "Preview of %s on %s rendered with %d rows",
            op.kind,
            op.table,
            len(view.rows),
        )
        safe_hook_call(
            vqgrid_pm.hook.preview_rendered,
            context=self.ctx,
            descriptor=op,
            container=container,
        )
        return view

    def _add_statements(
        self, op: OperationDescriptor, context: PreviewRenderContext
    ):
        statements = op.statements()
        if not statements:
            return
        container = context.container
        section = QWidget(container)
        section.setObjectName("vqgrid-sql")
        ly = QVBoxLayout(section)
        ly.setContentsMargins(0, 0, 0, 0)
        for index, statement in enumerate(statements):
            if len(statements) > 1:
                label = QLabel(
                    self.t(
                        "preview.statement",
                        "Statement {n}:",
                        n=index + 1,
                    ),
                    section,
                )
                label.setObjectName("vqgrid-sql-label")
                ly.addWidget(label)
            code = QWidget(section)
            code.setObjectName("vqgrid-sql-code")
            ly.addWidget(code)
            try:
                self.ctx.host.render_markdown(
                    code,
                    sql_code_block(statement.sql),
                    context.source_path,
                    container,
                )
            except Exception as e:
                logger.error(
                    "Failed to render statement %d: %s",
                    index + 1,
                    e,
                    exc_info=True,
                )
        ensure_layout(container).addWidget(section)

    def _add_grid(
        self,
        op: OperationDescriptor,
        context: PreviewRenderContext,
        view: PreviewView,
    ):
        container = context.container
        try:
            view.rows = self.builder.build(op)
            if not view.rows:
                return
            grid_host = QWidget(container)
            grid_host.setObjectName("vqgrid-preview-grid")
            ensure_layout(container).addWidget(grid_host)
            view.grid_id = self.ctx.grid_renderer.render(
                self._sub_context(context, view.rows, grid_host),
                buttons=False,
            )
        except Exception as e:
            logger.error("Preview rendering failed: %s", e, exc_info=True)
            error_label(
                container,
                self.t(
                    "preview.render.failed",
                    "Preview rendering failed: {error}",
                    error=str(e),
                ),
            )
            return

        if op.kind == OperationKind.MULTI and view.grid_id is not None:
            self._expandable[view.grid_id] = (op, context)
            instance = self.ctx.registry.get(view.grid_id)
            if instance is not None:
                self._wire_widget(view.grid_id, instance)

    def _sub_context(
        self,
        context: PreviewRenderContext,
        rows: List[Dict[str, Any]],
        container: QWidget,
    ) -> RenderContext:
        # The refresh belongs to the preview container, not its grids.
        return RenderContext(
            rows=rows,
            container=container,
            parsed=ParsedQuery(""),
            open_document=context.open_document,
            settings=context.settings,
            source_path=context.source_path,
        )

    def _add_actions(
        self,
        op: OperationDescriptor,
        context: PreviewRenderContext,
        view: PreviewView,
    ):
        container = context.container
        buttons = QWidget(container)
        buttons.setObjectName("vqgrid-preview-buttons")
        ly = QHBoxLayout(buttons)
        ly.setContentsMargins(0, 0, 0, 0)

        view.apply_button = QPushButton(
            self.t("preview.apply", "Apply changes"), buttons
        )
        view.apply_button.setDefault(True)
        view.apply_button.clicked.connect(
            lambda: self.apply(op, context, view)
        )
        view.cancel_button = QPushButton(
            self.t("preview.cancel", "Cancel"), buttons
        )
        view.cancel_button.clicked.connect(lambda: self.cancel(context))

        ly.addWidget(view.apply_button)
        ly.addWidget(view.cancel_button)
        ly.addStretch(1)
        ensure_layout(container).addWidget(buttons)

    def apply(
        self,
        op: OperationDescriptor,
        context: PreviewRenderContext,
        view: PreviewView,
    ) -> bool:
        """Ask for confirmation, then apply the change.

        Returns:
            True if the user confirmed.
        """
        if not self.ctx.host.confirm(confirmation_message(op, self.t)):
            logger.log(VERBOSE, "Apply of %s declined", op.kind)
            return False

        scroll_into_view(context.container)
        if context.on_apply is None:
            return True

        button = view.apply_button
        if button is not None:
            button.setEnabled(False)

        def done(error: Optional[BaseException]):
            if button is None or sip.isdeleted(button):
                if error is not None:
                    logger.error("Apply failed: %s", error)
                return
            button.setEnabled(True)
            if error is not None:
                logger.error(
                    "Apply failed: %s",
                    error,
                    exc_info=(type(error), error, error.__traceback__),
                )
                self._flash_failure(button)

        run_action(context.on_apply, done)
        return True

    def cancel(self, context: PreviewRenderContext):
        if context.on_cancel is None:
            return

        def done(error: Optional[BaseException]):
            if error is not None:
                logger.error(
                    "Cancel failed: %s",
                    error,
                    exc_info=(type(error), error, error.__traceback__),
                )

        run_action(context.on_cancel, done)

    def _flash_failure(self, button: QPushButton):
        label = button.text()
        button.setText(f"{FAILURE_GLYPH} {label}")

        def revert():
            if not sip.isdeleted(button):
                button.setText(label)

        self.ctx.scheduler.call_later(self.ctx.stg.revert_delay_ms, revert)

    # Multi-statement expansion.

    def _forget_stale(self):
        for grid_id in list(self._expandable.keys()):
            if grid_id not in self.ctx.registry:
                del self._expandable[grid_id]

    def _wire_widget(self, instance_id: str, instance: "GridInstance"):
        if instance_id not in self._expandable:
            return
        instance.widget.subscribe(
            EVENT_CLICK,
            lambda event: self._on_grid_click(instance_id, event),
        )

    def _on_grid_click(self, grid_id: str, event: GridClickEvent):
        entry = self._expandable.get(grid_id)
        if entry is None or event.column is None:
            return
        if event.column.field != MULTI_DETAILS:
            return
        op, _context = entry

        index = event.row
        if index is None and event.item is not None:
            index = event.item.get(MULTI_INDEX)
        if index is None or not 0 <= index < len(op.nested):
            return
        event.handled = True
        self.toggle_details(grid_id, index)

    def toggle_details(self, grid_id: str, index: int) -> bool:
        """Open or close the details of a statement of a multi preview.

        Opening the details of a statement closes any other open details.

        Returns:
            True if the details are open after the call.
        """
        entry = self._expandable.get(grid_id)
        instance = self.ctx.registry.get(grid_id)
        if entry is None or instance is None:
            return False
        op, context = entry
        if not 0 <= index < len(op.nested):
            return False

        widget = instance.widget
        key = details_key(index)
        if key in widget.panel_keys():
            self._close_panel(widget, key)
            return False

        for other in widget.panel_keys():
            self._close_panel(widget, other)

        panel = self._build_details(op.nested[index], context)
        widget.insert_panel(index, key, panel)
        return True

    def _close_panel(self, widget: "GridWidget", key: str):
        panel = widget.get_panel(key)
        if panel is not None and not sip.isdeleted(panel):
            self.ctx.registry.cleanup_container(panel)
        widget.remove_panel(key)

    def _build_details(
        self, nested: OperationDescriptor, context: PreviewRenderContext
    ) -> QWidget:
        panel = QWidget()
        panel.setObjectName("vqgrid-details")
        ly = QVBoxLayout(panel)
        ly.setContentsMargins(8, 4, 8, 4)

        title = QLabel(
            f"{operation_icon(nested.kind)} <strong>"
            + self.t(
                "preview.details.title",
                "{kind} Details - {table} table",
                kind=nested.kind.upper(),
                table=nested.table,
            )
            + "</strong>",
            panel,
        )
        title.setTextFormat(Qt.TextFormat.RichText)
        ly.addWidget(title)

        rows = self.builder.build_detail(nested)
        if not rows:
            empty = QLabel(
                self.t("preview.details.empty", "No detailed changes to show"),
                panel,
            )
            empty.setObjectName("vqgrid-empty")
            ly.addWidget(empty)
            return panel

        sub = QWidget(panel)
        sub.setObjectName("vqgrid-subgrid")
        row_height = (context.settings or self.ctx.stg).row_height
        sub.setMinimumHeight(
            min(len(rows), DETAIL_VISIBLE_ROWS) * row_height + HEADER_HEIGHT
        )
        ly.addWidget(sub)
        self.ctx.grid_renderer.render(
            self._sub_context(context, rows, sub), buttons=False
        )
        return panel
