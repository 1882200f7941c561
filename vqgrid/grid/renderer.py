import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from PyQt5.QtWidgets import QLabel, QWidget

from vqgrid.context_use import GridUseContext
from vqgrid.controls.floating_buttons import FloatingButtons
from vqgrid.errors import GridDestroyedError
from vqgrid.grid.columns import (
    ROLE_PATH,
    GridOptions,
    build_columns,
    has_markdown_content,
    prepare_data,
)
from vqgrid.grid.widget import (
    EVENT_CLICK,
    EVENT_COLUMNS_RESIZED,
    GridClickEvent,
)
from vqgrid.plugins import vqgrid_pm
from vqgrid.utils.fingerprint import query_fingerprint
from vqgrid.utils.plugins import safe_hook_call
from vqgrid.utils.widgets import (
    clear_children,
    ensure_layout,
    ensure_widget_id,
)

if TYPE_CHECKING:
    from vqgrid.context import GridContext
    from vqgrid.grid.instance import GridInstance
    from vqgrid.grid.render_context import RenderContext
    from vqgrid.grid.widget import GridWidget
    from vqgrid.local_settings import GridSettings

logger = logging.getLogger(__name__)
VERBOSE = 1

ERROR_STYLE = "color: #d9534f; padding: 4px;"


def error_label(parent: QWidget, text: str) -> QLabel:
    """Create the label that reports a failure in place of a grid."""
    label = QLabel(text, parent)
    label.setObjectName("vqgrid-error")
    label.setWordWrap(True)
    label.setStyleSheet(ERROR_STYLE)
    ensure_layout(parent).addWidget(label)
    return label


class GridRenderer(GridUseContext):
    """Renders query results as grids.

    Every widget bound to an instance, including recreated ones, gets its
    click and column-resize events wired here.
    """

    def __init__(self, ctx: "GridContext"):
        self.ctx = ctx
        ctx.registry.widget_hooks.append(self._wire_widget)

    def render(
        self, context: "RenderContext", buttons: bool = True
    ) -> Optional[str]:
        """Render the results of a query into a container.

        Whatever the container showed before is removed first. Empty results
        are reported with a label; if the context can refresh, the refresh
        is registered under the container so that a later refresh can fill
        it.

        Args:
            context: The render request.
            buttons: Whether to show the copy and refresh buttons above the
                grid.

        Returns:
            The identifier of the new grid, or None if no grid was created.
        """
        container = context.container
        self.ctx.registry.cleanup_container(container)
        clear_children(container)

        rows = list(context.rows or [])
        if not rows:
            self._render_empty(context)
            return None

        # A refresh registered while the container was empty is superseded
        # by the one the grid carries.
        if container.objectName():
            self.ctx.broadcaster.discard(container.objectName())

        if buttons:
            floating = FloatingButtons(self.ctx, container)
            floating.add_copy_button(rows)
            if context.on_refresh is not None:
                floating.add_refresh_button(context.on_refresh)
            ensure_layout(container).addWidget(floating)

        settings = self._settings_for(context)
        query_hash = (
            query_fingerprint(context.parsed.query)
            if context.parsed is not None and context.parsed.query
            else None
        )
        try:
            markdown = settings.markdown_rendering and "content" in rows[0]
            columns = build_columns(
                rows[0],
                markdown=markdown,
                query_hash=query_hash,
                width_cache=self.ctx.width_cache,
            )
            options = GridOptions(
                row_height=(
                    settings.markdown_row_height
                    if has_markdown_content(columns)
                    else settings.row_height
                ),
                markdown=markdown,
            )
            instance_id = self.ctx.registry.create(
                container,
                prepare_data(rows),
                columns,
                options,
                context=context,
                query_hash=query_hash,
            )
        except Exception as e:
            logger.error("Grid rendering failed: %s", e, exc_info=True)
            error_label(
                container,
                self.t(
                    "grid.render.failed",
                    "Grid rendering failed: {error}",
                    error=str(e),
                ),
            )
            return None

        self.ctx.reconciler.attach(instance_id)
        self.ctx.reconciler.schedule_rerender(instance_id)

        instance = self.ctx.registry.get(instance_id)
        safe_hook_call(
            vqgrid_pm.hook.grid_created,
            context=self.ctx,
            instance_id=instance_id,
            instance=instance,
        )
        return instance_id

    def _render_empty(self, context: "RenderContext"):
        container = context.container
        label = QLabel(
            self.t("grid.empty", "No results found"),
            container,
        )
        label.setObjectName("vqgrid-empty")
        ensure_layout(container).addWidget(label)

        if context.on_refresh is not None:
            container_id = ensure_widget_id(container, "vq-empty")
            self.ctx.broadcaster.register(container_id, context.on_refresh)

    def _settings_for(self, context: "RenderContext") -> "GridSettings":
        if context.settings is not None:
            return context.settings
        return self.ctx.stg

    def refresh_grid(
        self, instance_id: str, rows: Optional[Sequence[Mapping[str, Any]]]
    ) -> bool:
        """Show new rows in an existing grid.

        The rows are swapped in right away; the redraw happens on the next
        frame. A grid whose view was deleted by the host is recreated from
        the new rows instead.

        Returns:
            True if the grid exists and rows were given.
        """
        instance = self.ctx.registry.get(instance_id)
        if instance is None or rows is None:
            return False

        instance.rows = prepare_data(rows)
        widget = instance.widget
        try:
            widget.set_data(instance.rows)
        except GridDestroyedError as e:
            logger.log(VERBOSE, "Grid %s lost its view (%s)", instance_id, e)
            self.ctx.reconciler.recreate(instance_id)
            return True

        def redraw():
            if not self.ctx.registry.owns(instance_id, widget):
                return
            widget.invalidate_all_rows()
            widget.update_row_count()
            widget.render()

        self.ctx.scheduler.request_frame(redraw)
        return True

    def _wire_widget(self, instance_id: str, instance: "GridInstance"):
        widget = instance.widget
        widget.subscribe(
            EVENT_COLUMNS_RESIZED,
            lambda columns: self._on_columns_resized(
                instance_id, widget, columns
            ),
        )
        widget.subscribe(
            EVENT_CLICK,
            lambda event: self._on_click(instance_id, event),
        )

    def _on_columns_resized(
        self, instance_id: str, widget: "GridWidget", columns
    ):
        if not self.ctx.registry.owns(instance_id, widget):
            return
        instance = self.ctx.registry.get(instance_id)
        # Recreation rebuilds from these, so they carry the user's widths.
        instance.columns = list(columns)
        if instance.query_hash:
            self.ctx.width_cache.save(instance.query_hash, columns)

    def _on_click(self, instance_id: str, event: GridClickEvent):
        if event.column is None or event.item is None:
            return
        if event.column.role != ROLE_PATH:
            return
        path = event.item.get(event.column.field)
        if not path:
            return

        instance = self.ctx.registry.get(instance_id)
        context = instance.context if instance is not None else None
        opener = (
            context.open_document
            if context is not None and context.open_document is not None
            else self.ctx.host.open_document
        )
        logger.log(VERBOSE, "Opening %s from grid %s", path, instance_id)
        event.handled = True
        try:
            opener(str(path))
        except Exception as e:
            logger.error("Failed to open %s: %s", path, e, exc_info=True)
