import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from PyQt5 import sip
from PyQt5.QtWidgets import QWidget

from vqgrid.errors import GridConstructionError
from vqgrid.grid.columns import ColumnDef, GridOptions
from vqgrid.grid.instance import GridInstance, InstanceState
from vqgrid.grid.widget import EVENT_BEFORE_DESTROY, GridWidget
from vqgrid.utils.widgets import (
    clear_children,
    contains,
    ensure_layout,
    generate_unique_id,
)

if TYPE_CHECKING:
    from vqgrid.grid.render_context import RenderContext

logger = logging.getLogger(__name__)
VERBOSE = 1

WidgetFactory = Callable[
    [QWidget, Sequence[Mapping[str, Any]], Sequence[ColumnDef], GridOptions],
    GridWidget,
]
WidgetHook = Callable[[str, GridInstance], None]


class InstanceRegistry:
    """Owns every live grid.

    There is at most one grid per container: creating a grid in a
    container first destroys the grids already mounted anywhere inside it.

    Attributes:
        widget_factory: Builds the grid widgets. Tests replace it with
            doubles that honour the same contract.
        widget_hooks: Functions called with the identifier and the instance
            every time a widget is bound to an instance, both on creation
            and on recreation. They subscribe to the widget events.
    """

    widget_factory: WidgetFactory
    widget_hooks: List[WidgetHook]
    _instances: Dict[str, GridInstance]

    def __init__(self, widget_factory: Optional[WidgetFactory] = None):
        self.widget_factory = widget_factory or GridWidget
        self.widget_hooks = []
        self._instances = {}

    def create(
        self,
        container: QWidget,
        rows: Sequence[Mapping[str, Any]],
        columns: Sequence[ColumnDef],
        options: GridOptions,
        context: Optional["RenderContext"] = None,
        query_hash: Optional[str] = None,
    ) -> str:
        """Build a grid inside a container.

        Args:
            container: The widget to render into.
            rows: The rows to show.
            columns: The column definitions.
            options: The options of the grid.
            context: The render request, kept for refreshing.
            query_hash: Fingerprint of the query that produced the rows.

        Returns:
            The identifier of the new instance.

        Raises:
            GridConstructionError: The widget could not be built. Nothing is
                registered in that case.
        """
        self.cleanup_container(container)

        instance_id = generate_unique_id("vqgrid")
        mount = QWidget(container)
        mount.setObjectName(instance_id)
        ensure_layout(mount)
        ensure_layout(container).addWidget(mount)

        rows = list(rows)
        columns = list(columns)
        try:
            widget = self.widget_factory(mount, rows, columns, options)
        except Exception as e:
            mount.setParent(None)
            mount.deleteLater()
            raise GridConstructionError(str(e)) from e

        instance = GridInstance(
            widget=widget,
            mount=mount,
            container=container,
            rows=rows,
            columns=columns,
            options=options,
            context=context,
            query_hash=query_hash,
        )
        self._instances[instance_id] = instance
        self._bind(instance_id, instance)
        logger.log(
            VERBOSE,
            "Grid %s created with %d rows and %d columns",
            instance_id,
            len(rows),
            len(columns),
        )
        return instance_id

    def rebuild_widget(self, instance_id: str) -> GridWidget:
        """Replace the widget of an instance with a fresh one.

        The stale widget is torn down, the mount is emptied and a new
        widget is built from the stored rows, columns and options.

        Raises:
            KeyError: There is no such instance.
            GridConstructionError: The new widget could not be built.
        """
        instance = self._instances[instance_id]

        # The old widget announces its end; the entry must survive that.
        previous = instance.state
        instance.state = InstanceState.RECREATING
        try:
            self._teardown_widget(instance_id, instance)
        finally:
            instance.state = previous
        clear_children(instance.mount)
        try:
            widget = self.widget_factory(
                instance.mount,
                instance.rows,
                instance.columns,
                instance.options,
            )
        except Exception as e:
            raise GridConstructionError(str(e)) from e
        instance.widget = widget
        self._bind(instance_id, instance)
        return widget

    def _bind(self, instance_id: str, instance: GridInstance):
        widget = instance.widget
        widget.subscribe(
            EVENT_BEFORE_DESTROY,
            lambda _grid: self._on_widget_destroyed(instance_id, widget),
        )
        for hook in self.widget_hooks:
            try:
                hook(instance_id, instance)
            except Exception as e:
                logger.error(
                    "Error binding grid %s: %s", instance_id, e, exc_info=True
                )

    def _on_widget_destroyed(self, instance_id: str, widget: GridWidget):
        """Drop the entry of a widget that was destroyed from outside."""
        instance = self._instances.get(instance_id)
        if instance is None or instance.widget is not widget:
            return
        if instance.state in (
            InstanceState.RECREATING,
            InstanceState.DESTROYED,
        ):
            return
        logger.log(VERBOSE, "Grid %s destroyed by its widget", instance_id)
        self._disconnect_observer(instance_id, instance)
        instance.state = InstanceState.DESTROYED
        del self._instances[instance_id]

    def _disconnect_observer(self, instance_id: str, instance: GridInstance):
        if instance.observer is None:
            return
        try:
            instance.observer.unobserve()
        except Exception as e:
            logger.warning(
                "Error disconnecting the observer of grid %s: %s",
                instance_id,
                e,
                exc_info=True,
            )
        instance.observer = None

    def _teardown_widget(self, instance_id: str, instance: GridInstance):
        widget = instance.widget
        if widget is None or widget.is_destroyed:
            return
        try:
            widget.destroy()
        except Exception as e:
            logger.warning(
                "Error destroying grid %s: %s", instance_id, e, exc_info=True
            )

    def destroy(self, instance_id: str) -> bool:
        """Tear down a grid and forget it.

        Teardown errors are logged, never raised. Destroying an unknown or
        already destroyed instance does nothing.

        Returns:
            True if the instance existed.
        """
        instance = self._instances.get(instance_id)
        if instance is None:
            return False
        instance.state = InstanceState.DESTROYED
        self._disconnect_observer(instance_id, instance)
        self._teardown_widget(instance_id, instance)
        self._instances.pop(instance_id, None)

        mount = instance.mount
        if not sip.isdeleted(mount):
            mount.hide()
            mount.setParent(None)
            mount.deleteLater()
        logger.log(VERBOSE, "Grid %s destroyed", instance_id)
        return True

    def cleanup_container(self, container: QWidget) -> int:
        """Destroy the grids mounted anywhere inside a container.

        Returns:
            The number of grids destroyed.
        """
        destroyed = 0
        for instance_id, instance in self.snapshot():
            if instance.container is container or contains(
                container, instance.mount
            ):
                self.destroy(instance_id)
                destroyed += 1
        return destroyed

    def prune_detached(self) -> int:
        """Destroy the grids whose mount left the widget tree."""
        destroyed = 0
        for instance_id, instance in self.snapshot():
            if instance.is_detached:
                self.destroy(instance_id)
                destroyed += 1
        return destroyed

    def clear(self):
        """Destroy every grid."""
        for instance_id, _ in self.snapshot():
            self.destroy(instance_id)

    def get(self, instance_id: str) -> Optional[GridInstance]:
        return self._instances.get(instance_id)

    def count(self) -> int:
        return len(self._instances)

    def is_active(self, instance_id: Optional[str] = None) -> bool:
        """Whether a grid is live.

        Args:
            instance_id: The grid to ask about. When not provided, tells if
                there is any live grid at all.
        """
        if instance_id is None:
            return len(self._instances) > 0
        instance = self._instances.get(instance_id)
        return instance is not None and not instance.is_destroyed

    def owns(self, instance_id: str, widget: Optional[GridWidget]) -> bool:
        """Whether an instance is still registered and bound to a widget.

        Scheduled callbacks use this to find out if the grid they were
        scheduled for is still the one in the registry.
        """
        instance = self._instances.get(instance_id)
        return (
            instance is not None
            and instance.widget is widget
            and not instance.is_destroyed
        )

    def ids(self) -> List[str]:
        return list(self._instances.keys())

    def snapshot(self) -> List[Tuple[str, GridInstance]]:
        """A copy of the entries, safe to iterate while destroying."""
        return list(self._instances.items())

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._instances

    def __len__(self) -> int:
        return len(self._instances)
