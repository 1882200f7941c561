"""Keeps grids painted while the host scrolls, hides and re-mounts them.

Qt item views only paint what is visible. When the host hides the surface
a grid lives in, or scrolls it out of view and back, the grid may come back
with stale or missing rows. Worse, the host may delete the view under the
registry's feet. The reconciler watches each mount and, when it becomes
visible again, redraws the grid in two passes, recreating it if the redraw
fails.
"""

import logging
from typing import TYPE_CHECKING, Callable, List, Optional

from PyQt5 import sip
from PyQt5.QtCore import QEvent, QObject, QPoint, QRect, pyqtSignal
from PyQt5.QtWidgets import QAbstractScrollArea, QWidget

from vqgrid.grid.instance import InstanceState
from vqgrid.local_settings import ROOT_MARGIN, SETTLE_DELAY_MS

if TYPE_CHECKING:
    from vqgrid.grid.registry import InstanceRegistry
    from vqgrid.grid.widget import GridWidget
    from vqgrid.local_settings import GridSettings
    from vqgrid.scheduler import FrameScheduler, ScheduledTask

logger = logging.getLogger(__name__)
VERBOSE = 1

_WATCHED_EVENTS = (
    QEvent.Type.Show,
    QEvent.Type.Hide,
    QEvent.Type.Move,
    QEvent.Type.Resize,
    QEvent.Type.ParentChange,
)


def find_scroll_area(widget: QWidget) -> Optional[QAbstractScrollArea]:
    """The nearest scroll area that has the widget inside its viewport."""
    parent = widget.parentWidget()
    while parent is not None:
        if isinstance(parent, QAbstractScrollArea) and parent.viewport():
            if parent.viewport().isAncestorOf(widget):
                return parent
        parent = parent.parentWidget()
    return None


class VisibilityObserver(QObject):
    """Reports when a widget enters or leaves its viewport.

    The viewport is the one of the nearest scroll area, or the window when
    there is no scroll area, grown by `root_margin` pixels on every side.
    Only transitions are reported.

    Signals:
        visibilityChanged: emitted with the new state on every transition.
    """

    visibilityChanged = pyqtSignal(bool)

    target: QWidget
    root_margin: int
    intersecting: bool
    _scroll_area: Optional[QAbstractScrollArea]
    _watched: List[QObject]
    _connected: bool

    def __init__(
        self,
        target: QWidget,
        root_margin: int = ROOT_MARGIN,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.target = target
        self.root_margin = root_margin
        self._scroll_area = None
        self._watched = []
        self._connected = False
        self.intersecting = False

    def observe(self):
        """Start watching. The initial state is recorded, not reported."""
        if self._connected:
            return
        self._connected = True
        self._watch_tree()
        self.intersecting = self.compute_intersecting()

    def _watch_tree(self):
        self._unwatch()
        self._watch(self.target)
        self._scroll_area = find_scroll_area(self.target)
        if self._scroll_area is not None:
            self._watch(self._scroll_area.viewport())
            for bar in (
                self._scroll_area.verticalScrollBar(),
                self._scroll_area.horizontalScrollBar(),
            ):
                bar.valueChanged.connect(self._on_scrolled)
        window = self.target.window()
        if window is not None and window is not self.target:
            self._watch(window)

    def _watch(self, obj: QObject):
        obj.installEventFilter(self)
        self._watched.append(obj)

    def _unwatch(self):
        for obj in self._watched:
            if not sip.isdeleted(obj):
                obj.removeEventFilter(self)
        self._watched = []
        area = self._scroll_area
        if area is not None and not sip.isdeleted(area):
            for bar in (area.verticalScrollBar(), area.horizontalScrollBar()):
                try:
                    bar.valueChanged.disconnect(self._on_scrolled)
                except TypeError:
                    # Not connected.
                    pass
        self._scroll_area = None

    def unobserve(self):
        """Stop watching."""
        if not self._connected:
            return
        self._connected = False
        self._unwatch()

    @property
    def connected(self) -> bool:
        return self._connected

    def compute_intersecting(self) -> bool:
        """Whether the target overlaps the grown viewport right now."""
        target = self.target
        if sip.isdeleted(target) or not target.isVisible():
            return False

        m = self.root_margin
        area = self._scroll_area
        if area is not None and not sip.isdeleted(area):
            viewport = area.viewport()
            root = viewport.rect().adjusted(-m, -m, m, m)
            rect = QRect(target.mapTo(viewport, QPoint(0, 0)), target.size())
        else:
            window = target.window()
            root = window.rect().adjusted(-m, -m, m, m)
            rect = QRect(target.mapTo(window, QPoint(0, 0)), target.size())

        if rect.isEmpty():
            # A collapsed widget still counts when it sits inside the root.
            return root.contains(rect.topLeft())
        return root.intersects(rect)

    def check(self):
        """Re-evaluate the state, reporting a transition if there was one."""
        if not self._connected:
            return
        now = self.compute_intersecting()
        if now == self.intersecting:
            return
        self.intersecting = now
        self.visibilityChanged.emit(now)

    def _on_scrolled(self, _value: int):
        self.check()

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        if self._connected and event.type() in _WATCHED_EVENTS:
            if (
                event.type() == QEvent.Type.ParentChange
                and obj is self.target
            ):
                self._watch_tree()
            self.check()
        return False


class VisibilityReconciler:
    """Redraws grids that come back into view and recreates broken ones.

    Attributes:
        registry: The registry that owns the grids.
        scheduler: Provides the frame boundaries and delays.
        settings: Source of the root margin and the settle delay.
    """

    registry: "InstanceRegistry"
    scheduler: "FrameScheduler"
    settings: Optional["GridSettings"]
    observer_factory: Callable[..., VisibilityObserver]

    def __init__(
        self,
        registry: "InstanceRegistry",
        scheduler: "FrameScheduler",
        settings: Optional["GridSettings"] = None,
    ):
        self.registry = registry
        self.scheduler = scheduler
        self.settings = settings
        self.observer_factory = VisibilityObserver

    @property
    def root_margin(self) -> int:
        return self.settings.root_margin if self.settings else ROOT_MARGIN

    @property
    def settle_delay_ms(self) -> int:
        if self.settings is None:
            return SETTLE_DELAY_MS
        return self.settings.settle_delay_ms

    def attach(self, instance_id: str) -> Optional[VisibilityObserver]:
        """Start watching the mount of a grid."""
        instance = self.registry.get(instance_id)
        if instance is None:
            return None
        if instance.observer is not None:
            instance.observer.unobserve()

        observer = self.observer_factory(instance.mount, self.root_margin)
        observer.visibilityChanged.connect(
            lambda visible: self.on_visibility_changed(instance_id, visible)
        )
        observer.observe()
        instance.observer = observer
        return observer

    def on_visibility_changed(self, instance_id: str, visible: bool):
        """React to the mount of a grid entering or leaving the viewport."""
        instance = self.registry.get(instance_id)
        if instance is None or instance.is_destroyed:
            return
        if not visible:
            if instance.state == InstanceState.MOUNTED:
                instance.state = InstanceState.HIDDEN
            return
        if instance.state == InstanceState.HIDDEN:
            instance.state = InstanceState.MOUNTED
        logger.log(VERBOSE, "Grid %s is visible again", instance_id)
        self.schedule_rerender(instance_id)

    def schedule_rerender(self, instance_id: str) -> Optional["ScheduledTask"]:
        """Redraw a grid over the next two frames.

        The first pass redraws the rows that are painted; the second pass
        invalidates all rows. Sequences started by separate calls are not
        merged.
        """
        instance = self.registry.get(instance_id)
        if instance is None or instance.is_destroyed:
            return None
        widget = instance.widget
        return self.scheduler.request_frame(
            lambda: self._first_pass(instance_id, widget)
        )

    def _first_pass(self, instance_id: str, widget: "GridWidget"):
        if not self.registry.owns(instance_id, widget):
            return
        try:
            widget.resize_canvas()
            widget.invalidate()
            widget.render()
        except Exception as e:
            logger.log(
                VERBOSE, "Grid %s failed to redraw (%s)", instance_id, e
            )
            self.recreate(instance_id)
            return
        self.scheduler.request_frame(
            lambda: self._second_pass(instance_id, widget)
        )

    def _second_pass(self, instance_id: str, widget: "GridWidget"):
        if not self.registry.owns(instance_id, widget):
            return
        try:
            widget.invalidate_all_rows()
            widget.render()
        except Exception as e:
            logger.log(
                VERBOSE, "Grid %s failed to redraw (%s)", instance_id, e
            )
            self.recreate(instance_id)

    def recreate(self, instance_id: str) -> bool:
        """Rebuild the widget of a grid from its stored data.

        Calls made while the grid is already being recreated, or after it
        was destroyed, do nothing. A grid whose mount left the widget tree
        is destroyed instead.

        Returns:
            True if a new widget was built.
        """
        instance = self.registry.get(instance_id)
        if instance is None or instance.state in (
            InstanceState.RECREATING,
            InstanceState.DESTROYED,
        ):
            return False
        if instance.is_detached:
            self.registry.destroy(instance_id)
            return False

        previous = instance.state
        instance.state = InstanceState.RECREATING
        try:
            widget = self.registry.rebuild_widget(instance_id)
        except Exception as e:
            logger.warning(
                "Failed to recreate grid %s: %s", instance_id, e, exc_info=True
            )
            return False
        finally:
            if instance.state == InstanceState.RECREATING:
                instance.state = previous

        logger.debug("Grid %s recreated", instance_id)
        self.scheduler.call_later(
            self.settle_delay_ms, lambda: self._settle(instance_id, widget)
        )
        return True

    def _settle(self, instance_id: str, widget: "GridWidget"):
        instance = self.registry.get(instance_id)
        if instance is None or not self.registry.owns(instance_id, widget):
            return
        try:
            widget.set_columns(instance.columns)
            widget.resize_canvas()
            widget.invalidate_all_rows()
            widget.render()
        except Exception as e:
            logger.warning(
                "Failed to settle recreated grid %s: %s",
                instance_id,
                e,
                exc_info=True,
            )

    def check_and_restore(self) -> int:
        """Sweep the registry after the host changed its layout.

        Grids whose mount left the widget tree are destroyed. Grids that
        lost their view while holding rows are recreated.

        Returns:
            The number of grids recreated.
        """
        restored = 0
        for instance_id, instance in self.registry.snapshot():
            if instance.is_detached:
                self.registry.destroy(instance_id)
                continue
            if instance.is_hollow and instance.rows:
                if self.recreate(instance_id):
                    restored += 1
        return restored
