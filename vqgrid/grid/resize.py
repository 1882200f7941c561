import logging
from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from vqgrid.grid.registry import InstanceRegistry
    from vqgrid.grid.widget import GridWidget
    from vqgrid.scheduler import FrameScheduler, ScheduledTask

logger = logging.getLogger(__name__)


class ResizeDebouncer:
    """Coalesces resize requests so that each grid resizes at most once per
    frame.

    Attributes:
        registry: The registry that owns the grids.
        scheduler: Provides the frame boundaries.
    """

    registry: "InstanceRegistry"
    scheduler: "FrameScheduler"
    _pending: Dict[str, "ScheduledTask"]

    def __init__(
        self, registry: "InstanceRegistry", scheduler: "FrameScheduler"
    ):
        self.registry = registry
        self.scheduler = scheduler
        self._pending = {}

    def request_resize(self, instance_id: Optional[str] = None):
        """Resize a grid on the next frame, or every grid if none is given.

        A resize still pending for the same grid is cancelled first.
        """
        if instance_id is not None:
            if instance_id in self.registry:
                self._schedule(instance_id)
            return
        for an_id in self.registry.ids():
            self._schedule(an_id)

    def _schedule(self, instance_id: str):
        self.cancel(instance_id)
        instance = self.registry.get(instance_id)
        if instance is None:
            return
        widget = instance.widget
        self._pending[instance_id] = self.scheduler.request_frame(
            lambda: self._run(instance_id, widget)
        )

    def _run(self, instance_id: str, widget: "GridWidget"):
        self._pending.pop(instance_id, None)
        if not self.registry.owns(instance_id, widget):
            return
        try:
            widget.resize_canvas()
            widget.invalidate()
            widget.render()
        except Exception as e:
            logger.warning(
                "Error resizing grid %s: %s", instance_id, e, exc_info=True
            )

    def cancel(self, instance_id: str):
        task = self._pending.pop(instance_id, None)
        if task is not None:
            task.cancel()

    def cancel_all(self):
        for task in self._pending.values():
            task.cancel()
        self._pending.clear()

    def is_pending(self, instance_id: str) -> bool:
        return instance_id in self._pending

    def pending_count(self) -> int:
        return len(self._pending)
