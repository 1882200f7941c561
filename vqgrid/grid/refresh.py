import asyncio
import logging
from typing import TYPE_CHECKING, AbstractSet, Dict, Iterable, List, Optional

from vqgrid.utils.aio import MaybeAsync, settle
from vqgrid.utils.widgets import find_widget_by_id, is_attached

if TYPE_CHECKING:
    from vqgrid.grid.registry import InstanceRegistry
    from vqgrid.grid.render_context import RenderContext

logger = logging.getLogger(__name__)
VERBOSE = 1


def can_skip_refresh(
    context: "RenderContext", changed_paths: Optional[AbstractSet[str]]
) -> bool:
    """Whether refreshing a grid would reproduce the results it shows.

    Only grids whose query filters by the document they are embedded in can
    be skipped, and only when that document is not among the changed ones.
    """
    if changed_paths is None:
        return False
    if not context.filters_current_document or not context.source_path:
        return False
    return context.source_path not in changed_paths


class RefreshBroadcaster:
    """Re-runs the queries behind the live grids.

    Besides the grids in the registry, containers that show no grid (for
    example because the query returned nothing) may register a callback
    under the object name of the container.

    Attributes:
        registry: The registry that owns the grids.
    """

    registry: "InstanceRegistry"
    _callbacks: Dict[str, MaybeAsync]

    def __init__(self, registry: "InstanceRegistry"):
        self.registry = registry
        self._callbacks = {}

    def register(self, container_id: str, callback: MaybeAsync):
        """Register the refresh callback of a container."""
        self._callbacks[container_id] = callback

    def discard(self, container_id: str):
        """Forget the callback of a container, leaving its grids alone."""
        self._callbacks.pop(container_id, None)

    def unregister(self, container_id: str):
        """Forget the callback of a container and destroy its grids."""
        self._callbacks.pop(container_id, None)
        container = find_widget_by_id(container_id)
        if container is not None:
            self.registry.cleanup_container(container)

    def callback_ids(self) -> List[str]:
        return list(self._callbacks.keys())

    def clear(self):
        self._callbacks.clear()

    def collect(
        self, changed_paths: Optional[Iterable[str]] = None
    ) -> List[MaybeAsync]:
        """The refresh actions to run, pruning stale registrations."""
        hint = set(changed_paths) if changed_paths is not None else None
        actions: List[MaybeAsync] = []

        for instance_id, instance in self.registry.snapshot():
            context = instance.context
            if context is None or context.on_refresh is None:
                continue
            if can_skip_refresh(context, hint):
                logger.log(VERBOSE, "Refresh of grid %s skipped", instance_id)
                continue
            actions.append(context.on_refresh)

        for container_id, callback in list(self._callbacks.items()):
            if is_attached(find_widget_by_id(container_id)):
                actions.append(callback)
            else:
                logger.log(
                    VERBOSE, "Dropping refresh callback of %s", container_id
                )
                del self._callbacks[container_id]
        return actions

    async def refresh_all(
        self, changed_paths: Optional[Iterable[str]] = None
    ) -> int:
        """Run every refresh action concurrently and wait for all of them.

        A failing action is logged and does not affect the others.

        Args:
            changed_paths: Paths of the documents that changed. When given,
                grids that only depend on an unchanged document are skipped.

        Returns:
            The number of actions that failed.
        """
        actions = self.collect(changed_paths)
        if not actions:
            return 0
        results = await asyncio.gather(
            *(settle(action) for action in actions), return_exceptions=True
        )
        failed = 0
        for result in results:
            if isinstance(result, BaseException):
                failed += 1
                logger.error(
                    "Refresh failed: %s",
                    result,
                    exc_info=(type(result), result, result.__traceback__),
                )
        return failed
