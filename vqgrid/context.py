import copy
import logging
import logging.config
import os
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from attrs import define, field
from pyrsistent import thaw

from vqgrid.grid.refresh import RefreshBroadcaster
from vqgrid.grid.registry import InstanceRegistry
from vqgrid.grid.renderer import GridRenderer
from vqgrid.grid.resize import ResizeDebouncer
from vqgrid.grid.visibility import VisibilityReconciler
from vqgrid.grid.width_cache import ColumnWidthCache
from vqgrid.host import HostAdapter
from vqgrid.local_settings import GridSettings
from vqgrid.plugins import vqgrid_pm
from vqgrid.preview.renderer import PreviewRenderer, PreviewView
from vqgrid.scheduler import FrameScheduler
from vqgrid.utils.aio import MaybeAsync
from vqgrid.utils.plugins import safe_hook_call

if TYPE_CHECKING:
    from vqgrid.grid.render_context import PreviewRenderContext, RenderContext
    from vqgrid.preview.models import OperationDescriptor

logger = logging.getLogger(__name__)

# Default logging configuration
DEFAULT_LOGGING: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": (
                "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: "
                "%(message)s"
            ),
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "plain",
            "stream": "ext://sys.stdout",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "plain",
            "filename": "vqgrid.log",
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "encoding": "utf8",
        },
    },
    "loggers": {
        "vqgrid": {
            "handlers": ["console", "file"],
            "level": "INFO",
            "propagate": False,
        },
    },
}


@define
class GridContext:
    """Owns every grid and preview of an embedding application.

    The registries live here rather than at module level so that two hosts
    (or two tests) never share grids, widths or refresh callbacks. Any
    component left unset is created with its defaults.

    Attributes:
        stg: The read-only settings.
        host: The services of the embedding application.
        scheduler: Provides frame boundaries and delays.
        width_cache: Column widths the user chose, per query.
        registry: The live grids.
        reconciler: Redraws grids that come back into view.
        resizer: Coalesces resize requests.
        broadcaster: Re-runs the queries behind the grids.
        grid_renderer: Renders query results.
        preview_renderer: Renders the previews of pending changes.
    """

    stg: GridSettings = field(factory=GridSettings)
    host: HostAdapter = field(factory=HostAdapter)
    scheduler: Any = field(default=None)
    width_cache: ColumnWidthCache = field(factory=ColumnWidthCache)
    registry: InstanceRegistry = field(default=None)
    reconciler: VisibilityReconciler = field(default=None)
    resizer: ResizeDebouncer = field(default=None)
    broadcaster: RefreshBroadcaster = field(default=None)
    grid_renderer: GridRenderer = field(default=None, init=False)
    preview_renderer: PreviewRenderer = field(default=None, init=False)

    def __attrs_post_init__(self):
        if self.scheduler is None:
            self.scheduler = FrameScheduler()
        if self.registry is None:
            self.registry = InstanceRegistry()
        if self.reconciler is None:
            self.reconciler = VisibilityReconciler(
                self.registry, self.scheduler, self.stg
            )
        if self.resizer is None:
            self.resizer = ResizeDebouncer(self.registry, self.scheduler)
        if self.broadcaster is None:
            self.broadcaster = RefreshBroadcaster(self.registry)
        self.grid_renderer = GridRenderer(self)
        self.preview_renderer = PreviewRenderer(self)

        # An embedding host usually configures logging itself.
        if self.stg.get_setting("logging") is not None:
            self.setup_logging()

        # Inform plugins that the context has been created.
        safe_hook_call(vqgrid_pm.hook.context_created, context=self)

    def t(self, key: str, d: str, **kwargs: Any) -> str:
        """Translates a string using the context.

        The default implementation does not perform any translation. It simply
        formats the default string with the given arguments.

        Args:
            key: The translation key.
            d: The default string if translation is not found.
            **kwargs: Additional arguments for translation string.

        Returns:
            The translated string.
        """
        return d.format(**kwargs)

    def setup_logging(self):
        """Setup logging."""
        log_stg = self.stg.get_setting("logging")
        if log_stg is None:
            log_stg = copy.deepcopy(DEFAULT_LOGGING)
            log_stg["handlers"]["file"]["filename"] = os.path.join(
                os.path.dirname(self.stg.settings_file()), "vqgrid.log"
            )
            os.makedirs(
                os.path.dirname(log_stg["handlers"]["file"]["filename"]),
                exist_ok=True,
            )

        # Apply the configuration
        logging.config.dictConfig(thaw(log_stg))
        logger.debug("Logging has been setup")

    def render(self, context: "RenderContext") -> Optional[str]:
        """Render query results into the container of the context.

        Returns:
            The identifier of the new grid, or None if no grid was created.
        """
        return self.grid_renderer.render(context)

    def render_preview(
        self,
        descriptor: Union["OperationDescriptor", Mapping[str, Any]],
        context: "PreviewRenderContext",
    ) -> PreviewView:
        """Render the preview of a pending change."""
        return self.preview_renderer.render_preview(descriptor, context)

    def refresh_grid(
        self, instance_id: str, rows: Optional[Sequence[Mapping[str, Any]]]
    ) -> bool:
        """Show new rows in an existing grid."""
        return self.grid_renderer.refresh_grid(instance_id, rows)

    async def refresh_all(
        self, changed_paths: Optional[Iterable[str]] = None
    ) -> int:
        """Re-run the queries behind every live grid.

        Args:
            changed_paths: Paths of the documents that changed, if known.

        Returns:
            The number of refreshes that failed.
        """
        return await self.broadcaster.refresh_all(changed_paths)

    def resize(self, instance_id: Optional[str] = None):
        """Resize a grid, or every grid, on the next frame."""
        self.resizer.request_resize(instance_id)

    def register_refresh_callback(self, container_id: str, fn: MaybeAsync):
        self.broadcaster.register(container_id, fn)

    def unregister_refresh_callback(self, container_id: str):
        self.broadcaster.unregister(container_id)

    def check_and_restore(self) -> int:
        """Drop grids whose container is gone and rebuild hollow ones.

        Returns:
            The number of grids that were rebuilt.
        """
        return self.reconciler.check_and_restore()

    def cleanup(self):
        """Destroy every grid and forget every refresh callback."""
        self.resizer.cancel_all()
        count = self.registry.count()
        self.registry.clear()
        self.broadcaster.clear()
        logger.debug("Context cleaned up; %d grids destroyed", count)
