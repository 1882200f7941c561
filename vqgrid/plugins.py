import logging
from typing import TYPE_CHECKING

from pluggy import HookimplMarker, HookspecMarker, PluginManager

if TYPE_CHECKING:
    from PyQt5.QtWidgets import QWidget

    from vqgrid.context import GridContext
    from vqgrid.grid.instance import GridInstance
    from vqgrid.preview.models import OperationDescriptor


hook_spec = HookspecMarker("vqgrid")
hook_impl = HookimplMarker("vqgrid")

logger = logging.getLogger(__name__)


class GridHooks:
    """Hooks related to the grid context and the grids it renders."""

    @hook_spec
    def context_created(self, context: "GridContext") -> None:
        """Called when a context is created."""
        raise NotImplementedError

    @hook_spec
    def grid_created(
        self,
        context: "GridContext",
        instance_id: str,
        instance: "GridInstance",
    ) -> None:
        """Called after a grid was rendered into a container for the first
        time. Recreated grids do not trigger this hook.
        """
        raise NotImplementedError

    @hook_spec
    def preview_rendered(
        self,
        context: "GridContext",
        descriptor: "OperationDescriptor",
        container: "QWidget",
    ) -> None:
        """Called after a change preview was laid out in its container."""
        raise NotImplementedError


# The PluginManager for the vqgrid project.
vqgrid_pm = PluginManager("vqgrid")
vqgrid_pm.add_hookspecs(GridHooks)

# To have your plugin automatically loaded, add an entry point to your
# pyproject.toml file.
#
# [project.entry-points.vqgrid]
# audit = audit_plugin.plugin:AuditPlugin
#
vqgrid_pm.load_setuptools_entrypoints("vqgrid")
