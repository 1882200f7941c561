import logging
import os
from typing import Any, Optional

import yaml
from appdirs import user_config_dir
from attrs import define, field
from pyrsistent import freeze, pmap
from pyrsistent.typing import PMap

logger = logging.getLogger(__name__)

ROW_HEIGHT = 32
MARKDOWN_ROW_HEIGHT = 150
SETTLE_DELAY_MS = 50
ROOT_MARGIN = 100
REVERT_DELAY_MS = 2000


@define
class GridSettings:
    """Read-only settings for the grids and previews.

    The settings are never written back; the grids keep no state beyond the
    lifetime of the process.

    Attributes:
        settings: The settings tree.
        path: Optional explicit path of the YAML file to load. When not
            provided the `settings.yaml` file in the user's configuration
            directory is used, if it exists.
        load: Whether to read the file when the object is created.
    """

    settings: PMap[str, Any] = field(default=pmap(), converter=freeze)
    path: Optional[str] = field(default=None)
    load: bool = field(default=True, kw_only=True)

    def __attrs_post_init__(self):
        if self.load:
            self.load_settings()

    def __getitem__(self, key: str) -> Any:
        return self.get_setting(key)

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a setting.

        Args:
            key: The key of the setting to get as a dot-separated path.
            default: The value to return if the setting is not found.
        """
        parts = key.split(".")
        current: Any = self.settings
        for part in parts[:-1]:
            if not hasattr(current, "get"):
                return default
            current = current.get(part)
            if current is None:
                return default
        if not hasattr(current, "get"):
            return default
        return current.get(parts[-1], default)

    def load_settings(self):
        """Load the settings from the YAML file, if there is one."""
        settings_file = self.settings_file()
        if not os.path.exists(settings_file):
            logger.debug("settings file %s does not exist", settings_file)
            return

        with open(settings_file, "r") as f:
            tmp = freeze(yaml.safe_load(f))
        if tmp is None:
            logger.warning("settings file %s is empty", settings_file)
            return
        self.settings = tmp
        logger.debug("settings loaded from %s", settings_file)

    def settings_file(self) -> str:
        """Get the path to the settings file."""
        if self.path:
            return self.path
        return os.path.join(user_config_dir("vqgrid"), "settings.yaml")

    @property
    def markdown_rendering(self) -> bool:
        """Whether `content` cells are painted as markdown."""
        return bool(self.get_setting("vqgrid.grid.markdown_rendering", False))

    @property
    def row_height(self) -> int:
        return int(self.get_setting("vqgrid.grid.row_height", ROW_HEIGHT))

    @property
    def markdown_row_height(self) -> int:
        return int(
            self.get_setting(
                "vqgrid.grid.markdown_row_height", MARKDOWN_ROW_HEIGHT
            )
        )

    @property
    def settle_delay_ms(self) -> int:
        """Delay between recreating a grid and re-asserting its layout."""
        return int(
            self.get_setting("vqgrid.grid.settle_delay_ms", SETTLE_DELAY_MS)
        )

    @property
    def root_margin(self) -> int:
        """Extra pixels around the viewport that still count as visible."""
        return int(self.get_setting("vqgrid.grid.root_margin", ROOT_MARGIN))

    @property
    def revert_delay_ms(self) -> int:
        """How long a button shows its success or failure mark."""
        return int(
            self.get_setting("vqgrid.preview.revert_delay_ms", REVERT_DELAY_MS)
        )
