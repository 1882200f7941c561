from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from vqgrid.context import GridContext


class GridUseContext:
    """Utility methods for classes that have a context."""

    ctx: "GridContext"

    def t(self, text: str, d: str, **kwargs: Any) -> str:
        """Translates a string using the context.

        Args:
            text: The string to translate.
            d: The default string if translation is not found.
            **kwargs: Additional arguments for translation string.

        Returns:
            The translated string.
        """
        return self.ctx.t(text, d, **kwargs)

    def get_stg(self, key: str, default: Any = None) -> Any:
        """Get a read-only setting.

        Args:
            key: The key of the setting to get as a dot-separated path.
            default: The default value if the setting is not found.
        """
        result = self.ctx.stg[key]
        if result is None:
            result = default
        return result
