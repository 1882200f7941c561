class VqGridError(Exception):
    """Base class for the errors raised by this package."""


class GridDestroyedError(VqGridError, RuntimeError):
    """A grid widget was used after its view was destroyed.

    The view may have been destroyed explicitly or deleted by the host
    together with the surface it lived in.

    Attributes:
        operation: The name of the widget operation that was attempted.
    """

    operation: str

    def __init__(self, operation: str) -> None:
        super().__init__(f"Grid view is gone; cannot {operation}")
        self.operation = operation


class GridConstructionError(VqGridError):
    """A grid widget could not be built for the given rows and columns."""
