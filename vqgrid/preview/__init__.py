"""Change-diff previews.

The widgets live in `vqgrid.preview.renderer`; this package re-exports the
parts that do not need Qt.
"""

from vqgrid.preview.diff import (
    MISSING,
    compute_change_set,
    count_changed_fields,
    strictly_equal,
)
from vqgrid.preview.models import (
    OperationDescriptor,
    OperationKind,
    SqlAndParams,
)
from vqgrid.preview.rows import PreviewRowBuilder
from vqgrid.preview.summary import (
    confirmation_message,
    has_actions,
    summary_text,
)

__all__ = [
    "MISSING",
    "OperationDescriptor",
    "OperationKind",
    "PreviewRowBuilder",
    "SqlAndParams",
    "compute_change_set",
    "confirmation_message",
    "count_changed_fields",
    "has_actions",
    "strictly_equal",
    "summary_text",
]
