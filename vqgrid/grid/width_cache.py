import logging
from typing import Dict, Iterable, Optional

from vqgrid.grid.columns import ColumnDef

logger = logging.getLogger(__name__)
VERBOSE = 1


class ColumnWidthCache:
    """Remembers the column widths the user chose for each query.

    The widths are keyed by the fingerprint of the query text and live only
    as long as the process.
    """

    _widths: Dict[str, Dict[str, int]]

    def __init__(self):
        self._widths = {}

    def save(self, query_hash: str, columns: Iterable[ColumnDef]):
        """Snapshot the widths of the columns that have one.

        Any mapping saved before for the same fingerprint is replaced.
        """
        widths = {str(c.id): c.width for c in columns if c.width}
        self._widths[query_hash] = widths
        logger.log(
            VERBOSE, "Saved %d column widths for %s", len(widths), query_hash
        )

    def restore(self, query_hash: str, column_id: str) -> Optional[int]:
        """The saved width of a column, or None if there is none."""
        widths = self._widths.get(query_hash)
        if widths is None:
            return None
        return widths.get(column_id)

    def clear(self):
        self._widths.clear()

    def __len__(self) -> int:
        return len(self._widths)

    def __contains__(self, query_hash: object) -> bool:
        return query_hash in self._widths
