from __future__ import annotations

"""Column-table driven sorting of grid rows.

Each grid variant owns a fixed :class:`ColumnTable` mapping column ids to a
primary field and a secondary tie-break field.  The primary field follows the
direction requested from the column header unless the column pins it to
ascending (no shipped table inverts it); the secondary field always sorts in
its own fixed direction.

:class:`SortEngine` applies the comparator to a node's children and
recursively to every already-expanded descendant.  Nested sort passes, and
asynchronous work that wraps itself in :meth:`SortEngine.enter` /
:meth:`SortEngine.leave`, are coalesced: the settle callback fires once, when
the outermost pass leaves.

Examples
--------
>>> engine = SortEngine(CONSTRUCTORS_COLUMNS, on_settled=lambda: None)
>>> ordered = engine.sort(nodes, "count", ascending=True)
"""

import enum
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from heapgrid.core.exceptions import UnknownSortColumnError
from heapgrid.core.models import GridNode

__all__ = [
    "PrimaryOrder",
    "SortColumn",
    "ColumnTable",
    "SortEngine",
    "make_comparator",
    "CONSTRUCTORS_COLUMNS",
    "RETAINMENT_COLUMNS",
    "CONTAINMENT_COLUMNS",
    "DIFF_COLUMNS",
    "ALLOCATION_COLUMNS",
]

logger = logging.getLogger(__name__)

Comparator = Callable[[GridNode, GridNode], int]


class PrimaryOrder(enum.Enum):
    """How a column's primary field reacts to the requested direction.

    The shipped tables only use ``FOLLOW`` and ``ASCENDING``.  ``INVERT`` is
    for custom tables whose stored field runs against its header, such as a
    column that shows a rank but stores a score.
    """

    FOLLOW = "follow"
    INVERT = "invert"
    ASCENDING = "ascending"


@dataclass(frozen=True)
class SortColumn:
    """Sort recipe of one column.

    Attributes
    ----------
    primary
        Field compared first.
    secondary
        Tie-break field, or None for single-field columns.
    secondary_ascending
        Fixed direction of the tie-break field.
    primary_order
        Whether the primary direction follows, inverts or ignores the
        direction requested from the column header.
    """

    primary: str
    secondary: Optional[str] = None
    secondary_ascending: bool = True
    primary_order: PrimaryOrder = PrimaryOrder.FOLLOW

    def primary_ascending(self, ascending: bool) -> bool:
        if self.primary_order is PrimaryOrder.INVERT:
            return not ascending
        if self.primary_order is PrimaryOrder.ASCENDING:
            return True
        return ascending


class ColumnTable:
    """Fixed mapping from column id to :class:`SortColumn` for one grid variant."""

    def __init__(self, name: str, columns: Dict[str, SortColumn]) -> None:
        self.name = name
        self._columns = dict(columns)

    def __contains__(self, column_id: object) -> bool:
        return column_id in self._columns

    @property
    def column_ids(self) -> List[str]:
        return list(self._columns)

    def lookup(self, column_id: str) -> SortColumn:
        try:
            return self._columns[column_id]
        except KeyError:
            raise UnknownSortColumnError(column_id, self.column_ids, grid_name=self.name) from None


def _three_way(a: Any, b: Any) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def make_comparator(column: SortColumn, ascending: bool) -> Comparator:
    """Build a two-field comparator for ``column`` under the requested direction."""
    primary_ascending = column.primary_ascending(ascending)

    def compare(node_a: GridNode, node_b: GridNode) -> int:
        result = _three_way(node_a.get_field(column.primary), node_b.get_field(column.primary))
        if not primary_ascending:
            result = -result
        if result != 0 or column.secondary is None:
            return result
        result = _three_way(node_a.get_field(column.secondary), node_b.get_field(column.secondary))
        if not column.secondary_ascending:
            result = -result
        return result

    return compare


class SortEngine:
    """Orders sibling rows and re-sorts expanded subtrees.

    Parameters
    ----------
    table : ColumnTable
        Column table of the grid variant.
    on_settled : Callable[[], None]
        Invoked once when the outermost recursive pass leaves (the host culls
        and emits its sorting-complete event from there).
    """

    def __init__(self, table: ColumnTable, on_settled: Callable[[], None]) -> None:
        self.table = table
        self._on_settled = on_settled
        self._depth = 0
        self.last_sort_column_id: Optional[str] = None
        self.last_sort_ascending: Optional[bool] = None
        self._comparator: Optional[Comparator] = None

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    def is_cached(self, column_id: str, ascending: bool) -> bool:
        return self.last_sort_column_id == column_id and self.last_sort_ascending == ascending

    def reset_cache(self) -> None:
        self.last_sort_column_id = None
        self.last_sort_ascending = None

    @property
    def comparator(self) -> Optional[Comparator]:
        """Comparator of the last applied sort, if any."""
        return self._comparator

    # ------------------------------------------------------------------
    # Re-entrancy guard
    # ------------------------------------------------------------------
    @property
    def depth(self) -> int:
        return self._depth

    def enter(self) -> None:
        self._depth += 1

    def leave(self) -> None:
        if not self._depth:
            return
        self._depth -= 1
        if self._depth:
            return
        logger.debug("Sorting settled on %s", self.table.name)
        self._on_settled()

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------
    def sort(self, nodes: Iterable[GridNode], column_id: str, ascending: bool) -> List[GridNode]:
        """Return ``nodes`` ordered by ``column_id``; input is left untouched."""
        comparator = make_comparator(self.table.lookup(column_id), ascending)
        return sorted(nodes, key=functools.cmp_to_key(comparator))

    def apply(self, root: GridNode, column_id: str, ascending: bool) -> bool:
        """Sort ``root`` and its expanded descendants unless the cache matches.

        Returns False when the request was a cache hit and nothing happened.
        """
        if self.is_cached(column_id, ascending):
            logger.debug("Sort %s/%s is cached; skipping", column_id, ascending)
            return False
        column = self.table.lookup(column_id)
        self.last_sort_column_id = column_id
        self.last_sort_ascending = ascending
        self._comparator = make_comparator(column, ascending)
        self.sort_subtree(root)
        return True

    def sort_subtree(self, node: GridNode) -> None:
        """Re-sort ``node`` and, depth first, each expanded child."""
        if self._comparator is None:
            # Nothing chosen yet; keep provider order but still settle
            self.enter()
            self.leave()
            return
        self.enter()
        try:
            node.set_all_children(sorted(node.all_children, key=functools.cmp_to_key(self._comparator)))
            for child in node.all_children:
                if child.expanded:
                    self.sort_subtree(child)
        finally:
            self.leave()


CONSTRUCTORS_COLUMNS = ColumnTable("constructors", {
    "object": SortColumn("name", "count", secondary_ascending=False),
    "distance": SortColumn("distance", "retained_size"),
    "count": SortColumn("count", "name"),
    "shallow_size": SortColumn("shallow_size", "name"),
    "retained_size": SortColumn("retained_size", "name"),
})

RETAINMENT_COLUMNS = ColumnTable("retainment", {
    "object": SortColumn("name", "count", secondary_ascending=False),
    "count": SortColumn("count", "name"),
    "shallow_size": SortColumn("shallow_size", "name"),
    "retained_size": SortColumn("retained_size", "name"),
    "distance": SortColumn("distance", "name"),
})

# The count column of the containment view ignores the requested direction
# and always lists edges by name.
CONTAINMENT_COLUMNS = ColumnTable("containment", {
    "object": SortColumn("name", "retained_size", secondary_ascending=False),
    "count": SortColumn("name", "retained_size", secondary_ascending=False,
                        primary_order=PrimaryOrder.ASCENDING),
    "shallow_size": SortColumn("shallow_size", "name"),
    "retained_size": SortColumn("retained_size", "name"),
    "distance": SortColumn("distance", "name"),
})

DIFF_COLUMNS = ColumnTable("diff", {
    "object": SortColumn("name", "count", secondary_ascending=False),
    "added_count": SortColumn("added_count", "name"),
    "removed_count": SortColumn("removed_count", "name"),
    "count_delta": SortColumn("count_delta", "name"),
    "added_size": SortColumn("added_size", "name"),
    "removed_size": SortColumn("removed_size", "name"),
    "size_delta": SortColumn("size_delta", "name"),
})

ALLOCATION_COLUMNS = ColumnTable("allocation", {
    "live_count": SortColumn("live_count"),
    "count": SortColumn("count"),
    "live_size": SortColumn("live_size"),
    "size": SortColumn("size"),
    "name": SortColumn("name"),
})
