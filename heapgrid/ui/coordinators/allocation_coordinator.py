from __future__ import annotations

import functools
import logging
from concurrent.futures import Future
from typing import Any, List, Optional

from heapgrid.core.models import AllocationTraceNode
from heapgrid.core.models.rows import allocation_row
from heapgrid.core.services.sort_service import make_comparator
from heapgrid.ui.controllers.grid_controller import GridState, SortableGrid
from heapgrid.ui.coordinators.base import (
    ChildProviderFactory,
    PopulationCoordinator,
    snapshot_child_provider_factory,
)

logger = logging.getLogger(__name__)


class AllocationPopulationCoordinator(PopulationCoordinator):
    """Feed an allocation grid with the top allocating functions.

    Header sorting re-orders the top list and rebuilds the rows instead of
    sorting the tree; expanded callees are collapsed again by a re-sort.
    """

    def __init__(self, grid: SortableGrid, *, child_provider_factory: Optional[ChildProviderFactory] = None) -> None:
        super().__init__(
            grid,
            child_provider_factory=child_provider_factory
            or snapshot_child_provider_factory(row_height=grid.settings.default_row_height),
        )
        self._top_nodes: List[AllocationTraceNode] = []
        grid.sort_handler = self._sort_top_nodes

    @property
    def top_nodes(self) -> List[AllocationTraceNode]:
        return list(self._top_nodes)

    def set_data_source(self, snapshot: Any) -> None:
        self.snapshot = snapshot
        self._generation += 1
        generation = self._generation
        self._bind_child_provider(snapshot)
        self._when_done(snapshot.allocation_traces_tops(), lambda f: self._tops_received(generation, f))

    def _tops_received(self, generation: int, future: Future) -> None:
        if generation != self._generation:
            return
        self._top_nodes = list(self._result_or(future, [], "allocation_traces_tops"))
        self.grid.begin_population()
        self.grid.sorting_changed()

    def _sort_top_nodes(self, column_id: str, ascending: bool) -> None:
        column = self.grid.variant.column_table.lookup(column_id)
        comparator = make_comparator(column, ascending)
        rows = [allocation_row(trace, self.row_height) for trace in self._top_nodes]
        rows.sort(key=functools.cmp_to_key(comparator))
        self._top_nodes = [row.payload for row in rows]
        self._populate_children(rows)

    def _populate_children(self, rows: List) -> None:
        grid = self.grid
        populating = grid.state is GridState.POPULATING
        grid.remove_top_level_nodes()
        root = grid.root_node()
        for row in rows:
            root.append_node(row)
        if populating:
            grid.begin_population()
        grid.notify_sorting_complete()

    def dispose(self) -> None:
        self._generation += 1
        self._top_nodes = []
        self.grid.remove_top_level_nodes()
        self.grid.variant.reset_resources()
