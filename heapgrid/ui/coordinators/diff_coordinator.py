from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Dict, Optional

from heapgrid.core.events import GridEvent
from heapgrid.core.models import AggregateForDiff, DiffRecord
from heapgrid.core.models.rows import diff_row
from heapgrid.ui.controllers.grid_controller import SortableGrid
from heapgrid.ui.coordinators.base import (
    ChildProviderFactory,
    PopulationCoordinator,
    snapshot_child_provider_factory,
)

logger = logging.getLogger(__name__)


class DiffPopulationCoordinator(PopulationCoordinator):
    """Feed a comparison grid from two snapshot providers.

    The two snapshots are isolated from each other, so the base side first
    ships its per-class ids and sizes, and the current side computes the
    delta from them.
    """

    def __init__(self, grid: SortableGrid, *, child_provider_factory: Optional[ChildProviderFactory] = None) -> None:
        super().__init__(
            grid,
            child_provider_factory=child_provider_factory
            or snapshot_child_provider_factory(row_height=grid.settings.default_row_height),
        )
        self.base_snapshot: Any = None

    def set_data_source(self, snapshot: Any) -> None:
        self.snapshot = snapshot

    def set_base_data_source(self, base_snapshot: Any) -> None:
        self.base_snapshot = base_snapshot
        self._generation += 1
        grid = self.grid
        grid.remove_top_level_nodes()
        grid.reset_sorting_cache()
        if base_snapshot is self.snapshot:
            grid.events.dispatch(GridEvent.SORTING_COMPLETE, grid)
            return
        self._bind_child_provider(self.snapshot, base_snapshot)
        self._populate_children()

    def _populate_children(self) -> None:
        generation = self._generation
        self._when_done(
            self.base_snapshot.aggregates_for_diff(),
            lambda f: self._aggregates_for_diff_received(generation, f),
        )

    def _aggregates_for_diff_received(self, generation: int, future: Future) -> None:
        if generation != self._generation:
            return
        aggregates: Dict[str, AggregateForDiff] = self._result_or(future, None, "aggregates_for_diff")
        if aggregates is None:
            self._show_rows({})
            return
        self._when_done(
            self.snapshot.calculate_snapshot_diff(self.base_snapshot.uid, aggregates),
            lambda f: self._diff_received(generation, f),
        )

    def _diff_received(self, generation: int, future: Future) -> None:
        if generation != self._generation:
            logger.debug("Dropping stale diff (generation %d)", generation)
            return
        self._show_rows(self._result_or(future, {}, "calculate_snapshot_diff"))

    def _show_rows(self, diff_by_class_name: Dict[str, DiffRecord]) -> None:
        grid = self.grid
        grid.begin_population()
        grid.reset_sorting_cache()
        root = grid.root_node()
        for class_name, diff in diff_by_class_name.items():
            grid.append_node(root, diff_row(class_name, diff, self.row_height))
        grid.sorting_changed()
