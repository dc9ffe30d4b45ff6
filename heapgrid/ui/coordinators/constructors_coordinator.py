from __future__ import annotations

"""Population of the constructors (summary) view.

Rows are per-class aggregates of the objects passing the current
:class:`NodeFilter`.  Filter changes arrive quickly while a user drags a
selection range, so requests are coalesced: at most one request is in flight
and at most one filter waits behind it, the newest one.
"""

import logging
from concurrent.futures import Future
from typing import Any, Dict, Optional, Sequence

from heapgrid.core.models import Aggregate, GridNode, NodeFilter
from heapgrid.core.models.rows import constructor_row
from heapgrid.core.exceptions import RevealInProgressError
from heapgrid.ui.controllers.grid_controller import SortableGrid
from heapgrid.ui.coordinators.base import (
    ChildProviderFactory,
    PopulationCoordinator,
    snapshot_child_provider_factory,
)

logger = logging.getLogger(__name__)


class ConstructorsPopulationCoordinator(PopulationCoordinator):
    """Feed a constructors grid from a snapshot provider.

    Notes
    -----
    - ``populate`` while a request is in flight only records the filter as
      the pending one; completion of the in-flight request then issues the
      pending filter and discards its own, now stale, rows.
    - Rebinding the snapshot bumps the generation so late responses from the
      previous snapshot are dropped.
    """

    def __init__(self, grid: SortableGrid, *, child_provider_factory: Optional[ChildProviderFactory] = None) -> None:
        super().__init__(
            grid,
            child_provider_factory=child_provider_factory
            or snapshot_child_provider_factory(row_height=grid.settings.default_row_height),
        )
        self._profile_index = -1
        self._node_filter: Optional[NodeFilter] = None
        self._filter_in_progress: Optional[NodeFilter] = None
        self._next_requested_filter: Optional[NodeFilter] = None
        self._last_filter: Optional[NodeFilter] = None
        self._object_id_to_select: Optional[int] = None

    @property
    def filter_in_progress(self) -> Optional[NodeFilter]:
        return self._filter_in_progress

    @property
    def next_requested_filter(self) -> Optional[NodeFilter]:
        return self._next_requested_filter

    @property
    def last_filter(self) -> Optional[NodeFilter]:
        return self._last_filter

    # ---------------------------------------------------------------------------------
    # Data binding
    # ---------------------------------------------------------------------------------

    def set_data_source(self, snapshot: Any) -> None:
        self.snapshot = snapshot
        self._generation += 1
        self._filter_in_progress = None
        self._next_requested_filter = None
        self._last_filter = None
        self._bind_child_provider(snapshot)
        self.populate(self._node_filter)

    def clear(self) -> None:
        self._next_requested_filter = None
        self._last_filter = None
        self.grid.remove_top_level_nodes()

    def set_selection_range(self, min_node_id: int, max_node_id: int) -> None:
        self._node_filter = NodeFilter(min_node_id=min_node_id, max_node_id=max_node_id)
        self.populate(self._node_filter)

    def set_allocation_node_id(self, allocation_node_id: int) -> None:
        self._node_filter = NodeFilter(allocation_node_id=allocation_node_id)
        self.populate(self._node_filter)

    def filter_select_index_changed(self, profiles: Sequence[Any], profile_index: int) -> None:
        """Restrict rows to the objects allocated between two snapshots.

        ``profiles`` items expose ``max_js_object_id``; index -1 removes the
        restriction.
        """
        self._profile_index = profile_index
        self._node_filter = None
        if profile_index != -1:
            min_node_id = profiles[profile_index - 1].max_js_object_id if profile_index > 0 else 0
            max_node_id = profiles[profile_index].max_js_object_id
            self._node_filter = NodeFilter(min_node_id=min_node_id, max_node_id=max_node_id)
        self.populate(self._node_filter)

    # ---------------------------------------------------------------------------------
    # Population
    # ---------------------------------------------------------------------------------

    def populate(self, node_filter: Optional[NodeFilter] = None) -> None:
        node_filter = node_filter or NodeFilter()
        if self.snapshot is None:
            return
        if self._filter_in_progress is not None:
            self._next_requested_filter = None if self._filter_in_progress == node_filter else node_filter
            return
        if self._last_filter is not None and self._last_filter == node_filter:
            return
        self._request(node_filter)

    def _request(self, node_filter: NodeFilter) -> None:
        self._filter_in_progress = node_filter
        self._generation += 1
        generation = self._generation
        logger.debug("Requesting aggregates for %s (generation %d)", node_filter, generation)
        self._when_done(
            self.snapshot.aggregates_with_filter(node_filter),
            lambda f: self._aggregates_received(generation, node_filter, f),
        )

    def _aggregates_received(self, generation: int, node_filter: NodeFilter, future: Future) -> None:
        if generation != self._generation:
            logger.debug("Dropping stale aggregates for %s", node_filter)
            return
        aggregates: Dict[str, Aggregate] = self._result_or(future, {}, "aggregates_with_filter")
        self._filter_in_progress = None
        next_filter, self._next_requested_filter = self._next_requested_filter, None
        if next_filter is not None:
            self._request(next_filter)
            return

        grid = self.grid
        grid.remove_top_level_nodes()
        grid.begin_population()
        grid.reset_sorting_cache()
        root = grid.root_node()
        for name, aggregate in aggregates.items():
            grid.append_node(root, constructor_row(name, aggregate, node_filter, self.row_height))
        self._last_filter = node_filter
        grid.sorting_changed()

        if self._object_id_to_select is not None:
            object_id, self._object_id_to_select = self._object_id_to_select, None
            self.reveal_object_by_heap_snapshot_id(object_id)

    # ---------------------------------------------------------------------------------
    # Reveal
    # ---------------------------------------------------------------------------------

    def reveal_object_by_heap_snapshot_id(self, object_id: int) -> "Future[Optional[GridNode]]":
        """Expand the constructor row of ``object_id`` and scroll its instance into view.

        Without a bound snapshot the id is remembered and revealed after the
        next population; the returned future then resolves to None.
        """
        result: Future = Future()
        if self.snapshot is None or self._filter_in_progress is not None:
            self._object_id_to_select = object_id
            result.set_result(None)
            return result

        def did_get_class_name(future: Future) -> None:
            class_name = self._result_or(future, None, "node_class_name")
            parent = None
            if class_name:
                parent = next((n for n in self.grid.top_level_nodes() if n.name == class_name), None)
            if parent is None:
                # No visible top level node with such class name
                result.set_result(None)
                return
            self.grid.expand(parent).add_done_callback(
                lambda _f: self._reveal_instance(parent, object_id, result)
            )

        self._when_done(self.snapshot.node_class_name(object_id), did_get_class_name)
        return result

    def _reveal_instance(self, parent: GridNode, object_id: int, result: Future) -> None:
        target = next((n for n in parent.all_children if n.payload == object_id), None)
        if target is None:
            result.set_result(None)
            return
        try:
            revealed = self.grid.reveal_tree_node([parent, target])
        except RevealInProgressError as exc:
            result.set_exception(exc)
            return
        revealed.add_done_callback(lambda f: result.set_result(f.result()))
