from __future__ import annotations

import logging
from typing import Any, Optional

from heapgrid.core.models import GridNode
from heapgrid.ui.controllers.grid_controller import SortableGrid
from heapgrid.ui.coordinators.base import (
    ChildProviderFactory,
    PopulationCoordinator,
    snapshot_child_provider_factory,
)

logger = logging.getLogger(__name__)


class ContainmentPopulationCoordinator(PopulationCoordinator):
    """Feed a containment or retainment grid rooted at one object.

    Parameters
    ----------
    grid : SortableGrid
        Grid built from ``containment_variant`` or ``retainment_variant``.
    expand_root : bool
        Expand the root row after binding (retainment view).
    retainers : bool
        Object rows list their retainers instead of their outgoing edges.
    """

    def __init__(
        self,
        grid: SortableGrid,
        *,
        expand_root: bool = False,
        retainers: bool = False,
        child_provider_factory: Optional[ChildProviderFactory] = None,
    ) -> None:
        super().__init__(
            grid,
            child_provider_factory=child_provider_factory
            or snapshot_child_provider_factory(retainers=retainers, row_height=grid.settings.default_row_height),
        )
        self.expand_root = expand_root
        self.node_index: Optional[int] = None

    @classmethod
    def for_retainers(cls, grid: SortableGrid, **kwargs: Any) -> "ContainmentPopulationCoordinator":
        return cls(grid, expand_root=True, retainers=True, **kwargs)

    def set_data_source(self, snapshot: Any, node_index: Optional[int] = None) -> GridNode:
        """Bind ``snapshot`` and root the grid at object ``node_index``."""
        self.snapshot = snapshot
        self.node_index = node_index
        self._bind_child_provider(snapshot)
        factory = self.grid.variant.root_node_factory
        if factory is None:
            raise ValueError(f"Grid variant '{self.grid.name}' has no root node factory")
        root = factory(snapshot, node_index)
        grid = self.grid
        grid.set_root_node(root)
        grid.begin_population()
        grid.reset_sorting_cache()
        with grid.batch_update():
            grid.sorting_changed()
            grid.populate_node(root)
            if self.expand_root:
                grid.expand(root)
        logger.debug("Bound %s grid to object %s of %r", grid.name, node_index, snapshot)
        return root

    def reset(self) -> None:
        self.snapshot = None
        self.node_index = None
        self.grid.remove_top_level_nodes()
        self.grid.reset_sorting_cache()
