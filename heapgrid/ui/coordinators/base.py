from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Callable, Optional

from heapgrid.core.exceptions import ProviderError
from heapgrid.core.providers import ChildProvider
from heapgrid.core.snapshot import InMemorySnapshot, SnapshotChildProvider
from heapgrid.ui.controllers.grid_controller import SortableGrid

logger = logging.getLogger(__name__)

ChildProviderFactory = Callable[..., Optional[ChildProvider]]


def snapshot_child_provider_factory(*, retainers: bool = False, row_height: float = 20) -> ChildProviderFactory:
    """Factory binding a :class:`SnapshotChildProvider` to in-memory snapshots.

    Other provider types return None so the variant keeps the child provider
    it was built with.
    """

    def factory(snapshot: Any, base_snapshot: Any = None) -> Optional[ChildProvider]:
        if not isinstance(snapshot, InMemorySnapshot):
            return None
        if base_snapshot is not None and not isinstance(base_snapshot, InMemorySnapshot):
            base_snapshot = None
        return SnapshotChildProvider(
            snapshot, retainers=retainers, base_snapshot=base_snapshot, row_height=row_height
        )

    return factory


class PopulationCoordinator:
    """Common plumbing of the per-variant population coordinators.

    Parameters
    ----------
    grid : SortableGrid
        Grid receiving the rows.
    child_provider_factory : Optional[Callable[..., Optional[ChildProvider]]]
        Builds the child provider for a newly bound snapshot.
    """

    def __init__(self, grid: SortableGrid, *, child_provider_factory: Optional[ChildProviderFactory] = None) -> None:
        self.grid = grid
        self.snapshot: Any = None
        self._child_provider_factory = child_provider_factory
        self._generation = 0

    @property
    def row_height(self) -> float:
        return self.grid.settings.default_row_height

    @property
    def generation(self) -> int:
        return self._generation

    def _bind_child_provider(self, *snapshots: Any) -> None:
        factory = self._child_provider_factory
        if factory is None:
            return
        provider = factory(*snapshots)
        if provider is not None:
            self.grid.variant.child_provider = provider

    def _when_done(self, future: Future, callback: Callable[[Future], None]) -> None:
        """Run ``callback`` on the UI thread once ``future`` completes."""
        future.add_done_callback(lambda f: self.grid.schedule_ui(lambda: callback(f)))

    def _result_or(self, future: Future, default: Any, request: str) -> Any:
        """Return the provider result, or ``default`` after logging a failure."""
        try:
            result = future.result()
        except Exception as exc:
            failure = ProviderError(f"{request} failed", request=request, cause=exc)
            logger.warning("%s on %s grid: %s", failure, self.grid.name, exc)
            return default
        return default if result is None else result
