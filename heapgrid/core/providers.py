from __future__ import annotations

"""Contracts of the asynchronous data providers feeding the grids.

Providers may do their work on another thread or process; every call returns
a :class:`concurrent.futures.Future`.  Completion order is not guaranteed, the
population coordinators are the only ordering authority.
"""

from concurrent.futures import Future
from typing import Dict, List, Optional, Protocol, runtime_checkable

from heapgrid.core.models import (
    Aggregate,
    AggregateForDiff,
    AllocationTraceNode,
    DiffRecord,
    GridNode,
    NodeFilter,
)

__all__ = ["SnapshotProvider", "ChildProvider", "RootNodeFactory"]


@runtime_checkable
class SnapshotProvider(Protocol):
    """Aggregated access to one heap snapshot."""

    uid: int

    def aggregates_with_filter(self, node_filter: NodeFilter) -> "Future[Dict[str, Aggregate]]":
        """Per-class aggregates of the objects passing ``node_filter``."""
        ...

    def aggregates_for_diff(self) -> "Future[Dict[str, AggregateForDiff]]":
        """Per-class sorted ids and self sizes, shipped to the other snapshot."""
        ...

    def calculate_snapshot_diff(
        self, base_uid: int, base_aggregates: Dict[str, AggregateForDiff]
    ) -> "Future[Dict[str, DiffRecord]]":
        """Per-class delta of this snapshot against the base one."""
        ...

    def node_class_name(self, object_id: int) -> "Future[Optional[str]]":
        ...

    def allocation_traces_tops(self) -> "Future[List[AllocationTraceNode]]":
        ...


@runtime_checkable
class ChildProvider(Protocol):
    """Loads the children of a lazily-populated row."""

    def populate_children(self, node: GridNode) -> "Future[List[GridNode]]":
        ...


@runtime_checkable
class RootNodeFactory(Protocol):
    def __call__(self, *args, **kwargs) -> GridNode:
        ...
