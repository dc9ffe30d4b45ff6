from __future__ import annotations

"""In-memory snapshot provider.

:class:`InMemorySnapshot` implements :class:`~heapgrid.core.providers.SnapshotProvider`
over plain :class:`HeapObject` records.  Work runs inline and returns an
already-completed future, or on an ``Executor`` when one is given so the UI
thread never blocks.

:class:`SnapshotChildProvider` loads the children of rows built from such a
snapshot (instances of a class, edges or retainers of an object, diff rows,
allocation callees).
"""

import logging
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from heapgrid.core.models import (
    Aggregate,
    AggregateForDiff,
    AllocationTraceNode,
    DiffRecord,
    GridNode,
    NodeFilter,
)
from heapgrid.core.models.rows import allocation_row, diff_member_row, edge_row, instance_row
from heapgrid.core.services.diff_service import DiffService

__all__ = ["HeapObject", "InMemorySnapshot", "SnapshotChildProvider", "object_root_factory"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeapObject:
    """One object of a heap snapshot with its outgoing named edges."""

    id: int
    class_name: str
    self_size: int
    retained_size: int = 0
    distance: int = 0
    edges: Tuple[Tuple[str, int], ...] = ()
    allocation_node_id: Optional[int] = None


class InMemorySnapshot:
    """Snapshot provider over a list of :class:`HeapObject` records.

    Parameters
    ----------
    uid : int
        Identity used by comparisons (two bindings with the same uid are the
        same snapshot).
    objects : Iterable[HeapObject]
        Every object of the snapshot.
    root_id : Optional[int]
        Id of the synthetic root object; defaults to the smallest id.
    allocation_tops : Iterable[AllocationTraceNode]
        Top-level allocation trace entries, when allocation tracking was on.
    executor : Optional[Executor]
        Runs requests off the calling thread when provided.
    """

    def __init__(
        self,
        uid: int,
        objects: Iterable[HeapObject],
        *,
        root_id: Optional[int] = None,
        allocation_tops: Iterable[AllocationTraceNode] = (),
        executor: Optional[Executor] = None,
    ) -> None:
        self.uid = uid
        self._objects: Dict[int, HeapObject] = {obj.id: obj for obj in objects}
        self.root_node_index = root_id if root_id is not None else min(self._objects, default=0)
        self._allocation_tops = list(allocation_tops)
        self._executor = executor
        self._diff_service = DiffService()
        self._diffs_by_base: Dict[int, Dict[str, DiffRecord]] = {}
        self._retainers: Optional[Dict[int, List[Tuple[str, int]]]] = None

    def __repr__(self) -> str:
        return f"InMemorySnapshot(uid={self.uid}, objects={len(self._objects)})"

    # ------------------------------------------------------------------
    # Provider API
    # ------------------------------------------------------------------
    def aggregates_with_filter(self, node_filter: NodeFilter) -> "Future[Dict[str, Aggregate]]":
        return self._submit(self._aggregates, node_filter)

    def aggregates_for_diff(self) -> "Future[Dict[str, AggregateForDiff]]":
        return self._submit(self._aggregates_for_diff)

    def calculate_snapshot_diff(
        self, base_uid: int, base_aggregates: Dict[str, AggregateForDiff]
    ) -> "Future[Dict[str, DiffRecord]]":
        return self._submit(self._snapshot_diff, base_uid, base_aggregates)

    def node_class_name(self, object_id: int) -> "Future[Optional[str]]":
        obj = self._objects.get(object_id)
        return self._submit(lambda: obj.class_name if obj is not None else None)

    def allocation_traces_tops(self) -> "Future[List[AllocationTraceNode]]":
        return self._submit(lambda: list(self._allocation_tops))

    # ------------------------------------------------------------------
    # Synchronous helpers (used by the child provider)
    # ------------------------------------------------------------------
    def get_object(self, object_id: int) -> Optional[HeapObject]:
        return self._objects.get(object_id)

    def objects_of_class(self, class_name: str, node_filter: Optional[NodeFilter] = None) -> List[HeapObject]:
        node_filter = node_filter or NodeFilter()
        return sorted(
            (obj for obj in self._objects.values()
             if obj.class_name == class_name
             and obj.id != self.root_node_index
             and node_filter.accepts(obj.id, obj.allocation_node_id)),
            key=lambda obj: obj.id,
        )

    def edges_of(self, object_id: int) -> List[Tuple[str, HeapObject]]:
        obj = self._objects.get(object_id)
        if obj is None:
            return []
        return [(name, self._objects[target]) for name, target in obj.edges if target in self._objects]

    def retainers_of(self, object_id: int) -> List[Tuple[str, HeapObject]]:
        if self._retainers is None:
            retainers: Dict[int, List[Tuple[str, int]]] = {}
            for obj in self._objects.values():
                for name, target in obj.edges:
                    retainers.setdefault(target, []).append((name, obj.id))
            self._retainers = retainers
        return [(name, self._objects[source]) for name, source in self._retainers.get(object_id, [])]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        if self._executor is not None:
            return self._executor.submit(fn, *args)
        future: Future = Future()
        try:
            future.set_result(fn(*args))
        except Exception as exc:  # delivered through the future like an executor would
            future.set_exception(exc)
        return future

    def _aggregates(self, node_filter: NodeFilter) -> Dict[str, Aggregate]:
        grouped: Dict[str, List[HeapObject]] = {}
        for obj in self._objects.values():
            if obj.id == self.root_node_index:
                continue
            if not node_filter.accepts(obj.id, obj.allocation_node_id):
                continue
            grouped.setdefault(obj.class_name, []).append(obj)
        result = {}
        for name, objs in grouped.items():
            result[name] = Aggregate(
                name=name,
                count=len(objs),
                distance=min(o.distance for o in objs),
                self_size=sum(o.self_size for o in objs),
                retained_size=max(o.retained_size for o in objs),
                ids=tuple(sorted(o.id for o in objs)),
            )
        logger.debug("Snapshot %s: %d aggregate(s) for %s", self.uid, len(result), node_filter)
        return result

    def _aggregates_for_diff(self) -> Dict[str, AggregateForDiff]:
        return DiffService.aggregates_for_diff(
            (obj.class_name, obj.id, obj.self_size)
            for obj in self._objects.values()
            if obj.id != self.root_node_index
        )

    def _snapshot_diff(self, base_uid: int, base_aggregates: Dict[str, AggregateForDiff]) -> Dict[str, DiffRecord]:
        cached = self._diffs_by_base.get(base_uid)
        if cached is not None:
            return cached
        diff = self._diff_service.compute_diff(base_aggregates, self._aggregates_for_diff())
        self._diffs_by_base[base_uid] = diff
        return diff


class SnapshotChildProvider:
    """Child loader for rows built from :class:`InMemorySnapshot` data.

    Parameters
    ----------
    snapshot : InMemorySnapshot
        Snapshot the rows come from.
    retainers : bool
        Object rows list their retainers instead of their outgoing edges.
    base_snapshot : Optional[InMemorySnapshot]
        Base side of a comparison; diff rows list deleted objects from it.
    row_height : float
        Height given to every produced row.
    """

    def __init__(
        self,
        snapshot: InMemorySnapshot,
        *,
        retainers: bool = False,
        base_snapshot: Optional[InMemorySnapshot] = None,
        row_height: float = 20,
    ) -> None:
        self.snapshot = snapshot
        self.retainers = retainers
        self.base_snapshot = base_snapshot
        self.row_height = row_height

    def populate_children(self, node: GridNode) -> "Future[List[GridNode]]":
        return self.snapshot._submit(self._children_of, node)

    def _children_of(self, node: GridNode) -> List[GridNode]:
        payload = node.payload
        if isinstance(payload, dict):
            objs = self.snapshot.objects_of_class(node.name, payload.get("filter"))
            return [instance_row(obj, self.row_height) for obj in objs]
        if isinstance(payload, DiffRecord):
            return self._diff_children(node.name, payload)
        if isinstance(payload, AllocationTraceNode):
            return [allocation_row(child, self.row_height) for child in payload.children]
        if isinstance(payload, int):
            edges = self.snapshot.retainers_of(payload) if self.retainers else self.snapshot.edges_of(payload)
            rows = []
            for name, obj in edges:
                has_children = bool(self.snapshot.retainers_of(obj.id)) if self.retainers else None
                rows.append(edge_row(name, obj, self.row_height, has_children=has_children))
            return rows
        return []

    def _diff_children(self, class_name: str, diff: DiffRecord) -> List[GridNode]:
        rows: List[GridNode] = []
        base_ids = set()
        deleted = set(diff.deleted_ids)
        if self.base_snapshot is not None:
            for obj in self.base_snapshot.objects_of_class(class_name):
                base_ids.add(obj.id)
                if obj.id in deleted:
                    rows.append(diff_member_row(obj, added=False, row_height=self.row_height))
        for obj in self.snapshot.objects_of_class(class_name):
            if obj.id not in base_ids:
                rows.append(diff_member_row(obj, added=True, row_height=self.row_height))
        return rows


def object_root_factory(snapshot: InMemorySnapshot, node_index: Optional[int] = None) -> GridNode:
    """Root row of the containment/retainment views: one object of the snapshot."""
    object_id = node_index if node_index is not None else snapshot.root_node_index
    obj = snapshot.get_object(object_id)
    root = GridNode.create_root()
    root.node_id = f"object:{object_id}"
    root.name = obj.class_name if obj is not None else ""
    root.fields["name"] = root.name
    root.payload = object_id
    root.has_children = True
    root.populated = False
    return root
