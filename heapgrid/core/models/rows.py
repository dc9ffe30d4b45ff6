from __future__ import annotations

"""Row factories turning provider records into grid nodes.

Every factory fills the fields named by the column tables of the grid variant
the row is shown in, so sorting never hits a missing field.
"""

from typing import Optional

from . import GridNode, NodeFilter
from .records import Aggregate, AllocationTraceNode, DiffRecord

__all__ = [
    "constructor_row",
    "instance_row",
    "edge_row",
    "diff_row",
    "diff_member_row",
    "allocation_row",
]


def constructor_row(name: str, aggregate: Aggregate, node_filter: Optional[NodeFilter] = None,
                    row_height: float = 20) -> GridNode:
    """Top-level row of the constructors view (one class name)."""
    return GridNode(
        f"class:{name}",
        name=name,
        self_height=row_height,
        has_children=aggregate.count > 0,
        fields={
            "name": name,
            "count": aggregate.count,
            "distance": aggregate.distance,
            "shallow_size": aggregate.self_size,
            "retained_size": aggregate.retained_size,
        },
        payload={"filter": node_filter or NodeFilter(), "ids": aggregate.ids},
    )


def instance_row(obj, row_height: float = 20) -> GridNode:
    """Row for a single heap object listed under its constructor."""
    return GridNode(
        obj.id,
        name=f"{obj.class_name} @{obj.id}",
        self_height=row_height,
        has_children=bool(obj.edges),
        fields={
            "name": f"{obj.class_name} @{obj.id}",
            "count": 1,
            "distance": obj.distance,
            "shallow_size": obj.self_size,
            "retained_size": obj.retained_size,
        },
        payload=obj.id,
    )


def edge_row(edge_name: str, obj, row_height: float = 20, has_children: Optional[bool] = None) -> GridNode:
    """Row for an object reached through a named edge (containment/retainers)."""
    label = f"{edge_name} :: {obj.class_name} @{obj.id}"
    return GridNode(
        f"edge:{edge_name}:{obj.id}",
        name=label,
        self_height=row_height,
        has_children=bool(obj.edges) if has_children is None else has_children,
        fields={
            "name": label,
            "count": 1,
            "distance": obj.distance,
            "shallow_size": obj.self_size,
            "retained_size": obj.retained_size,
        },
        payload=obj.id,
    )


def diff_row(class_name: str, diff: DiffRecord, row_height: float = 20) -> GridNode:
    """Top-level row of the comparison view."""
    return GridNode(
        f"diff:{class_name}",
        name=class_name,
        self_height=row_height,
        has_children=bool(diff.added_count or diff.removed_count),
        fields={
            "name": class_name,
            "count": diff.added_count + diff.removed_count,
            "added_count": diff.added_count,
            "removed_count": diff.removed_count,
            "count_delta": diff.count_delta,
            "added_size": diff.added_size,
            "removed_size": diff.removed_size,
            "size_delta": diff.size_delta,
        },
        payload=diff,
    )


def allocation_row(trace: AllocationTraceNode, row_height: float = 20) -> GridNode:
    """Row of the allocation view (one allocating function)."""
    return GridNode(
        f"alloc:{trace.id}",
        name=trace.name,
        self_height=row_height,
        has_children=trace.has_children,
        fields={
            "name": trace.name,
            "count": trace.count,
            "size": trace.size,
            "live_count": trace.live_count,
            "live_size": trace.live_size,
        },
        payload=trace,
    )


def diff_member_row(obj, added: bool, row_height: float = 20) -> GridNode:
    """Object listed under a comparison row: ``+`` when added, ``-`` when deleted."""
    label = f"{'+' if added else '-'} {obj.class_name} @{obj.id}"
    return GridNode(
        obj.id,
        name=label,
        self_height=row_height,
        has_children=False,
        fields={
            "name": label,
            "count": 1,
            "added_count": 1 if added else 0,
            "removed_count": 0 if added else 1,
            "count_delta": 1 if added else -1,
            "added_size": obj.self_size if added else 0,
            "removed_size": 0 if added else obj.self_size,
            "size_delta": obj.self_size if added else -obj.self_size,
        },
        payload=obj.id,
    )
