from __future__ import annotations

"""Shared data structures used across the heapgrid core.

This package exposes the tree node used by every grid variant together with
the value objects exchanged with snapshot providers.  It is intentionally free
of UI code so that the contained objects can be reused in any context
(unit-tests, CLI, GUI, etc.).
"""

import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from .records import Aggregate, AggregateForDiff, AllocationTraceNode, DiffRecord

__all__ = [
    "GridNode",
    "NodeFilter",
    "Aggregate",
    "AggregateForDiff",
    "AllocationTraceNode",
    "DiffRecord",
]


ROOT_NODE_ID = "__root__"


class GridNode:
    """One row of a hierarchical grid together with its subtree.

    Two child lists are kept.  ``all_children`` is the full ordered universe
    used for sorting and height accounting; ``children`` holds only the
    realized rows the culler attached to the visible structure.  The node owns
    everything in ``all_children``; ``parent`` (realized attachment) and
    ``owner`` (``all_children`` membership) are weak back-references.

    Attributes
    ----------
    node_id
        Stable identity used for selection tracking.
    name
        Display name, also used by the default name filter.
    self_height
        Height of the row itself, excluding descendants.
    has_children
        Hint that the node has (possibly not yet loaded) children.
    fields
        Named values referenced by the column sort tables.
    payload
        Provider specific context (object id, filter, ...).
    """

    def __init__(
        self,
        node_id: Any,
        *,
        name: str = "",
        self_height: float = 20,
        has_children: bool = False,
        fields: Optional[Dict[str, Any]] = None,
        payload: Any = None,
    ) -> None:
        if self_height < 0:
            raise ValueError("self_height must be >= 0")
        self.node_id = node_id
        self.name = name
        self.self_height = self_height
        self.has_children = has_children
        self.fields: Dict[str, Any] = dict(fields or {})
        self.fields.setdefault("name", name)
        self.payload = payload

        self.children: List[GridNode] = []
        self.all_children: List[GridNode] = []
        self.expanded = False
        self.revealed = True
        self.selected = False
        self.populated = not has_children
        self.is_root = False
        self.disposed = False

        self._parent_ref: Optional[weakref.ReferenceType[GridNode]] = None
        self._owner_ref: Optional[weakref.ReferenceType[GridNode]] = None
        self._disposers: List[Callable[[], None]] = []

    @classmethod
    def create_root(cls) -> "GridNode":
        root = cls(ROOT_NODE_ID, name="", self_height=0)
        root.is_root = True
        root.expanded = True
        root.populated = True
        return root

    def __repr__(self) -> str:
        return f"GridNode({self.node_id!r}, name={self.name!r})"

    # ------------------------------------------------------------------
    # Back-references
    # ------------------------------------------------------------------
    @property
    def parent(self) -> Optional["GridNode"]:
        """Node this row is currently attached to in the realized structure."""
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def owner(self) -> Optional["GridNode"]:
        """Node whose ``all_children`` contains this row."""
        return self._owner_ref() if self._owner_ref is not None else None

    @property
    def is_attached(self) -> bool:
        """True when the realized parent chain reaches a root node."""
        node: Optional[GridNode] = self
        while node is not None:
            if node.is_root:
                return True
            node = node.parent
        return False

    def path_from_root(self) -> List["GridNode"]:
        """Ancestor chain below the root, ending with this node."""
        path: List[GridNode] = []
        node: Optional[GridNode] = self
        while node is not None and not node.is_root:
            path.append(node)
            node = node.owner
        path.reverse()
        return path

    # ------------------------------------------------------------------
    # Full child universe
    # ------------------------------------------------------------------
    def append_node(self, child: "GridNode") -> None:
        child._owner_ref = weakref.ref(self)
        self.all_children.append(child)
        self.has_children = True

    def insert_node(self, child: "GridNode", index: int) -> None:
        child._owner_ref = weakref.ref(self)
        self.all_children.insert(index, child)
        self.has_children = True

    def remove_node_at(self, index: int) -> "GridNode":
        child = self.all_children.pop(index)
        if child in self.children:
            self.children.remove(child)
            child._parent_ref = None
        child._owner_ref = None
        return child

    def set_all_children(self, nodes: Iterable["GridNode"]) -> None:
        """Replace the child universe order (used after sorting)."""
        self.all_children = list(nodes)

    # ------------------------------------------------------------------
    # Realized structure
    # ------------------------------------------------------------------
    def attach_child(self, child: "GridNode") -> None:
        child._parent_ref = weakref.ref(self)
        self.children.append(child)

    def remove_children(self) -> List["GridNode"]:
        """Detach every realized child and return them."""
        detached = self.children
        for child in detached:
            child._parent_ref = None
        self.children = []
        return detached

    def iter_realized(self) -> Iterator["GridNode"]:
        """Depth-first iteration over the realized descendants."""
        for child in self.children:
            yield child
            yield from child.iter_realized()

    # ------------------------------------------------------------------
    # Expansion state
    # ------------------------------------------------------------------
    def expand(self) -> None:
        self.expanded = True
        for child in self.children:
            child.set_revealed(True)

    def collapse(self) -> None:
        self.expanded = False
        for child in self.children:
            child.set_revealed(False)

    def set_revealed(self, value: bool) -> None:
        self.revealed = value
        for child in self.children:
            child.set_revealed(value and self.expanded)

    # ------------------------------------------------------------------
    # Sorting support
    # ------------------------------------------------------------------
    def get_field(self, name: str) -> Any:
        return self.fields[name]

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------
    def add_disposer(self, callback: Callable[[], None]) -> None:
        """Register a callback releasing an external resource held by this row."""
        self._disposers.append(callback)

    def dispose(self) -> None:
        """Dispose the whole subtree and clear back-references."""
        if self.disposed:
            return
        for child in self.all_children:
            child.dispose()
        for child in self.children:
            child._parent_ref = None
        disposers, self._disposers = self._disposers, []
        for callback in disposers:
            callback()
        self.children = []
        self.all_children = []
        self._parent_ref = None
        self._owner_ref = None
        self.disposed = True


@dataclass(frozen=True)
class NodeFilter:
    """Population filter descriptor sent to snapshot providers.

    An object passes when ``min_node_id < id <= max_node_id`` (each bound
    optional) and, when ``allocation_node_id`` is set, it was allocated by
    that allocation trace node.
    """

    min_node_id: Optional[int] = None
    max_node_id: Optional[int] = None
    allocation_node_id: Optional[int] = None

    def accepts(self, object_id: int, allocation_node_id: Optional[int] = None) -> bool:
        if self.min_node_id is not None and object_id <= self.min_node_id:
            return False
        if self.max_node_id is not None and object_id > self.max_node_id:
            return False
        if self.allocation_node_id is not None and allocation_node_id != self.allocation_node_id:
            return False
        return True
