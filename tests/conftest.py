"""Test configuration and fixtures for the heapgrid test-suite.

This module provides shared fixtures and fake providers.  Providers in the
real application answer asynchronously; :class:`FakeSnapshot` hands out
unresolved futures so tests decide when (and in which order) requests
complete.
"""

import logging
import sys
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from heapgrid.core.models import GridNode
from heapgrid.core.models.grid_config import DEFAULT_GRID_SETTINGS
from heapgrid.core.snapshot import HeapObject, InMemorySnapshot

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def _append_leaves(parent: GridNode, count: int, height: float = 20, prefix: str = "leaf") -> List[GridNode]:
    """Append ``count`` childless rows named ``{prefix}{i}`` to ``parent``."""
    leaves = []
    for i in range(count):
        node = GridNode(f"{prefix}{i}", name=f"{prefix}{i}", self_height=height, fields={"index": i})
        parent.append_node(node)
        leaves.append(node)
    return leaves


class FakeSnapshot:
    """Snapshot provider whose requests stay pending until the test resolves them.

    Every call is recorded in ``calls`` as ``(method, args, future)``.
    """

    def __init__(self, uid: int = 1) -> None:
        self.uid = uid
        self.calls: List[Tuple[str, tuple, Future]] = []

    def _record(self, method: str, *args: Any) -> Future:
        future: Future = Future()
        self.calls.append((method, args, future))
        return future

    def aggregates_with_filter(self, node_filter):
        return self._record("aggregates_with_filter", node_filter)

    def aggregates_for_diff(self):
        return self._record("aggregates_for_diff")

    def calculate_snapshot_diff(self, base_uid, base_aggregates):
        return self._record("calculate_snapshot_diff", base_uid, base_aggregates)

    def node_class_name(self, object_id):
        return self._record("node_class_name", object_id)

    def allocation_traces_tops(self):
        return self._record("allocation_traces_tops")

    def calls_to(self, method: str) -> List[Tuple[str, tuple, Future]]:
        return [call for call in self.calls if call[0] == method]


class EventRecorder:
    """Collects grid events in the order they were dispatched."""

    def __init__(self, grid) -> None:
        from heapgrid.core.events import GridEvent

        self.events: List[Any] = []
        for event in GridEvent:
            grid.events.add_listener(event, lambda _payload, e=event: self.events.append(e))

    def count(self, event) -> int:
        return sum(1 for e in self.events if e is event)


@pytest.fixture
def make_leaves():
    return _append_leaves


@pytest.fixture
def event_recorder():
    """Factory attaching an :class:`EventRecorder` to a grid."""
    return EventRecorder


@pytest.fixture
def settings():
    return DEFAULT_GRID_SETTINGS


@pytest.fixture
def fake_snapshot():
    return FakeSnapshot(uid=1)


@pytest.fixture
def small_snapshot():
    """Eight objects of three classes below a root object with id 1."""
    objects = [
        HeapObject(1, "(GC roots)", 0, edges=(("window", 2), ("document", 5))),
        HeapObject(2, "Window", 100, retained_size=900, distance=1, edges=(("a", 3), ("b", 4))),
        HeapObject(3, "Array", 40, retained_size=40, distance=2),
        HeapObject(4, "Array", 60, retained_size=160, distance=2, edges=(("0", 6),)),
        HeapObject(5, "Document", 200, retained_size=500, distance=1, edges=(("body", 7),)),
        HeapObject(6, "Node", 30, retained_size=30, distance=3),
        HeapObject(7, "Node", 50, retained_size=250, distance=2, edges=(("child", 8),)),
        HeapObject(8, "Node", 70, retained_size=70, distance=3, allocation_node_id=9),
    ]
    return InMemorySnapshot(7, objects, root_id=1)


@pytest.fixture
def make_tree():
    """Factory for a root holding ``count`` leaves of height ``height``."""

    def factory(count: int, height: float = 20) -> Tuple[GridNode, List[GridNode]]:
        root = GridNode.create_root()
        leaves = _append_leaves(root, count, height)
        return root, leaves

    return factory


@pytest.fixture
def make_fake_snapshot():
    """Factory for additional :class:`FakeSnapshot` providers."""
    return FakeSnapshot
