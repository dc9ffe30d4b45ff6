from concurrent.futures import ThreadPoolExecutor

import pytest

from heapgrid.core.models import Aggregate, AllocationTraceNode, DiffRecord, GridNode, NodeFilter
from heapgrid.core.models.rows import constructor_row, diff_row
from heapgrid.core.providers import ChildProvider, SnapshotProvider
from heapgrid.core.snapshot import HeapObject, InMemorySnapshot, SnapshotChildProvider, object_root_factory


def test_in_memory_snapshot_satisfies_provider_protocols(small_snapshot):
    assert isinstance(small_snapshot, SnapshotProvider)
    assert isinstance(SnapshotChildProvider(small_snapshot), ChildProvider)


def test_aggregates_exclude_root_and_summarize_per_class(small_snapshot):
    aggregates = small_snapshot.aggregates_with_filter(NodeFilter()).result()
    assert set(aggregates) == {"Window", "Array", "Document", "Node"}
    assert aggregates["Node"] == Aggregate(
        name="Node", count=3, distance=2, self_size=150, retained_size=250, ids=(6, 7, 8)
    )


def test_aggregates_honour_filter(small_snapshot):
    aggregates = small_snapshot.aggregates_with_filter(NodeFilter(min_node_id=5, max_node_id=7)).result()
    assert set(aggregates) == {"Node"}
    assert aggregates["Node"].ids == (6, 7)

    by_allocation = small_snapshot.aggregates_with_filter(NodeFilter(allocation_node_id=9)).result()
    assert list(by_allocation) == ["Node"]
    assert by_allocation["Node"].count == 1


def test_node_class_name(small_snapshot):
    assert small_snapshot.node_class_name(4).result() == "Array"
    assert small_snapshot.node_class_name(404).result() is None


def test_snapshot_diff_is_cached_per_base():
    base = InMemorySnapshot(1, [HeapObject(1, "root", 0), HeapObject(2, "A", 10), HeapObject(3, "A", 20)])
    current = InMemorySnapshot(2, [HeapObject(1, "root", 0), HeapObject(3, "A", 20), HeapObject(4, "A", 40)])

    aggregates = base.aggregates_for_diff().result()
    diff = current.calculate_snapshot_diff(base.uid, aggregates).result()

    assert diff["A"] == DiffRecord(added_count=1, removed_count=1, added_size=40, removed_size=10, deleted_ids=(2,))
    assert current.calculate_snapshot_diff(base.uid, {}).result() is diff


def test_provider_failures_are_delivered_through_the_future(small_snapshot):
    future = small_snapshot.aggregates_with_filter(None)
    with pytest.raises(AttributeError):
        future.result()


def test_executor_runs_requests_off_thread():
    with ThreadPoolExecutor(max_workers=1) as executor:
        snapshot = InMemorySnapshot(3, [HeapObject(1, "root", 0), HeapObject(2, "A", 5)], executor=executor)
        aggregates = snapshot.aggregates_with_filter(NodeFilter()).result(timeout=5)
    assert aggregates["A"].count == 1


def test_allocation_tops_are_copied():
    top = AllocationTraceNode(id=1, name="alloc", count=3)
    snapshot = InMemorySnapshot(4, [], allocation_tops=[top])
    tops = snapshot.allocation_traces_tops().result()
    assert tops == [top]
    tops.clear()
    assert snapshot.allocation_traces_tops().result() == [top]


def test_child_provider_lists_instances_of_a_constructor(small_snapshot):
    aggregates = small_snapshot.aggregates_with_filter(NodeFilter()).result()
    row = constructor_row("Array", aggregates["Array"])
    children = SnapshotChildProvider(small_snapshot).populate_children(row).result()
    assert [c.node_id for c in children] == [3, 4]
    assert children[1].has_children is True
    assert children[1].fields["shallow_size"] == 60


def test_child_provider_follows_edges_and_retainers(small_snapshot):
    window = GridNode(2, name="Window", payload=2)
    edges = SnapshotChildProvider(small_snapshot).populate_children(window).result()
    assert [c.name for c in edges] == ["a :: Array @3", "b :: Array @4"]

    node = GridNode(8, name="Node", payload=8)
    retainers = SnapshotChildProvider(small_snapshot, retainers=True).populate_children(node).result()
    assert [c.name for c in retainers] == ["child :: Node @7"]
    assert retainers[0].has_children is True


def test_child_provider_lists_diff_members():
    base = InMemorySnapshot(1, [HeapObject(1, "root", 0), HeapObject(2, "A", 10), HeapObject(3, "A", 20)])
    current = InMemorySnapshot(2, [HeapObject(1, "root", 0), HeapObject(3, "A", 20), HeapObject(4, "A", 40)])
    diff = current.calculate_snapshot_diff(base.uid, base.aggregates_for_diff().result()).result()
    row = diff_row("A", diff["A"])

    children = SnapshotChildProvider(current, base_snapshot=base).populate_children(row).result()

    assert [c.name for c in children] == ["- A @2", "+ A @4"]
    assert children[0].populated is True


def test_child_provider_lists_every_deleted_member():
    base = InMemorySnapshot(1, [HeapObject(1, "root", 0)] + [HeapObject(i, "A", 8) for i in range(2, 202)])
    current = InMemorySnapshot(2, [HeapObject(1, "root", 0)] + [HeapObject(i, "A", 8) for i in range(2, 52)])
    diff = current.calculate_snapshot_diff(base.uid, base.aggregates_for_diff().result()).result()
    assert len(diff["A"].deleted_ids) == 150

    children = SnapshotChildProvider(current, base_snapshot=base).populate_children(diff_row("A", diff["A"])).result()

    assert [c.name for c in children] == [f"- A @{i}" for i in range(52, 202)]


def test_object_root_factory_builds_unpopulated_root(small_snapshot):
    root = object_root_factory(small_snapshot, 2)
    assert root.is_root and root.expanded
    assert root.payload == 2 and root.name == "Window"
    assert not root.populated
