import gc

import pytest

from heapgrid.core.models import GridNode, NodeFilter
from heapgrid.core.models.records import AggregateForDiff, DiffRecord


def test_new_node_defaults():
    node = GridNode("n1", name="Window", self_height=18, has_children=True)
    assert node.revealed is True
    assert node.expanded is False
    assert node.populated is False
    assert node.fields["name"] == "Window"
    assert node.parent is None and node.owner is None


def test_negative_height_rejected():
    with pytest.raises(ValueError):
        GridNode("bad", self_height=-1)


def test_root_node_shape():
    root = GridNode.create_root()
    assert root.self_height == 0
    assert root.expanded and root.revealed and root.is_root
    assert root.is_attached


def test_attachment_follows_realized_parent_chain():
    root = GridNode.create_root()
    a = GridNode("a")
    b = GridNode("b")
    root.append_node(a)
    a.append_node(b)
    assert not b.is_attached
    root.attach_child(a)
    a.attach_child(b)
    assert b.is_attached and b.parent is a
    detached = root.remove_children()
    assert detached == [a]
    assert not b.is_attached


def test_parent_reference_is_weak():
    root = GridNode.create_root()
    child = GridNode("c")
    root.append_node(child)
    root.attach_child(child)
    del root
    gc.collect()
    assert child.parent is None
    assert child.owner is None


def test_path_from_root_uses_ownership():
    root = GridNode.create_root()
    a = GridNode("a")
    b = GridNode("b")
    root.append_node(a)
    a.append_node(b)
    assert b.path_from_root() == [a, b]


def test_collapse_unreveals_realized_subtree_and_expand_restores_children():
    root = GridNode.create_root()
    a = GridNode("a", has_children=True)
    b = GridNode("b", has_children=True)
    c = GridNode("c")
    root.append_node(a)
    a.append_node(b)
    b.append_node(c)
    root.attach_child(a)
    a.attach_child(b)
    b.attach_child(c)
    a.expanded = b.expanded = True

    a.collapse()
    assert not b.revealed and not c.revealed

    a.expand()
    assert b.revealed and c.revealed


def test_remove_node_at_detaches_realized_child():
    parent = GridNode("p")
    child = GridNode("c")
    parent.append_node(child)
    parent.attach_child(child)
    removed = parent.remove_node_at(0)
    assert removed is child
    assert parent.children == [] and parent.all_children == []
    assert child.parent is None and child.owner is None


def test_insert_node_keeps_order():
    parent = GridNode("p")
    first, last, middle = GridNode("1"), GridNode("3"), GridNode("2")
    parent.append_node(first)
    parent.append_node(last)
    parent.insert_node(middle, 1)
    assert [n.node_id for n in parent.all_children] == ["1", "2", "3"]
    assert parent.has_children


def test_dispose_runs_disposers_for_whole_subtree():
    released = []
    root = GridNode.create_root()
    a = GridNode("a")
    b = GridNode("b")
    root.append_node(a)
    a.append_node(b)
    a.add_disposer(lambda: released.append("a"))
    b.add_disposer(lambda: released.append("b"))

    root.dispose()
    root.dispose()

    assert sorted(released) == ["a", "b"]
    assert a.disposed and b.disposed
    assert root.all_children == [] and a.owner is None


def test_node_filter_bounds_are_exclusive_then_inclusive():
    node_filter = NodeFilter(min_node_id=10, max_node_id=20)
    assert not node_filter.accepts(10)
    assert node_filter.accepts(11)
    assert node_filter.accepts(20)
    assert not node_filter.accepts(21)
    assert NodeFilter().accepts(0)


def test_node_filter_allocation_and_value_equality():
    node_filter = NodeFilter(allocation_node_id=3)
    assert node_filter.accepts(5, allocation_node_id=3)
    assert not node_filter.accepts(5, allocation_node_id=4)
    assert NodeFilter(1, 2) == NodeFilter(1, 2)
    assert NodeFilter(1, 2) != NodeFilter(1, 3)


def test_records_validate_and_derive_deltas():
    with pytest.raises(ValueError):
        AggregateForDiff(ids=(1, 2), self_sizes=(10,))
    diff = DiffRecord(added_count=3, removed_count=5, added_size=30, removed_size=10)
    assert diff.count_delta == -2
    assert diff.size_delta == 20
