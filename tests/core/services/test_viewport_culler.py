"""Viewport culling: padding accounting, skip rule, selection and reveal.

The 1000-row scenario uses rows of height 20 in a 200 high viewport with the
default guard zone (40) and hysteresis (500).
"""

import pytest

from heapgrid.core.exceptions import RevealInProgressError
from heapgrid.core.models import GridNode
from heapgrid.core.models.grid_config import GridSettings
from heapgrid.core.services.viewport_culler import ViewportCuller, ViewportState


@pytest.fixture
def culled_tree(make_tree):
    root, leaves = make_tree(1000)
    culler = ViewportCuller()
    culler.state.viewport_height = 200
    assert culler.recompute(root, force=True) is True
    return culler, root, leaves


def _scroll(culler, root, scroll_top):
    culler.state.scroll_top = scroll_top
    return culler.handle_scroll(root)


def test_scroll_height_is_at_least_viewport():
    state = ViewportState(scroll_top=10, viewport_height=300, content_height=100)
    assert state.scroll_height == 300
    assert state.scroll_bottom == 310


def test_first_forced_pass_realizes_window_plus_hysteresis(culled_tree):
    culler, root, leaves = culled_tree
    assert len(root.children) == 35
    assert root.children[0] is leaves[0]
    assert culler.state.top_padding_height == 0
    assert culler.state.bottom_padding_height == 19300
    assert culler.state.content_height == 20000
    assert culler.check_height_conservation(root)


def test_small_scroll_inside_realized_rows_is_skipped(culled_tree):
    culler, root, _leaves = culled_tree
    before = list(root.children)
    assert _scroll(culler, root, 100) is False
    assert root.children == before


def test_scrolling_past_realized_rows_recomputes(culled_tree):
    culler, root, leaves = culled_tree
    assert _scroll(culler, root, 1000) is True
    assert culler.state.top_padding_height == 460
    assert len(root.children) == 64
    assert root.children[0] is leaves[23]
    assert culler.state.bottom_padding_height == 18260
    assert culler.check_height_conservation(root)


def test_culling_is_deterministic(culled_tree):
    culler, root, _leaves = culled_tree
    _scroll(culler, root, 5000)
    first = [n.node_id for n in root.children]
    culler.recompute(root, force=True)
    assert [n.node_id for n in root.children] == first


def test_selection_survives_being_culled_away(culled_tree):
    culler, root, leaves = culled_tree
    culler.selection.select(leaves[10])

    _scroll(culler, root, 1000)
    assert culler.selection.node is leaves[10]
    assert not culler.selection.is_attached
    assert leaves[10].selected is False

    _scroll(culler, root, 0)
    assert culler.selection.node is leaves[10]
    assert culler.selection.is_attached
    assert leaves[10].selected is True


def test_collapsed_rows_contribute_only_their_own_height(make_leaves):
    root = GridNode.create_root()
    parent = GridNode("p", name="p", has_children=True)
    root.append_node(parent)
    make_leaves(parent, 10)
    culler = ViewportCuller(virtualized=False)

    assert culler.total_height(root) == 20
    parent.expanded = True
    assert culler.total_height(root) == 220


def test_unrevealed_rows_have_zero_height_until_realized(make_leaves):
    root = GridNode.create_root()
    parent = GridNode("p", name="p", has_children=True)
    root.append_node(parent)
    children = make_leaves(parent, 3)
    parent.expanded = True
    culler = ViewportCuller(virtualized=False)
    culler.recompute(root, force=True)
    assert culler.total_height(root) == 80

    parent.collapse()
    culler.recompute(root, force=True)
    assert all(not child.revealed for child in children)

    parent.expand()
    # Children were not realized while collapsed, so they still count as 0
    assert culler.node_height(parent) == 20

    culler.recompute(root, force=True)
    assert culler.node_height(parent) == 80
    assert culler.check_height_conservation(root)


def test_non_virtualized_culler_realizes_everything_and_ignores_scroll(make_leaves):
    root = GridNode.create_root()
    leaves = make_leaves(root, 300)
    culler = ViewportCuller(virtualized=False)
    culler.state.viewport_height = 100

    assert culler.recompute(root) is False
    assert culler.recompute(root, force=True) is True
    assert len(root.children) == 300
    assert culler.state.top_padding_height == 0
    assert culler.state.bottom_padding_height == 0
    assert culler.state.content_height == 6000
    assert _scroll(culler, root, 2000) is False
    assert root.children[-1] is leaves[-1]


def test_nested_expanded_rows_keep_heights_conserved(make_leaves):
    root = GridNode.create_root()
    groups = make_leaves(root, 50, prefix="group")
    for group in groups:
        group.has_children = True
        group.expanded = True
        make_leaves(group, 10, prefix=f"{group.name}-item")
    culler = ViewportCuller()
    culler.state.viewport_height = 300
    culler.recompute(root, force=True)
    for scroll_top in (0, 700, 4000, 9000, 10500):
        _scroll(culler, root, scroll_top)
        assert culler.check_height_conservation(root)
    assert culler.state.content_height == 50 * 11 * 20


def test_name_filter_hides_rows_and_their_height(make_leaves):
    root = GridNode.create_root()
    make_leaves(root, 20, prefix="keep")
    make_leaves(root, 20, prefix="drop")
    culler = ViewportCuller()
    culler.state.viewport_height = 1000

    culler.set_name_filter("KEEP")
    culler.recompute(root, force=True)

    assert culler.name_filter == "keep"
    assert {n.name[:4] for n in root.children} == {"keep"}
    assert culler.total_height(root) == 400
    assert culler.check_height_conservation(root)
    assert len(root.all_children) == 40


def test_custom_filter_predicate_is_used(make_leaves):
    root = GridNode.create_root()
    make_leaves(root, 10)
    culler = ViewportCuller(filter_predicate=lambda query, node: node.fields["index"] % 2 == 0)
    culler.state.viewport_height = 500
    culler.set_name_filter("odd")
    culler.recompute(root, force=True)
    assert [n.fields["index"] for n in root.children] == [1, 3, 5, 7, 9]


def test_settings_change_window_size(make_tree):
    root, _leaves = make_tree(1000)
    culler = ViewportCuller(GridSettings(guard_zone_height=0, hysteresis_height=0))
    culler.state.viewport_height = 200
    culler.recompute(root, force=True)
    assert len(root.children) == 10
    assert culler.state.top_padding_height == 0
    assert culler.state.bottom_padding_height == 19800
    assert culler.check_height_conservation(root)


def test_reveal_of_visible_node_resolves_immediately(culled_tree):
    culler, root, leaves = culled_tree
    future = culler.reveal_tree_node(root, [leaves[2]])
    assert future.done() and future.result() is leaves[2]
    assert culler.state.scroll_top == 0


def test_reveal_scrolls_and_resolves_on_next_scroll(culled_tree):
    culler, root, leaves = culled_tree
    future = culler.reveal_tree_node(root, [leaves[500]])

    assert not future.done()
    assert culler.state.scroll_top == 500 * 20 - 40
    assert culler.has_pending_reveal

    culler.handle_scroll(root)
    assert future.result() is leaves[500]
    assert leaves[500] in root.children
    assert not culler.has_pending_reveal


def test_second_reveal_while_pending_raises(culled_tree):
    culler, root, leaves = culled_tree
    culler.reveal_tree_node(root, [leaves[500]])
    with pytest.raises(RevealInProgressError):
        culler.reveal_tree_node(root, [leaves[600]])


def test_offset_accounts_for_ancestors_and_siblings(make_leaves):
    root = GridNode.create_root()
    first, second = make_leaves(root, 2, prefix="g")
    first.expanded = second.expanded = True
    make_leaves(first, 5)
    target = make_leaves(second, 3)[2]
    culler = ViewportCuller()
    # first (20) + its children (100) + second (20) + two siblings (40)
    assert culler.calculate_offset(root, [second, target]) == 180
