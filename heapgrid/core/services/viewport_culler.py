from __future__ import annotations

"""Viewport culling for virtualized grids.

The culler decides which rows of a (possibly huge) tree are realized into the
visible structure for the current scroll window.  Rows above and below the
window are never realized; their summed height is kept as top and bottom
padding so the scroll geometry stays correct.

After every completed pass::

    top_padding_height + sum(realized self heights) + bottom_padding_height
        == total_height(root)

Notes
-----
A row whose ``revealed`` flag is false has height 0, even when it is later
walked as padding.  Rows under a collapsed-then-expanded parent therefore do
not count until a pass realizes them.
"""

import logging
import math
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from heapgrid.core.exceptions import RevealInProgressError
from heapgrid.core.models import GridNode
from heapgrid.core.models.grid_config import DEFAULT_GRID_SETTINGS, GridSettings

__all__ = [
    "ViewportState",
    "SelectionModel",
    "ViewportCuller",
    "default_filter_predicate",
]

logger = logging.getLogger(__name__)

FilterPredicate = Callable[[str, GridNode], bool]


def default_filter_predicate(query: str, node: GridNode) -> bool:
    """Filter out rows whose name does not contain ``query`` (already lowercased)."""
    return query not in (node.name or "").lower()


@dataclass
class ViewportState:
    """Scroll geometry and padding totals of the last cull pass."""

    scroll_top: float = 0
    viewport_height: float = 0
    top_padding_height: float = 0
    bottom_padding_height: float = 0
    content_height: float = 0

    @property
    def scroll_height(self) -> float:
        return max(self.content_height, self.viewport_height)

    @property
    def scroll_bottom(self) -> float:
        return self.scroll_top + self.viewport_height


class SelectionModel:
    """Holds the selected row; the reference survives while it is culled away."""

    def __init__(self) -> None:
        self.node: Optional[GridNode] = None

    def select(self, node: Optional[GridNode]) -> None:
        if self.node is not None and self.node is not node:
            self.node.selected = False
        self.node = node
        if node is not None:
            node.selected = True

    def clear(self) -> None:
        self.select(None)

    @property
    def is_attached(self) -> bool:
        return self.node is not None and self.node.is_attached


class ViewportCuller:
    """Realizes the rows of a tree that intersect the (widened) scroll window.

    Parameters
    ----------
    settings : GridSettings
        Guard zone, hysteresis and reveal gap.
    virtualized : bool
        When False every expanded descendant is realized and both paddings
        stay at 0 (plain sortable grids).
    filter_predicate : Callable[[str, GridNode], bool]
        Returns True when a row is filtered out for the given query.
    """

    def __init__(
        self,
        settings: GridSettings = DEFAULT_GRID_SETTINGS,
        *,
        virtualized: bool = True,
        filter_predicate: FilterPredicate = default_filter_predicate,
    ) -> None:
        self.settings = settings
        self.virtualized = virtualized
        self.state = ViewportState()
        self.selection = SelectionModel()
        self._filter_predicate = filter_predicate
        self._name_filter = ""
        self._pending_reveal: Optional[Tuple[Future, GridNode]] = None
        self._top_padding = 0.0
        self._bottom_padding = 0.0

    # ------------------------------------------------------------------
    # Filter
    # ------------------------------------------------------------------
    @property
    def name_filter(self) -> str:
        return self._name_filter

    def set_name_filter(self, query: str) -> None:
        self._name_filter = (query or "").lower()

    def _is_filtered_out(self, node: GridNode) -> bool:
        return bool(self._name_filter) and self._filter_predicate(self._name_filter, node)

    # ------------------------------------------------------------------
    # Height accounting
    # ------------------------------------------------------------------
    def node_height(self, node: GridNode) -> float:
        if not node.revealed:
            return 0
        result = node.self_height
        if not node.expanded:
            return result
        for child in node.all_children:
            if not self._is_filtered_out(child):
                result += self.node_height(child)
        return result

    def total_height(self, root: GridNode) -> float:
        return self.node_height(root)

    def check_height_conservation(self, root: GridNode) -> bool:
        """True when paddings plus realized rows add up to the tree height."""
        realized = sum(node.self_height for node in root.iter_realized())
        laid_out = self.state.top_padding_height + realized + self.state.bottom_padding_height
        return math.isclose(laid_out, self.total_height(root), abs_tol=1e-6)

    # ------------------------------------------------------------------
    # Culling
    # ------------------------------------------------------------------
    def recompute(self, root: GridNode, force: bool = False) -> bool:
        """Rebuild the realized structure for the current scroll window.

        Returns False when the pass was skipped because the realized rows
        still cover the guarded window.
        """
        state = self.state
        if self.virtualized:
            guard = self.settings.guard_zone_height
            scroll_height = state.scroll_height
            scroll_top = max(0.0, state.scroll_top - guard)
            scroll_bottom = max(0.0, scroll_height - state.scroll_top - state.viewport_height - guard)
            viewport_height = scroll_height - scroll_top - scroll_bottom
            # Do nothing if realized rows still fit the viewport.
            if not force and scroll_top >= state.top_padding_height and scroll_bottom >= state.bottom_padding_height:
                return False
            hysteresis = self.settings.hysteresis_height
            top_bound = scroll_top - hysteresis
            bottom_bound = top_bound + viewport_height + 2 * hysteresis
        else:
            if not force:
                return False
            top_bound, bottom_bound = -math.inf, math.inf

        selected = self.selection.node
        if selected is not None:
            selected.selected = False
        root.remove_children()

        self._top_padding = 0.0
        self._bottom_padding = 0.0
        total = self._add_visible_nodes(root, top_bound, bottom_bound)

        state.top_padding_height = self._top_padding
        state.bottom_padding_height = self._bottom_padding
        state.content_height = total

        if selected is not None:
            # Keep selection even if the node is not in the current viewport.
            if selected.is_attached:
                self.selection.select(selected)
            else:
                self.selection.node = selected

        logger.debug(
            "Cull pass [%.0f, %.0f]: top=%.0f bottom=%.0f total=%.0f",
            top_bound, bottom_bound, state.top_padding_height, state.bottom_padding_height, total,
        )
        return True

    def _add_visible_nodes(self, parent: GridNode, top_bound: float, bottom_bound: float) -> float:
        if not parent.expanded:
            return 0

        children = parent.all_children
        count = len(children)

        # Rows entirely above the window only add to the top padding.
        top_padding = 0.0
        i = 0
        while i < count:
            child = children[i]
            if not self._is_filtered_out(child):
                new_top = top_padding + self.node_height(child)
                if new_top > top_bound:
                    break
                top_padding = new_top
            i += 1

        # Realize rows intersecting the window.
        position = top_padding
        while i < count and position < bottom_bound:
            child = children[i]
            i += 1
            if self._is_filtered_out(child):
                continue
            child.remove_children()
            child.revealed = True
            parent.attach_child(child)
            position += child.self_height
            position += self._add_visible_nodes(child, top_bound - position, bottom_bound - position)

        # Rows below the window only add to the bottom padding.
        bottom_padding = 0.0
        for child in children[i:]:
            if not self._is_filtered_out(child):
                bottom_padding += self.node_height(child)

        self._top_padding += top_padding
        self._bottom_padding += bottom_padding
        return position + bottom_padding

    # ------------------------------------------------------------------
    # Scrolling and reveal
    # ------------------------------------------------------------------
    def handle_scroll(self, root: GridNode) -> bool:
        """Scroll handler: cull if needed, then settle a pending reveal."""
        ran = self.recompute(root, force=False)
        pending, self._pending_reveal = self._pending_reveal, None
        if pending is not None:
            future, node = pending
            future.set_result(node)
        return ran

    @property
    def has_pending_reveal(self) -> bool:
        return self._pending_reveal is not None

    def calculate_offset(self, root: GridNode, path: Sequence[GridNode]) -> float:
        """Top offset of the last node of ``path`` (ancestors first, root excluded)."""
        parent = root
        height = 0.0
        for node in path:
            for child in parent.all_children:
                if child is node:
                    height += node.self_height
                    break
                if not self._is_filtered_out(child):
                    height += self.node_height(child)
            parent = node
        return height - path[-1].self_height

    def reveal_tree_node(self, root: GridNode, path: Sequence[GridNode]) -> "Future[GridNode]":
        """Scroll so that ``path[-1]`` becomes visible.

        The returned future resolves immediately when the node is already in
        the window, otherwise from the next :meth:`handle_scroll` call.
        """
        if not path:
            raise ValueError("path to reveal must not be empty")
        node = path[-1]
        height = self.calculate_offset(root, path)
        future: Future = Future()
        if self.state.scroll_top <= height < self.state.scroll_bottom:
            future.set_result(node)
            return future
        if self._pending_reveal is not None:
            raise RevealInProgressError("Another reveal is still waiting for its scroll event")
        self.state.scroll_top = max(0.0, height - self.settings.reveal_scroll_gap)
        self._pending_reveal = (future, node)
        logger.debug("Reveal %r: scrolling to %.0f", node, self.state.scroll_top)
        return future

    def realized_rows(self, root: GridNode) -> List[GridNode]:
        return list(root.iter_realized())
