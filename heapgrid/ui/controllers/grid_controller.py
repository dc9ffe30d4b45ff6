from __future__ import annotations

"""Tree host shared by every heap grid variant.

:class:`SortableGrid` owns the root node, the sort engine and the viewport
culler of one grid.  It contains no UI toolkit code: widgets subscribe to the
grid events and read the realized rows, population coordinators feed it rows.

Variant behaviour is described by a :class:`GridVariant` capability set built
by the factory functions at the bottom of this module.
"""

import contextlib
import enum
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from heapgrid.core.events import EventDispatcher, GridEvent
from heapgrid.core.exceptions import ProviderError
from heapgrid.core.models import GridNode
from heapgrid.core.models.grid_config import DEFAULT_GRID_SETTINGS, GridSettings
from heapgrid.core.providers import ChildProvider
from heapgrid.core.snapshot import object_root_factory
from heapgrid.core.services.sort_service import (
    ALLOCATION_COLUMNS,
    CONSTRUCTORS_COLUMNS,
    CONTAINMENT_COLUMNS,
    DIFF_COLUMNS,
    RETAINMENT_COLUMNS,
    ColumnTable,
    SortEngine,
)
from heapgrid.core.services.viewport_culler import ViewportCuller, ViewportState

__all__ = [
    "GridState",
    "GridVariant",
    "SortableGrid",
    "constructors_variant",
    "diff_variant",
    "containment_variant",
    "retainment_variant",
    "allocation_variant",
]

logger = logging.getLogger(__name__)

Scheduler = Callable[[Callable[[], None]], None]


def _call_inline(callback: Callable[[], None]) -> None:
    callback()


class GridState(enum.Enum):
    EMPTY = "empty"
    POPULATING = "populating"
    SORTED = "sorted"
    STABLE = "stable"


@dataclass
class GridVariant:
    """Capability set of one grid use site.

    Attributes
    ----------
    name
        Short identifier used in logs and error messages.
    column_table
        Sort recipes of the columns shown by this variant.
    child_provider
        Loads children of lazily-populated rows; None for flat grids.
    root_node_factory
        Builds the root row (containment/retainment views).
    virtualized
        Whether the culler restricts realization to the scroll window.
    default_sort
        ``(column_id, ascending)`` applied before the first header click.
    """

    name: str
    column_table: ColumnTable
    child_provider: Optional[ChildProvider] = None
    root_node_factory: Optional[Callable[..., GridNode]] = None
    virtualized: bool = True
    default_sort: Tuple[str, bool] = ("retained_size", False)
    resource_resetters: List[Callable[[], None]] = field(default_factory=list)

    def reset_resources(self) -> None:
        """Release per-variant resources (link formatters and the like)."""
        for reset in list(self.resource_resetters):
            reset()


class SortableGrid:
    """Virtualized, sortable, lazily-populated tree of :class:`GridNode` rows.

    Parameters
    ----------
    variant : GridVariant
        Capability set of this grid.
    settings : Optional[GridSettings]
        Culling margins; defaults to the built-in values.
    schedule_ui : Optional[Callable[[Callable[[], None]], None]]
        Marshals provider completions onto the UI thread.  Defaults to
        calling them inline (tests, synchronous providers).

    Notes
    -----
    - Events: ``CONTENT_SHOWN`` after the first sort of a new population,
      ``SORTING_COMPLETE`` whenever the outermost sort pass settles and
      ``VIEWPORT_UPDATED`` after every cull pass.
    - ``sort_handler`` lets a coordinator take over header sorting (the
      allocation view re-orders its top list instead of the tree).
    """

    def __init__(
        self,
        variant: GridVariant,
        settings: Optional[GridSettings] = None,
        schedule_ui: Optional[Scheduler] = None,
    ) -> None:
        self.variant = variant
        self.settings = settings or DEFAULT_GRID_SETTINGS
        self.events = EventDispatcher()
        self.culler = ViewportCuller(self.settings, virtualized=variant.virtualized)
        self.sort_engine = SortEngine(variant.column_table, on_settled=self._on_sorting_settled)
        self.state = GridState.EMPTY
        self.sort_column_id, self.sort_ascending = variant.default_sort
        self.sort_handler: Optional[Callable[[str, bool], None]] = None
        self.highlighted_node: Optional[GridNode] = None
        self._schedule_ui: Scheduler = schedule_ui or _call_inline
        self._root = GridNode.create_root()
        self._populated_and_sorted = False
        self._population_waiters: Dict[GridNode, List[Future]] = {}
        self._disposed = False

    def __repr__(self) -> str:
        return f"SortableGrid({self.variant.name!r}, state={self.state.value})"

    @property
    def name(self) -> str:
        return self.variant.name

    @property
    def viewport(self) -> ViewportState:
        return self.culler.state

    def schedule_ui(self, callback: Callable[[], None]) -> None:
        self._schedule_ui(callback)

    # ---------------------------------------------------------------------------------
    # Tree structure
    # ---------------------------------------------------------------------------------

    def set_root_node(self, node: GridNode) -> None:
        """Replace the root row, disposing the previous tree."""
        if node is self._root:
            return
        self._clear_current_highlight()
        self.culler.selection.clear()
        self._root.dispose()
        node.is_root = True
        node.expanded = True
        self._root = node
        self._populated_and_sorted = False
        self.state = GridState.POPULATING if node.has_children else GridState.EMPTY

    def root_node(self) -> GridNode:
        return self._root

    def top_level_nodes(self) -> List[GridNode]:
        return list(self._root.all_children)

    def begin_population(self) -> None:
        """Mark the grid as waiting for rows of a new data binding."""
        self._populated_and_sorted = False
        self.state = GridState.POPULATING

    def append_node(self, parent: GridNode, node: GridNode) -> None:
        if parent is self._root and self.state is GridState.EMPTY:
            self.begin_population()
        parent.append_node(node)

    def insert_child(self, parent: GridNode, node: GridNode, index: int) -> None:
        parent.insert_node(node, index)

    def remove_child_by_index(self, parent: GridNode, index: int) -> GridNode:
        node = parent.remove_node_at(index)
        self.node_was_detached(node)
        return node

    def remove_all_children(self, parent: GridNode) -> None:
        for child in parent.remove_children():
            self.node_was_detached(child)
        while parent.all_children:
            parent.remove_node_at(len(parent.all_children) - 1)

    def remove_top_level_nodes(self) -> None:
        """Dispose every row below the root and return to the empty state."""
        self._clear_current_highlight()
        self.culler.selection.clear()
        for node in self._root.all_children:
            node.dispose()
        self._root.remove_children()
        self._root.all_children = []
        self._populated_and_sorted = False
        self.state = GridState.EMPTY

    def realized_rows(self) -> List[GridNode]:
        return self.culler.realized_rows(self._root)

    # ---------------------------------------------------------------------------------
    # Sorting
    # ---------------------------------------------------------------------------------

    def sort_by(self, column_id: str, ascending: bool) -> None:
        """Column header changed: remember it and re-sort."""
        self.variant.column_table.lookup(column_id)
        self.sort_column_id = column_id
        self.sort_ascending = ascending
        if self.state is GridState.STABLE:
            self.state = GridState.SORTED
        self.sorting_changed()

    def sorting_changed(self) -> None:
        if self.sort_handler is not None:
            self.sort_handler(self.sort_column_id, self.sort_ascending)
            return
        self.sort_engine.apply(self._root, self.sort_column_id, self.sort_ascending)

    def reset_sorting_cache(self) -> None:
        self.sort_engine.reset_cache()

    @contextlib.contextmanager
    def batch_update(self) -> Iterator["SortableGrid"]:
        """Hold back the settle callback until the block and its async work end."""
        self.sort_engine.enter()
        try:
            yield self
        finally:
            self.sort_engine.leave()

    def notify_sorting_complete(self) -> None:
        """Settle without sorting (coordinators that order rows themselves)."""
        self._on_sorting_settled()

    def _on_sorting_settled(self) -> None:
        if self._disposed:
            return
        first_after_population = self.state is GridState.POPULATING
        self.state = GridState.SORTED
        self.update_visible_nodes(True)
        self.state = GridState.STABLE
        self._populated_and_sorted = True
        self.events.dispatch(GridEvent.SORTING_COMPLETE, self)
        if first_after_population:
            self.events.dispatch(GridEvent.CONTENT_SHOWN, self)

    # ---------------------------------------------------------------------------------
    # Expansion and lazy population
    # ---------------------------------------------------------------------------------

    def expand(self, node: GridNode) -> "Future[GridNode]":
        """Expand ``node``; the future resolves once its children are loaded."""
        if node.expanded and node.populated:
            done: Future = Future()
            done.set_result(node)
            return done
        node.expand()
        if not node.populated:
            return self.populate_node(node)
        self.sort_engine.sort_subtree(node)
        done = Future()
        done.set_result(node)
        return done

    def collapse(self, node: GridNode) -> None:
        if not node.expanded:
            return
        node.collapse()
        self.update_visible_nodes(True)

    def populate_node(self, node: GridNode) -> "Future[GridNode]":
        """Load the children of ``node`` through the variant's child provider."""
        done: Future = Future()
        waiters = self._population_waiters.get(node)
        if waiters is not None:
            waiters.append(done)
            return done
        provider = self.variant.child_provider
        if provider is None:
            node.populated = True
            self.sort_engine.sort_subtree(node)
            done.set_result(node)
            return done

        self._population_waiters[node] = [done]
        self.sort_engine.enter()
        try:
            future = provider.populate_children(node)
        except Exception as exc:
            self._children_received(node, None, exc)
            return done
        future.add_done_callback(
            lambda f: self._schedule_ui(lambda: self._children_received(node, f, None))
        )
        return done

    def _children_received(
        self, node: GridNode, future: Optional[Future], error: Optional[BaseException]
    ) -> None:
        waiters = self._population_waiters.pop(node, [])
        try:
            rows: List[GridNode] = []
            if error is None and future is not None:
                try:
                    rows = list(future.result() or [])
                except Exception as exc:
                    error = exc
            if error is not None:
                failure = ProviderError("Child population failed", request="populate_children", cause=error)
                logger.warning("%s for %r on %s: %s", failure, node, self.name, error)
            if node.disposed or self._disposed:
                return
            for row in rows:
                node.append_node(row)
            node.populated = True
            if not node.all_children:
                node.has_children = False
            if node.expanded:
                self.sort_engine.sort_subtree(node)
        finally:
            self.sort_engine.leave()
            for waiter in waiters:
                waiter.set_result(node)

    # ---------------------------------------------------------------------------------
    # Selection and highlight
    # ---------------------------------------------------------------------------------

    def select_node(self, node: Optional[GridNode]) -> None:
        self.culler.selection.select(node)

    @property
    def selected_node(self) -> Optional[GridNode]:
        return self.culler.selection.node

    def highlight_node(self, node: GridNode) -> None:
        self._clear_current_highlight()
        self.highlighted_node = node

    def node_was_detached(self, node: GridNode) -> None:
        if self.highlighted_node is node:
            self._clear_current_highlight()

    def _clear_current_highlight(self) -> None:
        self.highlighted_node = None

    # ---------------------------------------------------------------------------------
    # Viewport
    # ---------------------------------------------------------------------------------

    def set_viewport(self, scroll_top: float, viewport_height: float) -> None:
        state = self.culler.state
        state.scroll_top = max(0.0, scroll_top)
        state.viewport_height = max(0.0, viewport_height)

    def on_scroll(self) -> bool:
        ran = self.culler.handle_scroll(self._root)
        if ran:
            self.events.dispatch(GridEvent.VIEWPORT_UPDATED, self)
        return ran

    def on_resize(self, viewport_height: float) -> bool:
        self.culler.state.viewport_height = max(0.0, viewport_height)
        return self.update_visible_nodes(False)

    def scroll_to(self, scroll_top: float) -> bool:
        self.culler.state.scroll_top = max(0.0, scroll_top)
        return self.on_scroll()

    def update_visible_nodes(self, force: bool = False) -> bool:
        ran = self.culler.recompute(self._root, force)
        if ran:
            self.events.dispatch(GridEvent.VIEWPORT_UPDATED, self)
        return ran

    def reveal_tree_node(self, path: Sequence[GridNode]) -> "Future[GridNode]":
        """Expand the ancestors on ``path`` and scroll its last node into view."""
        expanded_any = False
        for ancestor in path[:-1]:
            if not ancestor.expanded:
                ancestor.expand()
                expanded_any = True
        if any(not ancestor.populated for ancestor in path[:-1]):
            logger.debug("Revealing %r through unpopulated ancestors", path[-1])
        if expanded_any:
            # Newly expanded rows must be realized before offsets are measured.
            self.update_visible_nodes(True)
        future = self.culler.reveal_tree_node(self._root, path)
        if self.culler.has_pending_reveal:
            self._schedule_ui(self.on_scroll)
        return future

    # ---------------------------------------------------------------------------------
    # Name filter
    # ---------------------------------------------------------------------------------

    def set_name_filter(self, query: str) -> None:
        self.culler.set_name_filter(query)
        self.update_visible_nodes(True)

    def reset_name_filter(self) -> None:
        self.set_name_filter("")

    # ---------------------------------------------------------------------------------
    # Visibility and lifecycle
    # ---------------------------------------------------------------------------------

    @property
    def populated_and_sorted(self) -> bool:
        return self._populated_and_sorted

    def was_shown(self) -> None:
        if self._populated_and_sorted:
            self.events.dispatch(GridEvent.CONTENT_SHOWN, self)

    def will_hide(self) -> None:
        self._clear_current_highlight()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._clear_current_highlight()
        self.culler.selection.clear()
        self._root.dispose()
        self.variant.reset_resources()
        logger.debug("Disposed grid %s", self.name)


# -------------------------------------------------------------------------------------
# Variant factories
# -------------------------------------------------------------------------------------

def constructors_variant(child_provider: Optional[ChildProvider] = None) -> GridVariant:
    return GridVariant(
        name="constructors",
        column_table=CONSTRUCTORS_COLUMNS,
        child_provider=child_provider,
        default_sort=("retained_size", False),
    )


def diff_variant(child_provider: Optional[ChildProvider] = None) -> GridVariant:
    return GridVariant(
        name="diff",
        column_table=DIFF_COLUMNS,
        child_provider=child_provider,
        default_sort=("added_size", False),
    )


def containment_variant(
    child_provider: Optional[ChildProvider] = None,
    root_node_factory: Optional[Callable[..., GridNode]] = None,
) -> GridVariant:
    return GridVariant(
        name="containment",
        column_table=CONTAINMENT_COLUMNS,
        child_provider=child_provider,
        root_node_factory=root_node_factory or object_root_factory,
        virtualized=False,
        default_sort=("retained_size", False),
    )


def retainment_variant(
    child_provider: Optional[ChildProvider] = None,
    root_node_factory: Optional[Callable[..., GridNode]] = None,
) -> GridVariant:
    return GridVariant(
        name="retainment",
        column_table=RETAINMENT_COLUMNS,
        child_provider=child_provider,
        root_node_factory=root_node_factory or object_root_factory,
        virtualized=False,
        default_sort=("distance", True),
    )


def allocation_variant(child_provider: Optional[ChildProvider] = None) -> GridVariant:
    return GridVariant(
        name="allocation",
        column_table=ALLOCATION_COLUMNS,
        child_provider=child_provider,
        default_sort=("size", False),
    )
