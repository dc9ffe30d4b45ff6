from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Dict, List, Optional, Sequence, Tuple

from heapgrid.core.events import GridEvent
from heapgrid.core.models import GridNode
from heapgrid.ui.controllers.grid_controller import SortableGrid

ColumnSpec = Tuple[str, str]

DEFAULT_COLUMNS: Dict[str, List[ColumnSpec]] = {
    "constructors": [
        ("object", "Constructor"),
        ("distance", "Distance"),
        ("count", "Objects Count"),
        ("shallow_size", "Shallow Size"),
        ("retained_size", "Retained Size"),
    ],
    "retainment": [
        ("object", "Object"),
        ("distance", "Distance"),
        ("shallow_size", "Shallow Size"),
        ("retained_size", "Retained Size"),
    ],
    "containment": [
        ("object", "Object"),
        ("distance", "Distance"),
        ("shallow_size", "Shallow Size"),
        ("retained_size", "Retained Size"),
    ],
    "diff": [
        ("object", "Constructor"),
        ("added_count", "# New"),
        ("removed_count", "# Deleted"),
        ("count_delta", "# Delta"),
        ("added_size", "Alloc. Size"),
        ("removed_size", "Freed Size"),
        ("size_delta", "Size Delta"),
    ],
    "allocation": [
        ("name", "Function"),
        ("live_count", "Live Count"),
        ("count", "Count"),
        ("live_size", "Live Size"),
        ("size", "Size"),
    ],
}

# Columns that start ascending on first click; numeric columns start descending.
_NAME_COLUMNS = ("object", "name")

_PLACEHOLDER_SUFFIX = "::placeholder"


class HeapGridWidget(ttk.Frame):
    """Tkinter widget presenting the realized rows of a :class:`SortableGrid`.

    The Treeview only ever holds the rows the culler realized; the vertical
    scrollbar is driven by the grid's viewport state, not by the Treeview.

    Notes
    -----
    - Treeview item ids are internal; they map to nodes for the lifetime of
      one render only.
    - Name filter entry, header clicks and open/close events are forwarded to
      the grid; the widget re-renders on ``VIEWPORT_UPDATED``.
    """

    def __init__(
        self,
        master: "tk.Widget",
        grid: SortableGrid,
        *,
        columns: Optional[Sequence[ColumnSpec]] = None,
        show_filter: bool = True,
    ) -> None:
        super().__init__(master)
        self.grid_model = grid
        self._columns: List[ColumnSpec] = list(columns or DEFAULT_COLUMNS.get(grid.name, [("object", "Object")]))
        self._item_to_node: Dict[str, GridNode] = {}
        self._rendering = False

        self.rowconfigure(1, weight=1)
        self.columnconfigure(0, weight=1)

        self._filter_var = tk.StringVar(master=self)
        if show_filter:
            entry = ttk.Entry(self, textvariable=self._filter_var)
            entry.grid(row=0, column=0, columnspan=2, sticky="ew", pady=(0, 4))
            self._filter_var.trace_add("write", lambda *_: self._on_filter_changed())

        row_height = int(grid.settings.default_row_height)
        style = ttk.Style(self)
        style.configure("HeapGrid.Treeview", rowheight=row_height)

        value_columns = [column_id for column_id, _title in self._columns[1:]]
        self._tree = ttk.Treeview(
            self,
            columns=value_columns,
            show="tree headings",
            selectmode="browse",
            style="HeapGrid.Treeview",
        )
        first_id, first_title = self._columns[0]
        self._tree.heading("#0", text=first_title, command=lambda c=first_id: self._on_heading(c))
        for column_id, title in self._columns[1:]:
            self._tree.heading(column_id, text=title, command=lambda c=column_id: self._on_heading(c))
            self._tree.column(column_id, width=100, anchor="e", stretch=False)
        self._tree.grid(row=1, column=0, sticky="nsew")

        self._scrollbar = ttk.Scrollbar(self, orient="vertical", command=self._on_scrollbar)
        self._scrollbar.grid(row=1, column=1, sticky="ns")

        self._tree.bind("<<TreeviewOpen>>", self._on_open_event, add="+")
        self._tree.bind("<<TreeviewClose>>", self._on_close_event, add="+")
        self._tree.bind("<<TreeviewSelect>>", self._on_select_event, add="+")
        self._tree.bind("<Configure>", self._on_configure_event, add="+")
        self._tree.bind("<MouseWheel>", self._on_mouse_wheel, add="+")
        self._tree.bind("<Button-4>", lambda e: self._scroll_units(-3), add="+")
        self._tree.bind("<Button-5>", lambda e: self._scroll_units(3), add="+")

        grid.events.add_listener(GridEvent.VIEWPORT_UPDATED, self._on_viewport_updated)

    # ---------------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------------

    @property
    def tree(self) -> ttk.Treeview:
        return self._tree

    def node_for_item(self, item_id: str) -> Optional[GridNode]:
        return self._item_to_node.get(item_id)

    def render(self) -> None:
        """Rebuild the Treeview from the grid's realized structure."""
        tree = self._tree
        self._rendering = True
        try:
            tree.delete(*tree.get_children(""))
            self._item_to_node.clear()
            self._insert_children("", self.grid_model.root_node())
            self._restore_selection()
            self._sync_scroll_position()
        finally:
            self._rendering = False

    def destroy(self) -> None:
        self.grid_model.events.remove_listener(GridEvent.VIEWPORT_UPDATED, self._on_viewport_updated)
        super().destroy()

    # ---------------------------------------------------------------------------------
    # Rendering helpers
    # ---------------------------------------------------------------------------------

    def _insert_children(self, parent_item: str, parent: GridNode) -> None:
        for node in parent.children:
            values = [self._format_value(node.fields.get(column_id, "")) for column_id, _t in self._columns[1:]]
            item_id = self._tree.insert(parent_item, "end", text=node.name, values=values, open=node.expanded)
            self._item_to_node[item_id] = node
            if node.children:
                self._insert_children(item_id, node)
            elif node.has_children and not node.expanded:
                # Gives the row its open indicator until it is expanded.
                self._tree.insert(item_id, "end", iid=f"{item_id}{_PLACEHOLDER_SUFFIX}", text="")

    @staticmethod
    def _format_value(value: object) -> str:
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return f"{value:,}"
        return str(value)

    def _restore_selection(self) -> None:
        selected = self.grid_model.selected_node
        if selected is None:
            return
        for item_id, node in self._item_to_node.items():
            if node is selected:
                self._tree.selection_set(item_id)
                return

    def _sync_scroll_position(self) -> None:
        state = self.grid_model.viewport
        realized_height = state.content_height - state.top_padding_height - state.bottom_padding_height
        if realized_height > 0:
            offset = (state.scroll_top - state.top_padding_height) / realized_height
            self._tree.yview_moveto(min(max(offset, 0.0), 1.0))
        scroll_height = state.scroll_height
        if scroll_height > 0:
            self._scrollbar.set(state.scroll_top / scroll_height, min(state.scroll_bottom / scroll_height, 1.0))
        else:
            self._scrollbar.set(0.0, 1.0)

    # ---------------------------------------------------------------------------------
    # Event handlers
    # ---------------------------------------------------------------------------------

    def _on_viewport_updated(self, _grid: object) -> None:
        self.render()

    def _on_heading(self, column_id: str) -> None:
        grid = self.grid_model
        if column_id == grid.sort_column_id:
            ascending = not grid.sort_ascending
        else:
            ascending = column_id in _NAME_COLUMNS
        grid.sort_by(column_id, ascending)

    def _on_filter_changed(self) -> None:
        self.grid_model.set_name_filter(self._filter_var.get())

    def _on_open_event(self, _event: tk.Event) -> None:
        node = self.node_for_item(self._tree.focus())
        if node is not None and not self._rendering:
            self.grid_model.expand(node)

    def _on_close_event(self, _event: tk.Event) -> None:
        node = self.node_for_item(self._tree.focus())
        if node is not None and not self._rendering:
            self.grid_model.collapse(node)

    def _on_select_event(self, _event: tk.Event) -> None:
        if self._rendering:
            return
        selection = self._tree.selection()
        node = self.node_for_item(selection[0]) if selection else None
        if node is not None:
            self.grid_model.select_node(node)

    def _on_configure_event(self, event: tk.Event) -> None:
        # Heading row is not part of the scrollable viewport.
        self.grid_model.on_resize(max(0, event.height - self.grid_model.settings.default_row_height))

    def _on_mouse_wheel(self, event: tk.Event) -> str:
        self._scroll_units(-1 if event.delta > 0 else 1)
        return "break"

    def _scroll_units(self, units: int) -> str:
        grid = self.grid_model
        self._scroll_to(grid.viewport.scroll_top + units * grid.settings.default_row_height)
        self._sync_scroll_position()
        return "break"

    def _on_scrollbar(self, action: str, amount: str, unit: Optional[str] = None) -> None:
        grid = self.grid_model
        state = grid.viewport
        if action == "moveto":
            self._scroll_to(float(amount) * state.scroll_height)
        elif action == "scroll":
            step = state.viewport_height if unit == "pages" else grid.settings.default_row_height
            self._scroll_to(state.scroll_top + int(amount) * step)
        self._sync_scroll_position()

    def _scroll_to(self, scroll_top: float) -> None:
        state = self.grid_model.viewport
        limit = max(0.0, state.scroll_height - state.viewport_height)
        self.grid_model.scroll_to(min(max(scroll_top, 0.0), limit))
