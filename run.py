# -*- coding: utf-8 -*-

"""
Main entry point for launching the heapgrid demo window.
"""

import logging
import queue
import random
import tkinter as tk
from concurrent.futures import ThreadPoolExecutor
from tkinter import ttk

from heapgrid.core.models import AllocationTraceNode
from heapgrid.core.models.grid_config import GridSettings
from heapgrid.core.snapshot import HeapObject, InMemorySnapshot
from heapgrid.logging_config import setup_logging
from heapgrid.ui.controllers.grid_controller import (
    SortableGrid,
    allocation_variant,
    constructors_variant,
    containment_variant,
    diff_variant,
)
from heapgrid.ui.coordinators import (
    AllocationPopulationCoordinator,
    ConstructorsPopulationCoordinator,
    ContainmentPopulationCoordinator,
    DiffPopulationCoordinator,
)
from heapgrid.ui.widgets.heap_grid_widget import HeapGridWidget

logger = logging.getLogger(__name__)

CLASS_NAMES = ["Array", "Object", "String", "Closure", "Map", "Node", "Event", "Promise"]


def build_demo_snapshot(uid, object_count, *, seed, executor=None):
    """Random object graph rooted at object 1."""
    rng = random.Random(seed)
    ids = list(range(2, object_count + 2))
    objects = [HeapObject(1, "(GC roots)", 0, edges=tuple((f"root{i}", i) for i in ids[:50]))]
    for object_id in ids:
        edge_targets = rng.sample(ids, k=min(3, len(ids)))
        objects.append(HeapObject(
            id=object_id,
            class_name=rng.choice(CLASS_NAMES),
            self_size=rng.randint(16, 512),
            retained_size=rng.randint(16, 8192),
            distance=rng.randint(1, 12),
            edges=tuple((f"field{n}", target) for n, target in enumerate(edge_targets)),
            allocation_node_id=rng.randint(1, 3),
        ))
    tops = [
        AllocationTraceNode(id=n, name=f"allocate{n}", script_name="demo.js", line=10 * n,
                            count=rng.randint(10, 500), size=rng.randint(1000, 90000),
                            live_count=rng.randint(1, 10), live_size=rng.randint(100, 9000))
        for n in range(1, 4)
    ]
    return InMemorySnapshot(uid, objects, root_id=1, allocation_tops=tops, executor=executor)


def main():
    """
    Configure logging, main window, and launch the demo.
    """
    setup_logging()

    root = tk.Tk()
    root.title("heapgrid")
    window_width, window_height = 900, 620
    screen_width = root.winfo_screenwidth()
    screen_height = root.winfo_screenheight()
    pos_x = (screen_width // 2) - (window_width // 2)
    pos_y = (screen_height // 2) - (window_height // 2)
    root.geometry(f"{window_width}x{window_height}+{pos_x}+{pos_y}")

    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="heapgrid-provider")
    settings = GridSettings.from_config()

    # Provider completions arrive on worker threads; Tk is only touched from here.
    ui_queue = queue.Queue()

    def schedule_ui(callback):
        ui_queue.put(callback)

    def drain_ui_queue():
        while True:
            try:
                callback = ui_queue.get_nowait()
            except queue.Empty:
                break
            callback()
        root.after(20, drain_ui_queue)

    drain_ui_queue()

    base = build_demo_snapshot(1, 20000, seed=1, executor=executor)
    current = build_demo_snapshot(2, 24000, seed=2, executor=executor)

    notebook = ttk.Notebook(root)
    notebook.pack(fill="both", expand=True, padx=8, pady=8)

    constructors = SortableGrid(constructors_variant(), settings, schedule_ui)
    notebook.add(HeapGridWidget(notebook, constructors), text="Summary")
    ConstructorsPopulationCoordinator(constructors).set_data_source(current)

    diff = SortableGrid(diff_variant(), settings, schedule_ui)
    notebook.add(HeapGridWidget(notebook, diff), text="Comparison")
    diff_coordinator = DiffPopulationCoordinator(diff)
    diff_coordinator.set_data_source(current)
    diff_coordinator.set_base_data_source(base)

    containment = SortableGrid(containment_variant(), settings, schedule_ui)
    notebook.add(HeapGridWidget(notebook, containment), text="Containment")
    ContainmentPopulationCoordinator(containment).set_data_source(current, current.root_node_index)

    allocation = SortableGrid(allocation_variant(), settings, schedule_ui)
    notebook.add(HeapGridWidget(notebook, allocation), text="Allocation")
    AllocationPopulationCoordinator(allocation).set_data_source(current)

    try:
        root.mainloop()
    finally:
        for grid in (constructors, diff, containment, allocation):
            grid.dispose()
        executor.shutdown(wait=False)


if __name__ == '__main__':
    main()

    logging.info("===== Application terminated =====")
