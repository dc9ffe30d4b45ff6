"""Top-level package of heapgrid, a virtualized sortable tree grid engine.

The engine (nodes, sorting, culling, diffing) lives in :mod:`heapgrid.core`
and is free of GUI code.  :mod:`heapgrid.ui` hosts the grid controller, the
population coordinators and the Tk presentation widget.
"""

from .core.models import GridNode, NodeFilter  # re-export for convenience

__all__: list[str] = [
    "GridNode",
    "NodeFilter",
]
