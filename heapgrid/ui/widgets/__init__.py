from .heap_grid_widget import HeapGridWidget  # noqa: F401
