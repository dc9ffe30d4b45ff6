"""Services of the grid engine.

Each service is UI-agnostic and can be exercised directly from tests.
"""

from .diff_service import DiffService
from .sort_service import (
    ALLOCATION_COLUMNS,
    CONSTRUCTORS_COLUMNS,
    CONTAINMENT_COLUMNS,
    DIFF_COLUMNS,
    RETAINMENT_COLUMNS,
    ColumnTable,
    PrimaryOrder,
    SortColumn,
    SortEngine,
)
from .viewport_culler import SelectionModel, ViewportCuller, ViewportState

__all__ = [
    "DiffService",
    "SortEngine",
    "SortColumn",
    "ColumnTable",
    "PrimaryOrder",
    "CONSTRUCTORS_COLUMNS",
    "RETAINMENT_COLUMNS",
    "CONTAINMENT_COLUMNS",
    "DIFF_COLUMNS",
    "ALLOCATION_COLUMNS",
    "ViewportCuller",
    "ViewportState",
    "SelectionModel",
]
