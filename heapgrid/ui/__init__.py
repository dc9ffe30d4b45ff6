"""heapgrid UI package.

Controllers and coordinators are toolkit-free; the Tk widget lives in
:mod:`heapgrid.ui.widgets` and is imported explicitly by front-ends.
"""

from .controllers.grid_controller import GridVariant, SortableGrid  # noqa: F401
from .coordinators import (  # noqa: F401
    AllocationPopulationCoordinator,
    ConstructorsPopulationCoordinator,
    ContainmentPopulationCoordinator,
    DiffPopulationCoordinator,
)
