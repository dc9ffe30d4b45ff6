"""Population coordinators, one per grid variant family."""

from .allocation_coordinator import AllocationPopulationCoordinator
from .constructors_coordinator import ConstructorsPopulationCoordinator
from .containment_coordinator import ContainmentPopulationCoordinator
from .diff_coordinator import DiffPopulationCoordinator

__all__ = [
    "AllocationPopulationCoordinator",
    "ConstructorsPopulationCoordinator",
    "ContainmentPopulationCoordinator",
    "DiffPopulationCoordinator",
]
