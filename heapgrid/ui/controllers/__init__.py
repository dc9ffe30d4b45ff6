from .grid_controller import (  # noqa: F401
    GridState,
    GridVariant,
    SortableGrid,
    allocation_variant,
    constructors_variant,
    containment_variant,
    diff_variant,
    retainment_variant,
)
