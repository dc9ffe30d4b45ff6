"""Typed grid settings built from the ``grid`` configuration section."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class GridSettings:
    """Culling margins and row metrics shared by every grid variant."""

    # Extra realized rows above/below the visible area for keyboard navigation.
    guard_zone_height: float = 40
    # Window widening applied when a cull pass runs.
    hysteresis_height: float = 500
    # Space left above a revealed node after scrolling to it.
    reveal_scroll_gap: float = 40
    default_row_height: float = 20

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "GridSettings":
        known = {f.name for f in fields(cls)}
        values = {k: float(v) for k, v in (data or {}).items() if k in known and v is not None}
        return cls(**values)

    @classmethod
    def from_config(cls) -> "GridSettings":
        from heapgrid.config import ConfigManager

        return cls.from_mapping(ConfigManager().get_grid_config())


DEFAULT_GRID_SETTINGS = GridSettings()
