"""Value objects exchanged with snapshot providers.

Providers aggregate heap objects per class (constructor) name.  These records
are what the population coordinators turn into grid rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Aggregate:
    """Summary of all objects sharing one class name under a filter."""

    name: str
    count: int
    distance: int
    self_size: int
    retained_size: int
    ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class AggregateForDiff:
    """Per-class object ids (sorted) and their self sizes, used for diffing."""

    ids: Tuple[int, ...] = ()
    self_sizes: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if len(self.ids) != len(self.self_sizes):
            raise ValueError("ids and self_sizes must have the same length")


@dataclass(frozen=True)
class DiffRecord:
    """Delta between a base and a current snapshot for one class name."""

    added_count: int = 0
    removed_count: int = 0
    added_size: int = 0
    removed_size: int = 0
    deleted_ids: Tuple[int, ...] = ()

    @property
    def count_delta(self) -> int:
        return self.added_count - self.removed_count

    @property
    def size_delta(self) -> int:
        return self.added_size - self.removed_size


@dataclass(frozen=True)
class AllocationTraceNode:
    """Top-level allocation trace entry (one allocating function)."""

    id: int
    name: str
    script_name: str = ""
    line: int = 0
    column: int = 0
    count: int = 0
    size: int = 0
    live_count: int = 0
    live_size: int = 0
    has_children: bool = False
    children: Tuple["AllocationTraceNode", ...] = field(default=(), compare=False)
    parent_id: Optional[int] = None
