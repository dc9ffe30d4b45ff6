from __future__ import annotations

"""Snapshot comparison (added/removed objects per class name).

Two snapshots are aggregated independently (typically by providers living in
separate workers).  The base side ships, per class name, the sorted ids of its
objects and their self sizes; the current side compares them with its own
lists.  Every class name present on either side yields a :class:`DiffRecord`;
a class missing on one side is treated as having no objects there.
"""

import logging
from typing import Dict, Iterable, Mapping, Tuple

from heapgrid.core.models import AggregateForDiff, DiffRecord

__all__ = ["DiffService"]

logger = logging.getLogger(__name__)


class DiffService:
    """Stateless helper computing per-class deltas between two snapshots."""

    @staticmethod
    def aggregates_for_diff(objects: Iterable[Tuple[str, int, int]]) -> Dict[str, AggregateForDiff]:
        """Group ``(class_name, object_id, self_size)`` triples by class name."""
        grouped: Dict[str, list] = {}
        for class_name, object_id, self_size in objects:
            grouped.setdefault(class_name, []).append((object_id, self_size))
        result: Dict[str, AggregateForDiff] = {}
        for class_name, entries in grouped.items():
            entries.sort()
            result[class_name] = AggregateForDiff(
                ids=tuple(e[0] for e in entries),
                self_sizes=tuple(e[1] for e in entries),
            )
        return result

    def compute_diff(
        self,
        base: Mapping[str, AggregateForDiff],
        current: Mapping[str, AggregateForDiff],
    ) -> Dict[str, DiffRecord]:
        """Return a delta record for every class name found in either map."""
        empty = AggregateForDiff()
        result: Dict[str, DiffRecord] = {}
        for class_name in sorted(set(base) | set(current)):
            result[class_name] = self._diff_for_class(
                base.get(class_name, empty), current.get(class_name, empty)
            )
        logger.debug("Computed diff for %d class(es)", len(result))
        return result

    @staticmethod
    def _diff_for_class(base: AggregateForDiff, current: AggregateForDiff) -> DiffRecord:
        # Both id lists are sorted: walk them in lockstep.
        added_count = removed_count = added_size = removed_size = 0
        deleted = []
        i = j = 0
        while i < len(base.ids) and j < len(current.ids):
            base_id, current_id = base.ids[i], current.ids[j]
            if base_id < current_id:
                deleted.append(base_id)
                removed_count += 1
                removed_size += base.self_sizes[i]
                i += 1
            elif base_id > current_id:
                added_count += 1
                added_size += current.self_sizes[j]
                j += 1
            else:
                i += 1
                j += 1
        while i < len(base.ids):
            deleted.append(base.ids[i])
            removed_count += 1
            removed_size += base.self_sizes[i]
            i += 1
        while j < len(current.ids):
            added_count += 1
            added_size += current.self_sizes[j]
            j += 1
        return DiffRecord(
            added_count=added_count,
            removed_count=removed_count,
            added_size=added_size,
            removed_size=removed_size,
            deleted_ids=tuple(deleted),
        )
