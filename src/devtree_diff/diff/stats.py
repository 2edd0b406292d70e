"""DiffStats and entry filters: summaries over a list of DiffEntry values.

The filters are plain functions over any iterable of entries and return new
lists; they never touch the engine that produced the entries.

Example::

    engine = DiffEngine(base, overlay)
    engine.stats().modified_properties         # 3
    filter_by_path(engine.entries(), "/soc")   # changes under /soc
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from devtree_diff.diff.entry import DiffEntry, DiffKind

__all__ = ["DiffStats", "filter_by_kind", "filter_by_path", "filter_by_property"]


@dataclass(frozen=True, slots=True)
class DiffStats:
    """Change counts by category.

    ``added_nodes`` and ``removed_nodes`` count whole-node entries only;
    property entries under an added node count as ``added_properties``.
    """

    total_changes: int = 0
    added_nodes: int = 0
    removed_nodes: int = 0
    modified_properties: int = 0
    added_properties: int = 0
    removed_properties: int = 0

    @classmethod
    def from_entries(cls, entries: Iterable[DiffEntry]) -> DiffStats:
        counts = {
            "added_nodes": 0,
            "removed_nodes": 0,
            "modified_properties": 0,
            "added_properties": 0,
            "removed_properties": 0,
        }
        total = 0
        for entry in entries:
            total += 1
            if entry.is_node_change:
                if entry.kind is DiffKind.ADDED:
                    counts["added_nodes"] += 1
                elif entry.kind is DiffKind.REMOVED:
                    counts["removed_nodes"] += 1
            elif entry.kind is DiffKind.ADDED:
                counts["added_properties"] += 1
            elif entry.kind is DiffKind.REMOVED:
                counts["removed_properties"] += 1
            else:
                counts["modified_properties"] += 1
        return cls(total_changes=total, **counts)

    @property
    def has_changes(self) -> bool:
        return self.total_changes > 0


def filter_by_kind(entries: Iterable[DiffEntry], kind: DiffKind | str) -> list[DiffEntry]:
    """Entries of the given kind (``DiffKind`` or its string value)."""
    kind = DiffKind(kind)
    return [entry for entry in entries if entry.kind is kind]


def filter_by_path(entries: Iterable[DiffEntry], substring: str) -> list[DiffEntry]:
    """Entries whose node path contains ``substring``."""
    return [entry for entry in entries if substring in entry.path]


def filter_by_property(entries: Iterable[DiffEntry], substring: str) -> list[DiffEntry]:
    """Property entries whose name contains ``substring``.

    Node entries never match, even for an empty ``substring``.
    """
    return [
        entry
        for entry in entries
        if not entry.is_node_change and substring in entry.property_name
    ]
