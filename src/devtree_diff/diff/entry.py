"""DiffKind and DiffEntry: one reported difference between two trees."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

__all__ = ["DiffEntry", "DiffKind"]


class DiffKind(StrEnum):
    """Kind of change, from the overlay's point of view."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass(frozen=True, slots=True)
class DiffEntry:
    """A single node or property change.

    Attributes:
        kind: Whether the item was added, removed or modified.
        path: Full path of the node the change belongs to.
        property_name: Name of the changed property.  Empty for a whole-node
            change.
        old_value: Rendered base value (empty when added or for node changes).
        new_value: Rendered overlay value (empty when removed or for node changes).
        description: Human-readable one-line summary, e.g.
            ``"Property modified: status"``.
    """

    kind: DiffKind
    path: str
    property_name: str = ""
    old_value: str = ""
    new_value: str = ""
    description: str = ""

    @property
    def is_node_change(self) -> bool:
        return not self.property_name

    def __str__(self) -> str:
        if self.is_node_change:
            return f"{self.kind}: {self.path}"
        if self.kind is DiffKind.MODIFIED:
            return f"{self.kind}: {self.path}:{self.property_name} {self.old_value!r} -> {self.new_value!r}"
        value = self.new_value if self.kind is DiffKind.ADDED else self.old_value
        return f"{self.kind}: {self.path}:{self.property_name} {value!r}"
