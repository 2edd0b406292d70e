"""DiffEngine: structural comparison of a base tree against an overlay.

Algorithm:
- Nodes present on both sides are compared property by property, then their
  children are matched by name.  Children are visited in ascending
  lexicographic order of name: first every overlay name (added or compared
  further), then every base-only name (removed).  When siblings share a name the
  last one wins.
- A node present on one side only is reported once as a node change, followed
  by one property entry per property it carries, then the same treatment for
  each of its children in their original order.
- Properties are compared in lexicographic order of name.  Equality is typed:
  a string and a cell list never compare equal, even if they render alike.

The result is computed on the first ``entries()`` call and cached on the
instance.  The trees must not be mutated while the engine is in use.
Traversal keeps its own work stack, so deep trees do not hit the interpreter
recursion limit.

Example::

    engine = DiffEngine(base_tree, overlay_tree)
    for entry in engine.entries():
        print(entry.kind, entry.path, entry.property_name)
    engine.modified_properties_count      # 2
"""

from __future__ import annotations

import logging

from devtree_diff.diff.entry import DiffEntry, DiffKind
from devtree_diff.diff.stats import DiffStats
from devtree_diff.tree import Node, Tree, join_path

__all__ = ["DiffEngine"]

logger = logging.getLogger(__name__)

_Work = tuple[Node | None, Node | None, str]


class DiffEngine:
    """Computes and caches the differences between two trees.

    Args:
        base: The reference tree.  May be None, which makes the engine
            invalid (see ``validation_errors``).
        overlay: The tree compared against ``base``.  May be None.

    The engine never raises for missing input: an invalid engine reports an
    empty entry tuple and lists the reasons in ``validation_errors()``.
    """

    def __init__(self, base: Tree | None, overlay: Tree | None) -> None:
        self._base = base
        self._overlay = overlay
        self._entries: tuple[DiffEntry, ...] | None = None

    @property
    def base(self) -> Tree | None:
        return self._base

    @property
    def overlay(self) -> Tree | None:
        return self._overlay

    # ------------------------------------------------------------------
    # Validity
    # ------------------------------------------------------------------

    def is_valid(self) -> bool:
        return self._base is not None and self._overlay is not None

    def validation_errors(self) -> list[str]:
        errors: list[str] = []
        if self._base is None:
            errors.append("Base device tree is missing")
        if self._overlay is None:
            errors.append("Overlay device tree is missing")
        return errors

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def entries(self) -> tuple[DiffEntry, ...]:
        """Return every difference, in traversal order.

        The same tuple object is returned on every call.
        """
        if self._entries is None:
            self._entries = self._compute()
        return self._entries

    def _compute(self) -> tuple[DiffEntry, ...]:
        if not self.is_valid():
            logger.warning(f"Diff skipped: {'; '.join(self.validation_errors())}")
            return ()
        assert self._base is not None and self._overlay is not None
        out: list[DiffEntry] = []
        self._compare(self._base.root, self._overlay.root, "/", out)
        logger.debug(
            f"Diff {self._base.source_id or '<base>'} -> "
            f"{self._overlay.source_id or '<overlay>'}: {len(out)} entries"
        )
        return tuple(out)

    def _compare(self, base: Node, overlay: Node, path: str, out: list[DiffEntry]) -> None:
        """Compare two subtrees depth-first using an explicit work stack.

        Each stack item is ``(base_node, overlay_node, path)`` with at most one
        side None.  Children are pushed in reverse so they pop in visit order.
        """
        stack: list[_Work] = [(base, overlay, path)]
        while stack:
            old, new, current = stack.pop()
            pending: list[_Work]
            if old is None or new is None:
                pending = self._one_sided(old, new, current, out)
            else:
                self._compare_properties(old, new, current, out)
                base_children = {child.name: child for child in old.children}
                overlay_children = {child.name: child for child in new.children}
                pending = [
                    (base_children.get(name), overlay_children[name], join_path(current, name))
                    for name in sorted(overlay_children)
                ]
                pending.extend(
                    (base_children[name], None, join_path(current, name))
                    for name in sorted(base_children.keys() - overlay_children.keys())
                )
            stack.extend(reversed(pending))

    def _one_sided(
        self,
        base: Node | None,
        overlay: Node | None,
        path: str,
        out: list[DiffEntry],
    ) -> list[_Work]:
        """Report one node present on a single side and return its children as work."""
        kind = DiffKind.ADDED if base is None else DiffKind.REMOVED
        node = overlay if base is None else base
        assert node is not None
        verb = "added" if kind is DiffKind.ADDED else "removed"
        out.append(DiffEntry(kind, path, description=f"Node {verb}: {node.name}"))
        for prop in sorted(node.properties, key=lambda p: p.name):
            rendered = prop.render()
            out.append(
                DiffEntry(
                    kind,
                    path,
                    property_name=prop.name,
                    old_value=rendered if kind is DiffKind.REMOVED else "",
                    new_value=rendered if kind is DiffKind.ADDED else "",
                    description=f"Property {verb}: {prop.name}",
                )
            )
        if kind is DiffKind.ADDED:
            return [(None, child, join_path(path, child.name)) for child in node.children]
        return [(child, None, join_path(path, child.name)) for child in node.children]

    def _compare_properties(
        self, base: Node, overlay: Node, path: str, out: list[DiffEntry]
    ) -> None:
        base_props = {prop.name: prop for prop in base.properties}
        overlay_props = {prop.name: prop for prop in overlay.properties}

        for name in sorted(overlay_props):
            new = overlay_props[name]
            old = base_props.get(name)
            if old is None:
                out.append(
                    DiffEntry(
                        DiffKind.ADDED,
                        path,
                        property_name=name,
                        new_value=new.render(),
                        description=f"Property added: {name}",
                    )
                )
            elif old.value != new.value:
                out.append(
                    DiffEntry(
                        DiffKind.MODIFIED,
                        path,
                        property_name=name,
                        old_value=old.render(),
                        new_value=new.render(),
                        description=f"Property modified: {name}",
                    )
                )

        for name in sorted(base_props.keys() - overlay_props.keys()):
            out.append(
                DiffEntry(
                    DiffKind.REMOVED,
                    path,
                    property_name=name,
                    old_value=base_props[name].render(),
                    description=f"Property removed: {name}",
                )
            )

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def _select(self, kind: DiffKind, node_change: bool) -> list[DiffEntry]:
        return [
            entry
            for entry in self.entries()
            if entry.kind is kind and entry.is_node_change == node_change
        ]

    def added_nodes(self) -> list[DiffEntry]:
        return self._select(DiffKind.ADDED, node_change=True)

    def removed_nodes(self) -> list[DiffEntry]:
        return self._select(DiffKind.REMOVED, node_change=True)

    def modified_properties(self) -> list[DiffEntry]:
        return self._select(DiffKind.MODIFIED, node_change=False)

    def added_properties(self) -> list[DiffEntry]:
        return self._select(DiffKind.ADDED, node_change=False)

    def removed_properties(self) -> list[DiffEntry]:
        return self._select(DiffKind.REMOVED, node_change=False)

    @property
    def added_nodes_count(self) -> int:
        return len(self.added_nodes())

    @property
    def removed_nodes_count(self) -> int:
        return len(self.removed_nodes())

    @property
    def modified_properties_count(self) -> int:
        return len(self.modified_properties())

    @property
    def added_properties_count(self) -> int:
        return len(self.added_properties())

    @property
    def removed_properties_count(self) -> int:
        return len(self.removed_properties())

    @property
    def total_changes(self) -> int:
        return len(self.entries())

    def stats(self) -> DiffStats:
        return DiffStats.from_entries(self.entries())
