"""Tree and Node: arena-backed device tree representation.

A ``Tree`` owns every node record in a single list (the arena).  Each record
keeps its name, its properties, the indices of its children, and the index of
its parent.  ``Node`` is a small handle pairing a tree with an index, so there
are no parent/child reference cycles and a full path is rebuilt in O(depth)
by following parent indices.

Full paths:
    The root is ``"/"``.  Every other node is the ``/``-joined chain of its
    ancestors' names below the root, e.g. ``"/soc/serial@1000"``.

Example::

    tree = Tree(source_id="board.dts")
    soc = tree.root.add_child("soc")
    uart = soc.add_child("serial@1000")
    uart.add_property("compatible", PropertyValue.string("ns16550a"))
    uart.full_path()                     # "/soc/serial@1000"
    tree.find_by_path("/soc/serial@1000") == uart   # True
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from devtree_diff.tree.values import Property, PropertyValue

__all__ = ["Node", "Tree", "join_path"]

ROOT_NAME = "/"


def join_path(parent: str, name: str) -> str:
    """Join a child name onto a node path without doubling the root slash."""
    if parent == ROOT_NAME or not parent:
        return f"/{name}"
    return f"{parent}/{name}"


@dataclass(slots=True)
class _NodeRecord:
    """Arena slot for one node.  ``properties`` keeps insertion order."""

    name: str
    parent: int | None
    children: list[int] = field(default_factory=list)
    properties: dict[str, Property] = field(default_factory=dict)


class Node:
    """Handle to one node inside a ``Tree``.

    Handles are cheap to create and compare equal when they point at the same
    slot of the same tree.  All state lives in the tree's arena.
    """

    __slots__ = ("_index", "_tree")

    def __init__(self, tree: Tree, index: int) -> None:
        self._tree = tree
        self._index = index

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self._tree is other._tree and self._index == other._index

    def __hash__(self) -> int:
        return hash((id(self._tree), self._index))

    def __repr__(self) -> str:
        if not self.is_attached:
            return f"Node({self.name!r}, detached)"
        return f"Node({self.full_path()!r})"

    @property
    def _record(self) -> _NodeRecord:
        return self._tree._records[self._index]

    @property
    def tree(self) -> Tree:
        return self._tree

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._record.name

    @property
    def is_root(self) -> bool:
        return self._index == self._tree._root_index

    @property
    def parent(self) -> Node | None:
        parent = self._record.parent
        return None if parent is None else Node(self._tree, parent)

    @property
    def children(self) -> list[Node]:
        return [Node(self._tree, i) for i in self._record.children]

    def add_child(self, name: str) -> Node:
        """Create a new child named ``name`` and append it after existing children."""
        if not name:
            raise ValueError("child node name must not be empty")
        index = self._tree._allocate(name, parent=self._index)
        self._record.children.append(index)
        return Node(self._tree, index)

    def remove_child(self, child: Node) -> None:
        """Detach a direct child (and its subtree) from this node.

        The detached records stay in the arena.  Handles to them keep working
        for names, properties and walks, but ``full_path()`` raises because
        they are no longer reachable from the root.

        Raises:
            ValueError: If ``child`` is not a direct child of this node.
        """
        if child._tree is not self._tree or child._index not in self._record.children:
            raise ValueError(f"{child!r} is not a child of {self!r}")
        self._record.children.remove(child._index)
        child._record.parent = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def properties(self) -> list[Property]:
        return list(self._record.properties.values())

    @property
    def property_count(self) -> int:
        return len(self._record.properties)

    def add_property(
        self,
        prop: Property | str,
        value: PropertyValue | None = None,
    ) -> Property:
        """Add a property, replacing any existing property with the same name.

        Accepts either a ``Property`` or a name plus a ``PropertyValue``.  A
        replaced property is removed and the new one appended at the end, so
        the most recent add wins and the count does not change.
        """
        if isinstance(prop, str):
            if value is None:
                raise TypeError("add_property(name, value) requires a value")
            prop = Property(prop, value)
        elif value is not None:
            raise TypeError("pass either a Property or a name and value, not both")
        props = self._record.properties
        props.pop(prop.name, None)
        props[prop.name] = prop
        return prop

    def remove_property(self, name: str) -> bool:
        """Remove the named property.  Returns True if it existed."""
        return self._record.properties.pop(name, None) is not None

    def find_property(self, name: str) -> Property | None:
        return self._record.properties.get(name)

    # ------------------------------------------------------------------
    # Paths and search
    # ------------------------------------------------------------------

    @property
    def is_attached(self) -> bool:
        """True while the node is reachable from the tree's root."""
        records = self._tree._records
        index = self._index
        parent = records[index].parent
        while parent is not None:
            index, parent = parent, records[parent].parent
        return index == self._tree._root_index

    def full_path(self) -> str:
        """Return the absolute path of this node (``"/"`` for the root).

        Raises:
            ValueError: If the node, or one of its ancestors, was detached
                with ``remove_child``.  A detached subtree has no path.
        """
        names: list[str] = []
        records = self._tree._records
        index = self._index
        parent = records[index].parent
        while parent is not None:
            names.append(records[index].name)
            index, parent = parent, records[parent].parent
        if index != self._tree._root_index:
            raise ValueError(f"node {self.name!r} is detached from the tree")
        if not names:
            return ROOT_NAME
        return "/" + "/".join(reversed(names))

    def find_by_path(self, path: str) -> Node | None:
        """Resolve ``path`` relative to this node.

        ``""`` and ``"/"`` return this node.  A leading ``/`` is ignored and
        empty components are skipped.  At each level the first child with a
        matching name wins.  Returns None when a component is missing.
        """
        current = self
        for component in path.split("/"):
            if not component:
                continue
            match = next((c for c in current.children if c.name == component), None)
            if match is None:
                return None
            current = match
        return current

    def walk(self) -> Iterator[Node]:
        """Yield this node and every descendant, depth-first pre-order."""
        stack = [self._index]
        records = self._tree._records
        while stack:
            index = stack.pop()
            yield Node(self._tree, index)
            stack.extend(reversed(records[index].children))

    def find_nodes_by_name(self, name: str) -> list[Node]:
        return [node for node in self.walk() if node.name == name]

    def find_nodes_by_pattern(self, pattern: str) -> list[Node]:
        """Return nodes whose name contains ``pattern`` (case-sensitive)."""
        return [node for node in self.walk() if pattern in node.name]


class Tree:
    """A decoded device tree: the node arena plus source information.

    Attributes:
        source_id: Identifier of the input the tree was decoded from
            (usually a file name).  Empty for trees built in memory.
        warnings: Non-fatal diagnostics collected while decoding, e.g.
            skipped properties or an unexpectedly new blob version.
        memory_reservations: ``(address, size)`` pairs from a binary blob's
            reservation map.  Empty for text sources.
    """

    def __init__(self, source_id: str = "") -> None:
        self.source_id = source_id
        self.warnings: list[str] = []
        self.memory_reservations: tuple[tuple[int, int], ...] = ()
        self._records: list[_NodeRecord] = []
        self._root_index = self._allocate(ROOT_NAME, parent=None)

    def __repr__(self) -> str:
        return f"Tree(source_id={self.source_id!r}, nodes={self.node_count()})"

    def _allocate(self, name: str, parent: int | None) -> int:
        self._records.append(_NodeRecord(name=name, parent=parent))
        return len(self._records) - 1

    @property
    def root(self) -> Node:
        return Node(self, self._root_index)

    def find_by_path(self, path: str) -> Node | None:
        return self.root.find_by_path(path)

    def find_nodes_by_name(self, name: str) -> list[Node]:
        return self.root.find_nodes_by_name(name)

    def find_nodes_by_pattern(self, pattern: str) -> list[Node]:
        return self.root.find_nodes_by_pattern(pattern)

    def walk(self) -> Iterator[Node]:
        return self.root.walk()

    def node_count(self) -> int:
        """Number of nodes reachable from the root (detached subtrees excluded)."""
        return sum(1 for _ in self.walk())

    def property_count(self) -> int:
        return sum(node.property_count for node in self.walk())

    def validation_errors(self) -> list[str]:
        """Return basic semantic problems with the tree (empty when valid)."""
        errors: list[str] = []
        if self.root.find_property("compatible") is None:
            errors.append("Root node missing 'compatible' property")
        return errors
