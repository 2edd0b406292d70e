"""Tree subpackage for the in-memory device tree model.

Re-exports the public API for the tree module:
- ValueKind: StrEnum of the four property payload kinds
- PropertyValue: immutable tagged property payload
- Property: a named PropertyValue
- Tree: arena that owns every node of one decoded tree
- Node: handle to a single node inside a Tree
"""

from devtree_diff.tree.nodes import Node, Tree, join_path
from devtree_diff.tree.values import Property, PropertyValue, ValueKind

__all__ = ["Node", "Property", "PropertyValue", "Tree", "ValueKind", "join_path"]
