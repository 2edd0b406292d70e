"""Diff subpackage: structural comparison of two device trees."""

from devtree_diff.diff.engine import DiffEngine
from devtree_diff.diff.entry import DiffEntry, DiffKind
from devtree_diff.diff.stats import DiffStats, filter_by_kind, filter_by_path, filter_by_property

__all__ = [
    "DiffEngine",
    "DiffEntry",
    "DiffKind",
    "DiffStats",
    "filter_by_kind",
    "filter_by_path",
    "filter_by_property",
]
