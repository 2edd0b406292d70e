"""devtree-diff - decode device tree blobs and sources and diff them structurally."""

from __future__ import annotations

import logging

from devtree_diff.api import decode, decode_file, diff, diff_files, render_value
from devtree_diff.cache import TreeCache
from devtree_diff.config import DecoderConfig
from devtree_diff.decoders import DecoderSelector, DTBDecoder, DTSDecoder
from devtree_diff.diff import DiffEngine, DiffEntry, DiffKind, DiffStats
from devtree_diff.errors import (
    DeviceTreeError,
    FormatError,
    NoDecoderError,
    PropertyValueError,
    TreeSyntaxError,
)
from devtree_diff.protocols import TreeDecoder
from devtree_diff.tree import Node, Property, PropertyValue, Tree, ValueKind

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__: str = "0.1.0"
__all__: list[str] = [
    "DTBDecoder",
    "DTSDecoder",
    "DecoderConfig",
    "DecoderSelector",
    "DeviceTreeError",
    "DiffEngine",
    "DiffEntry",
    "DiffKind",
    "DiffStats",
    "FormatError",
    "NoDecoderError",
    "Node",
    "Property",
    "PropertyValue",
    "PropertyValueError",
    "Tree",
    "TreeCache",
    "TreeDecoder",
    "TreeSyntaxError",
    "ValueKind",
    "decode",
    "decode_file",
    "diff",
    "diff_files",
    "render_value",
]
