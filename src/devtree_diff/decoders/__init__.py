"""Decoders subpackage: turn blobs and source text into Trees.

- DTBDecoder: flattened device tree blobs (either byte order)
- DTSDecoder: device tree source text
- DecoderSelector: chooses between them by name hint or magic
"""

from devtree_diff.decoders.binary import DTBDecoder, FdtHeader, classify_value, read_header
from devtree_diff.decoders.selector import DecoderSelector
from devtree_diff.decoders.text import DTSDecoder, parse_value

__all__ = [
    "DTBDecoder",
    "DTSDecoder",
    "DecoderSelector",
    "FdtHeader",
    "classify_value",
    "parse_value",
    "read_header",
]
