"""Public API functions for devtree-diff.

This module provides the user-facing functions: decode, decode_file, diff,
diff_files and render_value.  Each call builds a fresh DecoderSelector (or
DiffEngine) so no state is shared between calls; pass a ``TreeCache`` to
``diff_files`` to reuse decoded files on purpose.
"""

from __future__ import annotations

import os

from devtree_diff.cache import TreeCache, read_tree_file
from devtree_diff.config import DecoderConfig
from devtree_diff.decoders.selector import DecoderSelector
from devtree_diff.decoders.text import DTSDecoder
from devtree_diff.diff.engine import DiffEngine
from devtree_diff.tree import Property, Tree

__all__ = ["decode", "decode_file", "diff", "diff_files", "render_value"]


def decode(
    data: bytes | str,
    source_id: str = "",
    config: DecoderConfig | None = None,
) -> Tree:
    """Decode a blob or source text into a Tree.

    The decoder is chosen from ``source_id`` (``.dtb`` / ``.dts`` hints) or,
    for bytes, from a blob magic in the first four bytes.  Text passed as
    ``str`` with no name hint is decoded as source text.

    Args:
        data:      Complete blob bytes or source text.
        source_id: Name of the input, usually a file name.  Recorded on the
                   returned tree.
        config:    Decoder settings.  Defaults to ``DecoderConfig()`` when None.

    Returns:
        The decoded ``Tree``.  Non-fatal problems are listed in ``tree.warnings``.

    Raises:
        FormatError: If a blob is malformed, or no decoder accepts the input.
        TreeSyntaxError: If source text is structurally invalid.
    """
    selector = DecoderSelector(config=config)
    if isinstance(data, str) and selector.select(source_id) is None:
        return DTSDecoder(config).decode(data, source_id)
    return selector.decode(data, source_id)


def decode_file(
    path: str | os.PathLike[str],
    config: DecoderConfig | None = None,
) -> Tree:
    """Read and decode a ``.dtb`` or ``.dts`` file.

    Raises:
        OSError: If the file cannot be read.
        FormatError: If the file is malformed or of unknown type.
        TreeSyntaxError: If source text is structurally invalid.
    """
    return read_tree_file(path, DecoderSelector(config=config))


def diff(base: Tree | None, overlay: Tree | None) -> DiffEngine:
    """Return a DiffEngine comparing ``overlay`` against ``base``.

    Never raises: a missing tree yields an engine whose ``entries()`` is empty
    and whose ``validation_errors()`` explains why.
    """
    return DiffEngine(base, overlay)


def diff_files(
    base_path: str | os.PathLike[str],
    overlay_path: str | os.PathLike[str],
    cache: TreeCache | None = None,
) -> DiffEngine:
    """Decode two files and return the DiffEngine comparing them.

    Args:
        base_path:    The reference file.
        overlay_path: The file compared against it.
        cache:        Optional ``TreeCache``; when given, files are loaded
                      through it so repeated comparisons decode each file once.

    Raises:
        OSError, FormatError, TreeSyntaxError: As for ``decode_file``.
    """
    if cache is not None:
        return DiffEngine(cache.load(base_path), cache.load(overlay_path))
    return DiffEngine(decode_file(base_path), decode_file(overlay_path))


def render_value(prop: Property) -> str:
    """Return the display form of a property's value.

    Strings render as themselves, bytes as two-digit hex pairs (``"0a ff"``)
    and cells as hex words (``"0x1 0x10"``).
    """
    return prop.render()
