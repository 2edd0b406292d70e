"""pytest plugin for devtree-diff.

Auto-discovered by pytest via the pytest11 entry point declared in pyproject.toml.
When the package is installed (even in editable mode), pytest discovers this plugin
automatically -- no conftest.py changes are needed.
"""

from __future__ import annotations

import os
from typing import Any

import pytest

from devtree_diff.api import decode_file, diff
from devtree_diff.tree import Tree

_MAX_LISTED = 20


def _as_tree(value: Tree | str | os.PathLike[str]) -> Tree:
    if isinstance(value, Tree):
        return value
    return decode_file(value)


@pytest.fixture(scope="session")
def assert_no_tree_diff() -> Any:
    """Fixture that returns a callable asserting two device trees are identical.

    Session-scoped because the returned callable is stateless (every call
    builds a fresh DiffEngine).

    Usage in tests::

        def test_overlay_is_noop(assert_no_tree_diff):
            assert_no_tree_diff("board.dtb", "board-with-overlay.dtb")

        def test_model_changed(assert_no_tree_diff):
            with pytest.raises(AssertionError, match=r"Property modified: model"):
                assert_no_tree_diff(base_tree, changed_tree)

    Returns:
        A callable ``_assert(actual, expected, ignore_properties=()) -> None``
        accepting ``Tree`` objects or paths to ``.dtb`` / ``.dts`` files.
    """

    def _assert(
        actual: Tree | str | os.PathLike[str],
        expected: Tree | str | os.PathLike[str],
        ignore_properties: tuple[str, ...] = (),
    ) -> None:
        """Assert that ``actual`` has no structural differences from ``expected``.

        Args:
            actual:            The tree (or file) produced by the code under test.
            expected:          The reference tree (or file).
            ignore_properties: Property names whose changes are tolerated.

        Raises:
            AssertionError: When any difference remains, listing up to 20 of them.
        """
        engine = diff(_as_tree(expected), _as_tree(actual))
        remaining = [
            entry
            for entry in engine.entries()
            if entry.property_name not in ignore_properties or entry.is_node_change
        ]
        if remaining:
            lines = [f"  {entry.path}: {entry.description}" for entry in remaining[:_MAX_LISTED]]
            if len(remaining) > _MAX_LISTED:
                lines.append(f"  ... and {len(remaining) - _MAX_LISTED} more")
            raise AssertionError(
                f"device trees differ: {len(remaining)} change(s)\n" + "\n".join(lines)
            )

    return _assert
