"""TreeDecoder Protocol for the decoder extension point.

Defines the structural interface every decoder must satisfy.  Custom decoders
can be plugged into ``DecoderSelector`` without inheriting from any base
class; any class with conformant ``can_decode`` and ``decode`` methods passes
``isinstance`` checks.

Example::

    from devtree_diff.protocols import TreeDecoder
    from devtree_diff.tree import Tree

    class EmptyDecoder:
        def can_decode(self, source_id: str, head: bytes = b"") -> bool:
            return source_id.endswith(".empty")

        def decode(self, data: bytes | str, source_id: str = "") -> Tree:
            return Tree(source_id=source_id)

    assert isinstance(EmptyDecoder(), TreeDecoder)  # True, structural conformance
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from devtree_diff.tree import Tree


@runtime_checkable
class TreeDecoder(Protocol):
    """Structural protocol for device tree decoders.

    ``can_decode`` must be cheap: it sees only the source name and the first
    bytes of the input (``head``, possibly empty) and must not raise.

    ``decode`` turns the complete input into a ``Tree`` or raises a
    ``DeviceTreeError`` subclass.
    """

    def can_decode(self, source_id: str, head: bytes = b"") -> bool: ...

    def decode(self, data: bytes | str, source_id: str = "") -> Tree: ...
