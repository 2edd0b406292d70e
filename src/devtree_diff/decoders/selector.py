"""DecoderSelector: picks a decoder for an input by name hint or magic.

Decoders are tried in a fixed order and the first whose ``can_decode``
accepts wins.  The default order is binary first, then text, so a ``.dtb``
file or any input starting with a blob magic never reaches the text decoder.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from devtree_diff.config import DecoderConfig
from devtree_diff.decoders.binary import DTBDecoder
from devtree_diff.decoders.text import DTSDecoder
from devtree_diff.errors import NoDecoderError
from devtree_diff.protocols import TreeDecoder
from devtree_diff.tree import Tree

__all__ = ["DecoderSelector"]

logger = logging.getLogger(__name__)


class DecoderSelector:
    """Ordered collection of decoders.

    Args:
        decoders: Decoders to consult, in priority order.  Each must satisfy
            the ``TreeDecoder`` Protocol.  Defaults to ``[DTBDecoder, DTSDecoder]``
            built from ``config``.
        config: Configuration for the default decoders.  Ignored when
            ``decoders`` is given.

    Raises:
        TypeError: If an entry of ``decoders`` does not satisfy ``TreeDecoder``.
    """

    def __init__(
        self,
        decoders: Sequence[TreeDecoder] | None = None,
        config: DecoderConfig | None = None,
    ) -> None:
        if decoders is None:
            decoders = (DTBDecoder(config), DTSDecoder(config))
        for decoder in decoders:
            if not isinstance(decoder, TreeDecoder):
                raise TypeError(
                    f"{type(decoder).__name__} does not implement the TreeDecoder protocol"
                )
        self._decoders: tuple[TreeDecoder, ...] = tuple(decoders)

    @property
    def decoders(self) -> tuple[TreeDecoder, ...]:
        return self._decoders

    def select(self, source_id: str, head: bytes = b"") -> TreeDecoder | None:
        """Return the first decoder that accepts the source, or None."""
        for decoder in self._decoders:
            if decoder.can_decode(source_id, head):
                return decoder
        return None

    def decode(self, data: bytes | str, source_id: str = "") -> Tree:
        """Select a decoder using ``data[:4]`` as the head and decode.

        Raises:
            NoDecoderError: If no decoder accepts the input.
        """
        head = data[:4] if isinstance(data, (bytes, bytearray)) else b""
        decoder = self.select(source_id, bytes(head))
        if decoder is None:
            raise NoDecoderError(source_id)
        logger.debug(f"Decoding {source_id or '<input>'} with {type(decoder).__name__}")
        return decoder.decode(data, source_id)
