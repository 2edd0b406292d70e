"""DTBDecoder: decodes flattened device tree blobs into a Tree.

Blob layout (all integers big-endian unless the magic is byte-swapped):

    header           ten 32-bit words (see FdtHeader)
    reservation map  (address, size) pairs of 64-bit words, ended by (0, 0)
    structure block  32-bit tokens:
                       BEGIN_NODE name\\0 <pad to 4>
                       PROP len nameoff value[len] <pad to 4>
                       END_NODE
                       END
    strings block    NUL-terminated property names addressed by byte offset

A magic of ``0xedfe0dd0`` means every word in the blob was stored in the
opposite byte order.  Words are then read with a little-endian numpy dtype so
the rest of the decoder never sees the difference.

Property values are typed by a heuristic (a blob carries no schema): empty
values become empty strings, NUL-terminated printable ASCII becomes a string,
everything else stays raw bytes.  Cell arrays that happen to look like text
are therefore read as strings; that is the accepted behaviour.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from devtree_diff.config import DecoderConfig
from devtree_diff.errors import FormatError
from devtree_diff.tree import Node, PropertyValue, Tree

__all__ = [
    "FDT_MAGIC",
    "FDT_MAGIC_SWAPPED",
    "DTBDecoder",
    "FdtHeader",
    "classify_value",
    "read_header",
]

logger = logging.getLogger(__name__)

FDT_MAGIC = 0xD00DFEED
FDT_MAGIC_SWAPPED = 0xEDFE0DD0

FDT_BEGIN_NODE = 0x00000001
FDT_END_NODE = 0x00000003
FDT_PROP = 0x00000002
FDT_END = 0x00000009

HEADER_SIZE = 40

_BE32 = np.dtype(">u4")
_LE32 = np.dtype("<u4")
_BE64 = np.dtype(">u8")
_LE64 = np.dtype("<u8")

_MAGIC_HEADS = (
    FDT_MAGIC.to_bytes(4, "big"),
    FDT_MAGIC_SWAPPED.to_bytes(4, "big"),
)


@dataclass(frozen=True, slots=True)
class FdtHeader:
    """The ten header words of a blob, already normalised to host order.

    ``swapped`` is True when the blob was stored byte-swapped; ``magic`` is
    then reported as the canonical ``0xd00dfeed``.
    """

    magic: int
    totalsize: int
    off_dt_struct: int
    off_dt_strings: int
    off_mem_rsvmap: int
    version: int
    last_comp_version: int
    boot_cpuid_phys: int
    size_dt_strings: int
    size_dt_struct: int
    swapped: bool = False


def read_header(data: bytes) -> FdtHeader:
    """Read and normalise the header words.

    Only the length and magic are checked here; ``DTBDecoder`` validates the
    sizes and offsets against the input.

    Raises:
        FormatError: ``truncated header`` or ``bad magic``.
    """
    if len(data) < HEADER_SIZE:
        raise FormatError(
            "truncated header", f"{len(data)} bytes, need at least {HEADER_SIZE}"
        )
    words = np.frombuffer(data, dtype=_BE32, count=10)
    magic = int(words[0])
    if magic == FDT_MAGIC:
        swapped = False
    elif magic == FDT_MAGIC_SWAPPED:
        swapped = True
        words = np.frombuffer(data, dtype=_LE32, count=10)
    else:
        raise FormatError("bad magic", f"{magic:#010x}")
    return FdtHeader(*(int(w) for w in words), swapped=swapped)


def classify_value(raw: bytes) -> PropertyValue:
    """Type a raw property value using the string-or-bytes heuristic."""
    if not raw:
        return PropertyValue.string("")
    if raw[-1] == 0 and all(32 <= b <= 126 for b in raw[:-1]):
        return PropertyValue.string(raw[:-1].decode("ascii"))
    return PropertyValue.from_bytes(raw)


class DTBDecoder:
    """Decoder for the binary blob format.

    Satisfies the ``TreeDecoder`` Protocol structurally.

    Example::

        decoder = DTBDecoder()
        with open("board.dtb", "rb") as fh:
            tree = decoder.decode(fh.read(), source_id="board.dtb")
    """

    def __init__(self, config: DecoderConfig | None = None) -> None:
        self._config = config if config is not None else DecoderConfig()

    def can_decode(self, source_id: str, head: bytes = b"") -> bool:
        """Accept a binary name hint or either magic in the first four bytes."""
        if any(hint in source_id for hint in self._config.binary_hints):
            return True
        return bytes(head[:4]) in _MAGIC_HEADS

    def decode(self, data: bytes | str, source_id: str = "") -> Tree:
        """Decode a complete blob.

        Raises:
            FormatError: On any header, offset or structure violation.
            TypeError: If ``data`` is text rather than bytes.
        """
        if isinstance(data, str):
            raise TypeError("DTBDecoder.decode() requires bytes, not str")
        data = bytes(data)
        header = read_header(data)
        self._validate_header(header, len(data))

        tree = Tree(source_id=source_id)
        if header.version > self._config.max_version:
            message = (
                f"blob version {header.version} is newer than "
                f"{self._config.max_version}; decoding may be incomplete"
            )
            tree.warnings.append(message)
            logger.warning(f"{source_id or '<blob>'}: {message}")

        tree.memory_reservations = self._read_reservations(data, header, tree)
        _StructureWalker(data, header, self._config, tree).walk()
        logger.debug(
            f"Decoded {source_id or '<blob>'}: version {header.version}, "
            f"{tree.node_count()} nodes, {tree.property_count()} properties"
        )
        return tree

    # ------------------------------------------------------------------
    # Header checks
    # ------------------------------------------------------------------

    def _validate_header(self, header: FdtHeader, length: int) -> None:
        total = header.totalsize
        if total != length:
            raise FormatError("size mismatch", f"header says {total}, input is {length}")
        for name in ("off_dt_struct", "off_dt_strings", "off_mem_rsvmap"):
            offset = getattr(header, name)
            if offset >= total:
                raise FormatError("offset out of bounds", f"{name}={offset} >= {total}")
        if header.off_dt_struct + header.size_dt_struct > total:
            raise FormatError(
                "offset out of bounds",
                f"structure block ends at {header.off_dt_struct + header.size_dt_struct}",
            )
        if header.off_dt_strings + header.size_dt_strings > total:
            raise FormatError(
                "offset out of bounds",
                f"strings block ends at {header.off_dt_strings + header.size_dt_strings}",
            )
        if header.version < self._config.min_version:
            raise FormatError(
                "unsupported version",
                f"version {header.version} < {self._config.min_version}",
            )

    # ------------------------------------------------------------------
    # Memory reservation map
    # ------------------------------------------------------------------

    def _read_reservations(
        self, data: bytes, header: FdtHeader, tree: Tree
    ) -> tuple[tuple[int, int], ...]:
        start = header.off_mem_rsvmap
        # The map runs up to the next block that follows it.
        following = [
            offset
            for offset in (header.off_dt_struct, header.off_dt_strings)
            if offset >= start
        ]
        end = min(following, default=header.totalsize)
        count = (end - start) // 16
        reservations: list[tuple[int, int]] = []
        if count == 0:
            message = "memory reservation map has no room for a terminator"
            tree.warnings.append(message)
            logger.warning(f"{tree.source_id or '<blob>'}: {message}")
            return ()
        dtype = _LE64 if header.swapped else _BE64
        words = np.frombuffer(data, dtype=dtype, count=count * 2, offset=start)
        for address, size in words.reshape(-1, 2):
            if address == 0 and size == 0:
                return tuple(reservations)
            reservations.append((int(address), int(size)))
        message = "memory reservation map is not terminated"
        tree.warnings.append(message)
        logger.warning(f"{tree.source_id or '<blob>'}: {message}")
        return tuple(reservations)


class _StructureWalker:
    """Token walk over the structure block, building nodes as it goes."""

    def __init__(
        self,
        data: bytes,
        header: FdtHeader,
        config: DecoderConfig,
        tree: Tree,
    ) -> None:
        self._data = data
        self._config = config
        self._tree = tree

        self._start = header.off_dt_struct
        size = header.size_dt_struct or (header.totalsize - self._start)
        self._end = self._start + size
        dtype = _LE32 if header.swapped else _BE32
        if size >= 4:
            self._words = np.frombuffer(data, dtype=dtype, count=size // 4, offset=self._start)
        else:
            self._words = np.empty(0, dtype=dtype)

        self._strings_start = header.off_dt_strings
        strings_size = header.size_dt_strings or (header.totalsize - self._strings_start)
        self._strings_end = self._strings_start + strings_size

    def walk(self) -> None:
        offset = self._start
        while True:
            token = self._word(offset)
            if token == FDT_BEGIN_NODE:
                break
            if token == FDT_END:
                raise FormatError("missing root node", "END token before any node")
            offset += 4

        name, offset = self._node_name(offset + 4)
        if name not in ("", "/"):
            message = f"root node is named {name!r}; using '/'"
            self._tree.warnings.append(message)
            logger.warning(f"{self._tree.source_id or '<blob>'}: {message}")
        self._parse_node(self._tree.root, offset)

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------

    def _word(self, offset: int) -> int:
        index = (offset - self._start) // 4
        if index >= len(self._words):
            raise FormatError("truncated structure block", f"no token at offset {offset}")
        return int(self._words[index])

    def _align(self, offset: int) -> int:
        return self._start + ((offset - self._start + 3) & ~3)

    def _node_name(self, offset: int) -> tuple[str, int]:
        nul = self._data.find(b"\0", offset, self._end)
        if nul < 0:
            raise FormatError("truncated structure block", f"unterminated node name at {offset}")
        name = self._data[offset:nul].decode("utf-8", errors="replace")
        return name, self._align(nul + 1)

    def _property_name(self, nameoff: int) -> str:
        if nameoff >= self._config.max_name_offset:
            raise FormatError("invalid name offset", f"{nameoff:#x}")
        position = self._strings_start + nameoff
        if position >= self._strings_end:
            raise FormatError("invalid name offset", f"{nameoff:#x} is outside the strings block")
        nul = self._data.find(b"\0", position, self._strings_end)
        if nul < 0:
            raise FormatError("invalid name offset", f"name at {nameoff:#x} is not terminated")
        name = self._data[position:nul].decode("utf-8", errors="replace")
        if not name:
            raise FormatError("empty property name", f"at name offset {nameoff:#x}")
        return name

    # ------------------------------------------------------------------
    # Node body
    # ------------------------------------------------------------------

    def _parse_node(self, root: Node, offset: int) -> int:
        """Parse the body of ``root`` starting at ``offset``.

        Open nodes are kept on an explicit stack, so nesting depth is limited
        only by the size of the structure block.  Returns the offset after the
        root's END_NODE, or of the END token when the walk stops there.
        """
        open_nodes = [root]
        while open_nodes:
            node = open_nodes[-1]
            token = self._word(offset)
            if token == FDT_PROP:
                offset = self._parse_property(node, offset + 4)
            elif token == FDT_BEGIN_NODE:
                name, offset = self._node_name(offset + 4)
                if not name:
                    raise FormatError("empty node name", f"child of {node.full_path()}")
                open_nodes.append(node.add_child(name))
            elif token == FDT_END_NODE:
                open_nodes.pop()
                offset += 4
            elif token == FDT_END:
                break
            else:
                # NOP and unknown tokens
                offset += 4
        return offset


    def _parse_property(self, node: Node, offset: int) -> int:
        length = self._word(offset)
        nameoff = self._word(offset + 4)
        value_start = offset + 8
        value_end = value_start + length
        if value_end > self._end:
            raise FormatError(
                "truncated structure block",
                f"property value of {length} bytes at {value_start} overruns the block",
            )
        name = self._property_name(nameoff)
        node.add_property(name, classify_value(self._data[value_start:value_end]))
        return self._align(value_end)
