"""DTSDecoder: decodes device tree source text into a Tree.

This is a line-oriented reader, not a full dtc grammar.  The input is split
into statements, each ending at ``{`` (node open), ``;`` (property or
directive) or ``}`` (node close).  Quoted strings and ``<...>`` / ``[...]``
groups are kept whole, so several statements may share a line and a value may
run over several lines.  A ``\\`` line continuation is read as whitespace.

Statement rules:
- ``name {``               opens a node.  The first node is the root ("/").
- ``name = value;``        sets a property on the innermost open node.
- ``name;``                sets a boolean property (empty string value).
- ``};``                   closes the innermost node; closing the root ends
                           decoding.
- ``/dts-v1/;``, ``/plugin/;``, comments and preprocessor lines are skipped.
- ``/memreserve/ a s;``    before the root adds a memory reservation.
- ``/delete-property/ p;`` and ``/delete-node/ n;`` remove from the open node.

Value classification:
- ``"..."``  -> string with the outer quotes removed
- ``<...>``  -> 32-bit cells; every token is hexadecimal, ``0x`` optional
- ``[...]``  -> bytes; same token rules
- anything else is kept as a bare string

A statement without ``=`` that is not a bare property name is a fatal
``TreeSyntaxError``.  A cell or byte token that does not parse only skips
that property: the problem is recorded in ``Tree.warnings`` and decoding
continues (unless ``DecoderConfig.strict_values`` is set).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from devtree_diff.config import DecoderConfig
from devtree_diff.errors import PropertyValueError, TreeSyntaxError
from devtree_diff.tree import Node, PropertyValue, Tree

__all__ = ["DTSDecoder", "parse_value"]

logger = logging.getLogger(__name__)

# Bare property names as dtc accepts them (letters, digits, ,._+?#-)
_PROPERTY_NAME = re.compile(r"^[A-Za-z0-9,._+?#\-]+$")

# cpp directives left in unpreprocessed sources; "#address-cells" must not match
_PREPROCESSOR = re.compile(
    r"#\s*(include|define|undef|if|ifdef|ifndef|elif|else|endif|pragma|error|warning)(?![\w-])"
)

_HEX_TOKEN = re.compile(r"^[0-9A-Fa-f]+$")

_IGNORED_DIRECTIVES = ("/dts-v1/", "/plugin/")


@dataclass(frozen=True, slots=True)
class _Statement:
    text: str
    terminator: str
    line: int


def _statements(source: str) -> Iterator[_Statement]:
    """Split ``source`` into statements, dropping comments and cpp lines."""
    buf: list[str] = []
    start_line = 0
    line = 1
    in_quote = False
    angle = square = 0
    i = 0
    n = len(source)

    def flush(terminator: str) -> _Statement:
        nonlocal start_line
        statement = _Statement("".join(buf).strip(), terminator, start_line or line)
        buf.clear()
        start_line = 0
        return statement

    while i < n:
        ch = source[i]

        if in_quote:
            buf.append(ch)
            if ch == "\\" and i + 1 < n:
                buf.append(source[i + 1])
                line += source[i + 1] == "\n"
                i += 2
                continue
            if ch == '"':
                in_quote = False
            line += ch == "\n"
            i += 1
            continue

        if ch == "\n":
            line += 1
            buf.append(" ")
            i += 1
            continue

        if source.startswith("//", i):
            end = source.find("\n", i)
            i = n if end < 0 else end
            continue

        if source.startswith("/*", i):
            end = source.find("*/", i + 2)
            stop = n if end < 0 else end + 2
            line += source.count("\n", i, stop)
            buf.append(" ")
            i = stop
            continue

        if ch == "#" and not "".join(buf).strip() and _PREPROCESSOR.match(source, i):
            end = source.find("\n", i)
            i = n if end < 0 else end
            continue

        if ch == "\\":
            # line continuation
            buf.append(" ")
            i += 1
            continue

        if not ch.isspace() and not start_line:
            start_line = line

        if ch == '"':
            in_quote = True
        elif ch == "<":
            angle += 1
        elif ch == ">" and angle:
            angle -= 1
        elif ch == "[":
            square += 1
        elif ch == "]" and square:
            square -= 1
        elif not angle and not square:
            if ch == "{" and "=" not in "".join(buf):
                yield flush("{")
                i += 1
                continue
            if ch in ";}":
                yield flush(ch)
                i += 1
                continue

        buf.append(ch)
        i += 1

    tail = "".join(buf).strip()
    if tail:
        yield _Statement(tail, "", start_line or line)


def _hex_values(text: str, bits: int, what: str) -> list[int]:
    limit = 1 << bits
    values: list[int] = []
    for token in text.split():
        digits = token[2:] if token[:2].lower() == "0x" else token
        if not _HEX_TOKEN.match(digits):
            raise PropertyValueError(f"invalid {what} value {token!r}")
        value = int(digits, 16)
        if value >= limit:
            raise PropertyValueError(f"{what} value {token!r} does not fit in {bits} bits")
        values.append(value)
    return values


def parse_value(text: str) -> PropertyValue:
    """Classify raw property value text by its delimiters.

    Raises:
        PropertyValueError: If a cell or byte token is not valid hexadecimal
            or does not fit its width.
    """
    text = text.strip()
    if len(text) >= 2:
        first, last = text[0], text[-1]
        if first == '"' and last == '"':
            return PropertyValue.string(text[1:-1])
        if first == "<" and last == ">":
            return PropertyValue.cells(_hex_values(text[1:-1], 32, "cell"))
        if first == "[" and last == "]":
            return PropertyValue.from_bytes(_hex_values(text[1:-1], 8, "byte"))
    return PropertyValue.string(text)


def _read_source(data: bytes | str | Iterable[str]) -> str:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    if isinstance(data, str):
        return data
    return "".join(line if line.endswith("\n") else line + "\n" for line in data)


class DTSDecoder:
    """Decoder for device tree source text.

    Satisfies the ``TreeDecoder`` Protocol structurally.  Accepts ``str``,
    UTF-8 ``bytes``, or any iterable of lines (such as an open text file).

    Example::

        tree = DTSDecoder().decode('/ { model = "Test Device"; };')
        tree.root.find_property("model").value.render()   # "Test Device"
    """

    def __init__(self, config: DecoderConfig | None = None) -> None:
        self._config = config if config is not None else DecoderConfig()

    def can_decode(self, source_id: str, head: bytes = b"") -> bool:
        """Accept a text name hint; content is never inspected."""
        return any(hint in source_id for hint in self._config.text_hints)

    def decode(self, data: bytes | str | Iterable[str], source_id: str = "") -> Tree:
        """Decode source text into a Tree.

        Raises:
            TreeSyntaxError: On a statement that is neither a node, a
                property nor a known directive, or when no node is found.
            PropertyValueError: Only when ``strict_values`` is configured.
        """
        tree = Tree(source_id=source_id)
        _TextParser(tree, self._config).run(_statements(_read_source(data)))
        logger.debug(
            f"Decoded {source_id or '<text>'}: {tree.node_count()} nodes, "
            f"{tree.property_count()} properties, {len(tree.warnings)} warnings"
        )
        return tree


class _TextParser:
    """Applies statements to a Tree using an explicit stack of open nodes."""

    def __init__(self, tree: Tree, config: DecoderConfig) -> None:
        self._tree = tree
        self._config = config
        self._stack: list[Node] = []
        self._reservations: list[tuple[int, int]] = []

    def run(self, statements: Iterable[_Statement]) -> None:
        seen_root = False
        for statement in statements:
            if not self._stack:
                if seen_root:
                    break
                seen_root = self._before_root(statement)
                continue
            self._in_node(statement)
            if not self._stack:
                break  # root closed

        if not seen_root:
            raise TreeSyntaxError("no root node")
        if self._stack:
            self._warn(None, f"input ended inside node {self._stack[-1].full_path()}")
        self._tree.memory_reservations = tuple(self._reservations)

    # ------------------------------------------------------------------
    # Statement handlers
    # ------------------------------------------------------------------

    def _before_root(self, statement: _Statement) -> bool:
        """Handle a statement while no node is open.  Returns True on root open."""
        text = statement.text
        if statement.terminator == "{":
            if not text:
                # "{ / { ... }; }": the outer brace only groups and its "}" is a no-op
                return False
            if text != "/":
                self._warn(statement.line, f"top-level node {text!r} treated as the root")
            self._stack.append(self._tree.root)
            return True
        if statement.terminator == "}":
            return False
        if text.startswith("/memreserve/"):
            self._memreserve(statement)
        elif text and not text.startswith(_IGNORED_DIRECTIVES):
            logger.debug(f"line {statement.line}: ignoring {text!r} before the root node")
        return False

    def _in_node(self, statement: _Statement) -> None:
        text = statement.text
        node = self._stack[-1]
        if statement.terminator == "{":
            if not text:
                raise TreeSyntaxError("node without a name", statement.line)
            self._stack.append(node.add_child(text))
            return
        if text:
            self._node_statement(node, statement)
        if statement.terminator == "}":
            self._stack.pop()

    def _node_statement(self, node: Node, statement: _Statement) -> None:
        text = statement.text
        if text.startswith("/delete-property/"):
            node.remove_property(text[len("/delete-property/") :].strip())
            return
        if text.startswith("/delete-node/"):
            target = node.find_by_path(text[len("/delete-node/") :].strip())
            if target is not None and target.parent == node:
                node.remove_child(target)
            return
        if "=" not in text:
            if _PROPERTY_NAME.match(text):
                node.add_property(text, PropertyValue.string(""))
                return
            raise TreeSyntaxError(
                f"invalid property syntax, missing '=': {text!r}", statement.line
            )

        name, _, raw_value = text.partition("=")
        name = name.strip()
        if not name:
            raise TreeSyntaxError("empty property name", statement.line)
        try:
            value = parse_value(raw_value)
        except PropertyValueError as exc:
            if self._config.strict_values:
                raise
            self._warn(statement.line, f"skipped property {name!r} of {node.full_path()}: {exc}")
            return
        node.add_property(name, value)

    def _memreserve(self, statement: _Statement) -> None:
        fields = statement.text[len("/memreserve/") :].split()
        try:
            address, size = (int(token, 0) for token in fields)
        except ValueError:
            self._warn(statement.line, f"ignored malformed /memreserve/: {statement.text!r}")
            return
        self._reservations.append((address, size))

    def _warn(self, line: int | None, message: str) -> None:
        if line is not None:
            message = f"line {line}: {message}"
        self._tree.warnings.append(message)
        logger.warning(f"{self._tree.source_id or '<text>'}: {message}")
