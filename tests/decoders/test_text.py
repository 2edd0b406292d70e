"""Tests for DTSDecoder and parse_value.

Covers:
- Value classification by delimiter (strings, cells, bytes, bare text)
- Statement splitting: one-line trees, multi-line values, continuations
- Comments, version pragma and preprocessor lines are skipped
- Fatal syntax errors carry line numbers
- Recoverable value errors become warnings (or raise in strict mode)
- Directives: /memreserve/, /delete-property/, /delete-node/
"""

from __future__ import annotations

import io
import logging

import pytest

from devtree_diff.config import DecoderConfig
from devtree_diff.decoders.text import DTSDecoder, parse_value
from devtree_diff.errors import PropertyValueError, TreeSyntaxError
from devtree_diff.tree import PropertyValue, Tree, ValueKind


def _decode(source: str, **config: object) -> Tree:
    return DTSDecoder(DecoderConfig(**config)).decode(source)  # type: ignore[arg-type]


def _value(tree: Tree, path: str, name: str) -> PropertyValue:
    node = tree.find_by_path(path)
    assert node is not None, f"no node at {path}"
    prop = node.find_property(name)
    assert prop is not None, f"no property {name} at {path}"
    return prop.value


# ---------------------------------------------------------------------------
# parse_value
# ---------------------------------------------------------------------------


class TestParseValue:
    def test_quoted_string(self) -> None:
        assert parse_value('"okay"') == PropertyValue.string("okay")

    def test_empty_quoted_string(self) -> None:
        assert parse_value('""') == PropertyValue.string("")

    def test_string_list_keeps_inner_quotes(self) -> None:
        value = parse_value('"ns16550a", "simple-uart"')
        assert value == PropertyValue.string('ns16550a", "simple-uart')

    def test_cells_with_prefix(self) -> None:
        assert parse_value("<0x1000 0x100>") == PropertyValue.cells([0x1000, 0x100])

    def test_cells_without_prefix_are_hex(self) -> None:
        assert parse_value("<10 ff>") == PropertyValue.cells([0x10, 0xFF])

    def test_uppercase_prefix(self) -> None:
        assert parse_value("<0XAB>") == PropertyValue.cells([0xAB])

    def test_empty_cells(self) -> None:
        value = parse_value("<>")
        assert value.kind is ValueKind.CELLS32
        assert value.data == ()

    def test_bytes(self) -> None:
        assert parse_value("[0a ff 00]") == PropertyValue.from_bytes(b"\x0a\xff\x00")

    def test_empty_text(self) -> None:
        assert parse_value("") == PropertyValue.string("")

    def test_bare_text(self) -> None:
        assert parse_value("&gpio0") == PropertyValue.string("&gpio0")

    def test_surrounding_whitespace_ignored(self) -> None:
        assert parse_value('   "x"  ') == PropertyValue.string("x")

    def test_invalid_cell_token(self) -> None:
        with pytest.raises(PropertyValueError, match="invalid cell value 'zz'"):
            parse_value("<1 zz>")

    def test_cell_overflow(self) -> None:
        with pytest.raises(PropertyValueError, match="32 bits"):
            parse_value("<0x100000000>")

    def test_byte_overflow(self) -> None:
        with pytest.raises(PropertyValueError, match="8 bits"):
            parse_value("[100]")

    def test_negative_token_rejected(self) -> None:
        with pytest.raises(PropertyValueError):
            parse_value("<-1>")

    def test_underscore_token_rejected(self) -> None:
        with pytest.raises(PropertyValueError):
            parse_value("<1_0>")

    def test_bare_prefix_rejected(self) -> None:
        with pytest.raises(PropertyValueError):
            parse_value("<0x>")


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


class TestStructure:
    def test_one_line_root(self) -> None:
        tree = _decode('/ { compatible = "test,device"; model = "Test Device"; };')
        assert [p.name for p in tree.root.properties] == ["compatible", "model"]
        assert tree.root.children == []

    def test_grouping_brace(self) -> None:
        tree = _decode('{ / { a = "1"; }; }')
        assert _value(tree, "/", "a") == PropertyValue.string("1")

    def test_nested_grouping_braces(self) -> None:
        tree = _decode('{ { / { a = "1"; }; }; }')
        assert _value(tree, "/", "a") == PropertyValue.string("1")
        assert tree.warnings == []

    def test_stray_closing_brace_before_root(self) -> None:
        tree = _decode('}; / { a = "1"; };')
        assert _value(tree, "/", "a") == PropertyValue.string("1")

    def test_deeply_nested_nodes(self) -> None:
        depth = 1200
        source = "/ {\n" + "".join(f"n{i} {{\n" for i in range(depth))
        source += 'leaf = "x";\n' + "};\n" * (depth + 1)
        tree = _decode(source)
        assert tree.node_count() == depth + 1
        path = "/" + "/".join(f"n{i}" for i in range(depth))
        assert _value(tree, path, "leaf") == PropertyValue.string("x")

    def test_nested_nodes(self, sample_dts: str) -> None:
        tree = DTSDecoder().decode(sample_dts, source_id="board.dts")
        assert tree.source_id == "board.dts"
        assert [n.full_path() for n in tree.walk()] == ["/", "/soc", "/soc/serial@1000"]

    def test_sample_values(self, sample_dts: str) -> None:
        tree = DTSDecoder().decode(sample_dts)
        assert _value(tree, "/", "model") == PropertyValue.string("Test Device")
        assert _value(tree, "/soc", "#address-cells") == PropertyValue.cells([1])
        assert _value(tree, "/soc/serial@1000", "reg") == PropertyValue.cells([0x1000, 0x100])
        assert _value(tree, "/soc/serial@1000", "compatible") == PropertyValue.string("ns16550a")

    def test_boolean_property(self, sample_dts: str) -> None:
        tree = DTSDecoder().decode(sample_dts)
        assert _value(tree, "/soc/serial@1000", "interrupt-controller") == PropertyValue.string("")

    def test_root_is_named_slash(self) -> None:
        tree = _decode('/ { a = "1"; };')
        assert tree.root.name == "/"
        assert tree.warnings == []

    def test_grouping_brace_without_node_has_no_root(self) -> None:
        with pytest.raises(TreeSyntaxError, match="no root node"):
            _decode('{ a = "1"; };')

    def test_top_level_label_reference_becomes_root(self) -> None:
        tree = _decode('&uart0 { status = "okay"; };')
        assert tree.root.name == "/"
        assert _value(tree, "/", "status") == PropertyValue.string("okay")
        assert any("treated as the root" in w for w in tree.warnings)

    def test_labels_stay_in_node_names(self) -> None:
        tree = _decode("/ { uart0: serial@1000 { }; };")
        assert [c.name for c in tree.root.children] == ["uart0: serial@1000"]

    def test_last_property_without_semicolon(self) -> None:
        tree = _decode('/ { a = "1" };')
        assert _value(tree, "/", "a") == PropertyValue.string("1")

    def test_closing_root_ends_parsing(self) -> None:
        tree = _decode('/ { a = "1"; }; / { b = "2"; };')
        assert tree.root.find_property("b") is None

    def test_duplicate_property_last_wins(self) -> None:
        tree = _decode('/ { a = "1"; a = "2"; };')
        assert tree.root.property_count == 1
        assert _value(tree, "/", "a") == PropertyValue.string("2")

    def test_unclosed_node_warns(self) -> None:
        tree = _decode('/ { a { b = "1";')
        assert _value(tree, "/a", "b") == PropertyValue.string("1")
        assert any("input ended inside node /a" in w for w in tree.warnings)

    def test_braces_inside_strings_are_text(self) -> None:
        tree = _decode('/ { label = "a { b }; c"; };')
        assert _value(tree, "/", "label") == PropertyValue.string("a { b }; c")

    def test_escaped_quote_inside_string(self) -> None:
        tree = _decode(r'/ { s = "say \"hi\""; };')
        assert _value(tree, "/", "s") == PropertyValue.string(r"say \"hi\"")


class TestLexical:
    def test_comments_and_pragmas_skipped(self) -> None:
        source = """\
/dts-v1/;
// leading comment
/*
 * block comment { not a node }
 */
#include "board.dtsi"
#define FOO 1
/ {
    a = "1"; // trailing
    /* inline */ b = <2>;
};
"""
        tree = _decode(source)
        assert _value(tree, "/", "a") == PropertyValue.string("1")
        assert _value(tree, "/", "b") == PropertyValue.cells([2])
        assert tree.root.children == []

    def test_hash_properties_are_not_preprocessor_lines(self) -> None:
        tree = _decode("/ {\n#size-cells = <0>;\n#interrupt-cells = <2>;\n};")
        assert _value(tree, "/", "#size-cells") == PropertyValue.cells([0])
        assert _value(tree, "/", "#interrupt-cells") == PropertyValue.cells([2])

    def test_multi_line_cells(self) -> None:
        source = "/ {\n    reg = <0x1000\n           0x2000>;\n};"
        assert _value(_decode(source), "/", "reg") == PropertyValue.cells([0x1000, 0x2000])

    def test_continuation_marker(self) -> None:
        source = '/ {\n    interrupts = <1 \\\n        2 3>;\n    next = "x";\n};'
        tree = _decode(source)
        assert _value(tree, "/", "interrupts") == PropertyValue.cells([1, 2, 3])
        assert _value(tree, "/", "next") == PropertyValue.string("x")

    def test_bytes_input(self) -> None:
        tree = DTSDecoder().decode(b'/ { a = "1"; };')
        assert _value(tree, "/", "a") == PropertyValue.string("1")

    def test_iterable_of_lines(self) -> None:
        lines = ["/ {", '    a = "1"; // note', "};"]
        assert _value(DTSDecoder().decode(lines), "/", "a") == PropertyValue.string("1")

    def test_file_object(self) -> None:
        handle = io.StringIO('/ {\n    a = <1>;\n};\n')
        assert _value(DTSDecoder().decode(handle), "/", "a") == PropertyValue.cells([1])


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestSyntaxErrors:
    def test_no_root_node(self) -> None:
        with pytest.raises(TreeSyntaxError, match="no root node"):
            _decode("/dts-v1/;\n// nothing here\n")

    def test_empty_input(self) -> None:
        with pytest.raises(TreeSyntaxError, match="no root node"):
            _decode("")

    def test_missing_equals(self) -> None:
        with pytest.raises(TreeSyntaxError) as exc_info:
            _decode('/ {\n    a = "1";\n    this is wrong;\n};')
        assert exc_info.value.line == 3
        assert "line 3" in str(exc_info.value)

    def test_empty_property_name(self) -> None:
        with pytest.raises(TreeSyntaxError, match="empty property name"):
            _decode('/ { = "1"; };')

    def test_unnamed_child_node(self) -> None:
        with pytest.raises(TreeSyntaxError, match="node without a name"):
            _decode("/ { { }; };")


class TestValueErrors:
    def test_bad_cell_skips_property(self, caplog: pytest.LogCaptureFixture) -> None:
        source = '/ {\n    good = <1>;\n    bad = <0xZZ>;\n    after = "x";\n};'
        with caplog.at_level(logging.WARNING, logger="devtree_diff"):
            tree = _decode(source)
        assert tree.root.find_property("bad") is None
        assert _value(tree, "/", "good") == PropertyValue.cells([1])
        assert _value(tree, "/", "after") == PropertyValue.string("x")
        assert len(tree.warnings) == 1
        assert tree.warnings[0].startswith("line 3:")
        assert "'bad'" in caplog.text

    def test_bad_byte_skips_property(self) -> None:
        tree = _decode("/ { mac = [00 11 2g]; };")
        assert tree.root.find_property("mac") is None
        assert "invalid byte value" in tree.warnings[0]

    def test_strict_mode_raises(self) -> None:
        with pytest.raises(PropertyValueError):
            _decode("/ { bad = <0xZZ>; };", strict_values=True)


class TestDirectives:
    def test_memreserve(self) -> None:
        tree = _decode("/dts-v1/;\n/memreserve/ 0x10000000 0x4000;\n/ { };")
        assert tree.memory_reservations == ((0x10000000, 0x4000),)

    def test_memreserve_decimal(self) -> None:
        tree = _decode("/memreserve/ 4096 8192;\n/ { };")
        assert tree.memory_reservations == ((4096, 8192),)

    def test_malformed_memreserve_warns(self) -> None:
        tree = _decode("/memreserve/ 0x1000;\n/ { };")
        assert tree.memory_reservations == ()
        assert any("/memreserve/" in w for w in tree.warnings)

    def test_delete_property(self) -> None:
        tree = _decode('/ { a = "1"; b = "2"; /delete-property/ a; };')
        assert [p.name for p in tree.root.properties] == ["b"]

    def test_delete_node(self) -> None:
        tree = _decode("/ { keep { }; drop { x = <1>; }; /delete-node/ drop; };")
        assert [c.name for c in tree.root.children] == ["keep"]

    def test_delete_missing_node_is_ignored(self) -> None:
        tree = _decode("/ { /delete-node/ ghost; };")
        assert tree.root.children == []


class TestCanDecode:
    def test_name_hint(self) -> None:
        assert DTSDecoder().can_decode("board.dts")
        assert DTSDecoder().can_decode("board.dtsi")

    def test_content_never_inspected(self) -> None:
        assert not DTSDecoder().can_decode("board.txt", b"/dts-v1/;")

    def test_binary_name_rejected(self) -> None:
        assert not DTSDecoder().can_decode("board.dtb")
