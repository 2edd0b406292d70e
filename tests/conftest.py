"""Shared fixtures: an in-memory FDT blob builder and sample sources.

``FdtBuilder`` writes the structure block as a list of operations and only
serialises at ``build()``, so the same description can be emitted in either
byte order.  Header fields can be overridden to produce malformed blobs.
"""

from __future__ import annotations

import struct
from collections.abc import Callable
from pathlib import Path

import pytest

FDT_MAGIC = 0xD00DFEED
HEADER_FIELDS = (
    "magic",
    "totalsize",
    "off_dt_struct",
    "off_dt_strings",
    "off_mem_rsvmap",
    "version",
    "last_comp_version",
    "boot_cpuid_phys",
    "size_dt_strings",
    "size_dt_struct",
)


def _pad4(data: bytes) -> bytes:
    return data + b"\0" * (-len(data) % 4)


class FdtBuilder:
    """Fluent builder for flattened device tree blobs."""

    def __init__(self) -> None:
        self._ops: list[tuple[str, int | bytes]] = []
        self._strings = bytearray()
        self._string_offsets: dict[str, int] = {}

    # Structure block -------------------------------------------------------

    def word(self, value: int) -> FdtBuilder:
        self._ops.append(("word", value))
        return self

    def raw(self, data: bytes) -> FdtBuilder:
        self._ops.append(("bytes", data))
        return self

    def begin_node(self, name: str) -> FdtBuilder:
        return self.word(0x1).raw(_pad4(name.encode() + b"\0"))

    def end_node(self) -> FdtBuilder:
        return self.word(0x3)

    def nop(self) -> FdtBuilder:
        return self.word(0x4)

    def end(self) -> FdtBuilder:
        return self.word(0x9)

    def string_offset(self, name: str) -> int:
        if name not in self._string_offsets:
            self._string_offsets[name] = len(self._strings)
            self._strings += name.encode() + b"\0"
        return self._string_offsets[name]

    def prop(self, name: str, value: bytes, nameoff: int | None = None) -> FdtBuilder:
        offset = self.string_offset(name) if nameoff is None else nameoff
        return self.word(0x2).word(len(value)).word(offset).raw(_pad4(value))

    def prop_str(self, name: str, text: str) -> FdtBuilder:
        return self.prop(name, text.encode() + b"\0")

    def prop_cells(self, name: str, *cells: int) -> FdtBuilder:
        return self.prop(name, b"".join(c.to_bytes(4, "big") for c in cells))

    # Serialisation ---------------------------------------------------------

    def build(
        self,
        *,
        version: int = 17,
        reservations: tuple[tuple[int, int], ...] = (),
        swapped: bool = False,
        trailing: bytes = b"",
        **overrides: int,
    ) -> bytes:
        order = "<" if swapped else ">"
        struct_block = b"".join(
            struct.pack(f"{order}I", value) if kind == "word" else value  # type: ignore[arg-type]
            for kind, value in self._ops
        )
        rsvmap = b"".join(
            struct.pack(f"{order}QQ", address, size)
            for address, size in (*reservations, (0, 0))
        )
        # an empty strings block at the end would put off_dt_strings at totalsize
        strings = bytes(self._strings) or b"\0"

        off_rsvmap = 40
        off_struct = off_rsvmap + len(rsvmap)
        off_strings = off_struct + len(struct_block)
        fields = {
            "magic": FDT_MAGIC,
            "totalsize": off_strings + len(strings) + len(trailing),
            "off_dt_struct": off_struct,
            "off_dt_strings": off_strings,
            "off_mem_rsvmap": off_rsvmap,
            "version": version,
            "last_comp_version": 16,
            "boot_cpuid_phys": 0,
            "size_dt_strings": len(strings),
            "size_dt_struct": len(struct_block),
        }
        unknown = set(overrides) - set(fields)
        if unknown:
            raise KeyError(f"unknown header fields: {sorted(unknown)}")
        fields.update(overrides)
        header = struct.pack(f"{order}10I", *(fields[name] for name in HEADER_FIELDS))
        return header + rsvmap + struct_block + strings + trailing


def sample_builder() -> FdtBuilder:
    """A small board: root with two strings, a soc node with a uart and a flag."""
    return (
        FdtBuilder()
        .begin_node("")
        .prop_str("compatible", "test,device")
        .prop_str("model", "Test Device")
        .begin_node("soc")
        .prop_cells("#address-cells", 1)
        .begin_node("serial@1000")
        .prop_str("compatible", "ns16550a")
        .prop_cells("reg", 0x1000, 0x100)
        .prop("interrupt-controller", b"")
        .end_node()
        .end_node()
        .end_node()
        .end()
    )


SAMPLE_DTS = """\
/dts-v1/;

#include <dt-bindings/gpio/gpio.h>

/ {
    compatible = "test,device";
    model = "Test Device";

    /* the system-on-chip bus */
    soc {
        #address-cells = <1>;
        serial@1000 {
            compatible = "ns16550a";   // 16550 UART
            reg = <0x1000 0x100>;
            interrupt-controller;
        };
    };
};
"""


@pytest.fixture
def fdt_builder() -> Callable[[], FdtBuilder]:
    """Factory for empty ``FdtBuilder`` instances."""
    return FdtBuilder


@pytest.fixture
def sample_blob() -> bytes:
    return sample_builder().build()


@pytest.fixture
def sample_blob_swapped() -> bytes:
    return sample_builder().build(swapped=True)


@pytest.fixture
def sample_dts() -> str:
    return SAMPLE_DTS


@pytest.fixture
def tree_files(tmp_path: Path, sample_blob: bytes) -> dict[str, Path]:
    """Write the sample blob and source, plus a modified source, to disk."""
    dtb = tmp_path / "board.dtb"
    dtb.write_bytes(sample_blob)
    dts = tmp_path / "board.dts"
    dts.write_text(SAMPLE_DTS)
    changed = tmp_path / "board-rev2.dts"
    changed.write_text(
        SAMPLE_DTS.replace('"Test Device"', '"Test Device rev2"').replace(
            "interrupt-controller;", 'status = "okay";'
        )
    )
    return {"dtb": dtb, "dts": dts, "changed": changed}
