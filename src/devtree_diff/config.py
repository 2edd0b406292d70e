"""DecoderConfig: immutable settings shared by the tree decoders.

DecoderConfig is a frozen (immutable) dataclass holding the limits the binary
decoder enforces and the name hints the decoder selector matches on.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["DecoderConfig"]


@dataclass(frozen=True, slots=True)
class DecoderConfig:
    """Immutable configuration for decoding device trees.

    Attributes:
        max_name_offset: Property name offsets at or above this value are
            rejected as ``invalid name offset``.  Default ``0x1000000``.
        min_version: Oldest blob version accepted.  Default 16.
        max_version: Newest blob version known to decode fully.  Newer
            versions still decode but produce a warning.  Default 17.
        binary_hints: Substrings of a source name that select the binary
            decoder.  Default ``(".dtb",)``.
        text_hints: Substrings of a source name that select the text decoder.
            Default ``(".dts",)``.
        strict_values: When True, a property value that fails to parse raises
            ``PropertyValueError`` instead of being skipped.  Default False.
    """

    max_name_offset: int = 0x1000000
    min_version: int = 16
    max_version: int = 17
    binary_hints: tuple[str, ...] = (".dtb",)
    text_hints: tuple[str, ...] = (".dts",)
    strict_values: bool = False

    def __post_init__(self) -> None:
        if self.max_name_offset <= 0:
            msg = f"max_name_offset must be > 0, got {self.max_name_offset}"
            raise ValueError(msg)
        if self.min_version < 0:
            msg = f"min_version must be >= 0, got {self.min_version}"
            raise ValueError(msg)
        if self.max_version < self.min_version:
            msg = (
                f"max_version must be >= min_version, "
                f"got {self.max_version} < {self.min_version}"
            )
            raise ValueError(msg)
        for field_name in ("binary_hints", "text_hints"):
            hints = getattr(self, field_name)
            if isinstance(hints, str):
                msg = f"{field_name} must be a tuple of strings, got a bare string"
                raise ValueError(msg)
            if any(not hint for hint in hints):
                msg = f"{field_name} must not contain empty hints"
                raise ValueError(msg)
