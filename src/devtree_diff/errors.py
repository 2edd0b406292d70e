"""Error hierarchy for device tree decoding.

All package errors inherit from ``DeviceTreeError`` so callers can catch
every decode failure with a single ``except`` while still telling the kinds
apart:

- ``FormatError``:        malformed binary blob (header, offsets, names).
                          Fatal to the current decode call.
- ``NoDecoderError``:     no decoder accepts the input.  A ``FormatError``.
- ``TreeSyntaxError``:    structural error in the text format.  Fatal.
- ``PropertyValueError``: a single property value could not be parsed.
                          Recoverable: decoders skip the property and record
                          a warning unless configured to be strict.

The diff engine never raises; a missing tree is reported through
``DiffEngine.validation_errors()`` instead.
"""

from __future__ import annotations

__all__ = [
    "DeviceTreeError",
    "FormatError",
    "NoDecoderError",
    "PropertyValueError",
    "TreeSyntaxError",
]


class DeviceTreeError(Exception):
    """Base error for all device tree operations."""


class FormatError(DeviceTreeError):
    """The binary blob violates the format.

    Attributes:
        reason: Short, stable reason string (e.g. ``"bad magic"``,
            ``"size mismatch"``).  Callers match on this rather than on the
            full message.
        detail: Free-form context such as the offending value.
    """

    def __init__(self, reason: str, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = f"{reason}: {detail}" if detail else reason
        super().__init__(message)


class NoDecoderError(FormatError):
    """No registered decoder accepts the given source."""

    def __init__(self, source_id: str) -> None:
        self.source_id = source_id
        super().__init__("no decoder", f"no decoder accepts {source_id!r}")


class TreeSyntaxError(DeviceTreeError):
    """Fatal syntax error in device tree source text.

    Attributes:
        line: 1-based line number where the offending statement starts, or
            None when unknown.
    """

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class PropertyValueError(DeviceTreeError, ValueError):
    """A property value could not be parsed or does not fit its cell width."""
