"""Exceptions raised while decoding pgoutput messages."""

from __future__ import annotations


class DecodeError(Exception):
    """Base class for every pgoutput decode failure.

    ``offset`` is the cursor position (from the start of the message buffer)
    at which the failure was detected.
    """

    def __init__(self, message: str, *, offset: int) -> None:
        super().__init__(f"{message} (at offset {offset})")
        self.offset = offset


class TruncatedInputError(DecodeError):
    """Raised when fewer bytes remain than a field requires."""

    def __init__(self, *, needed: int, available: int, offset: int) -> None:
        super().__init__(
            f"truncated input: needed {needed} byte(s), {available} available",
            offset=offset,
        )
        self.needed = needed
        self.available = available


class MalformedTextError(DecodeError):
    """Raised for a string that is unterminated or not valid UTF-8."""


class UnrecognizedTagError(DecodeError):
    """Raised when a tag byte does not match any known value."""

    label = "tag"

    def __init__(self, tag: int, *, offset: int) -> None:
        super().__init__(
            f"unknown {self.label} {chr(tag)!r} (0x{tag:02x})", offset=offset
        )
        self.tag = tag


class UnknownMessageTypeError(UnrecognizedTagError):
    """Raised when the leading message-type byte is not recognised."""

    label = "message type"


class UnknownTupleFlagError(UnrecognizedTagError):
    """Raised when a tuple column flag is not one of ``n``, ``u`` or ``t``."""

    label = "tuple flag"


class TimestampRangeError(DecodeError):
    """Raised when a timestamp lies beyond the largest representable datetime."""

    def __init__(self, microseconds: int, *, offset: int) -> None:
        super().__init__(
            f"timestamp {microseconds}us past 2000-01-01 is out of range",
            offset=offset,
        )
        self.microseconds = microseconds
