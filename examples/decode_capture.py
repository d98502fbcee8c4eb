#!/usr/bin/env python3
"""Runnable demo: decode a small captured pgoutput transaction.

    python examples/decode_capture.py
"""

from __future__ import annotations

import struct

from rich.console import Console

from pgoutput_decoder import Insert, MessageStream, RelationCache

console = Console()


def _cstr(value: str) -> bytes:
    return value.encode() + b"\x00"


def _capture() -> list[bytes]:
    """One transaction inserting a row into public.customers."""
    relation = (
        b"R"
        + struct.pack("!I", 16385)
        + _cstr("public")
        + _cstr("customers")
        + b"d"
        + struct.pack("!H", 2)
        + b"\x01" + _cstr("id") + struct.pack("!II", 23, 0xFFFFFFFF)
        + b"\x00" + _cstr("email") + struct.pack("!II", 25, 0xFFFFFFFF)
    )
    email = b"alice@example.com"
    insert = (
        b"I"
        + struct.pack("!I", 16385)
        + b"N"
        + struct.pack("!H", 2)
        + b"t" + struct.pack("!I", 1) + b"1"
        + b"t" + struct.pack("!I", len(email)) + email
    )
    begin = b"B" + struct.pack("!QQi", 0x16B374D848, 757_382_400_000_000, 731)
    commit = b"C" + struct.pack(
        "!BQQQ", 0, 0x16B374D848, 0x16B374D878, 757_382_400_000_000
    )
    return [begin, relation, insert, commit]


def main() -> None:
    relations = RelationCache()
    for message in MessageStream().decode(_capture()):
        relations.observe(message)
        console.print(message)
        if isinstance(message, Insert):
            row = relations.named_row(message.relation_id, message.row)
            console.print({name: slot.value for name, slot in row.items()})


if __name__ == "__main__":
    main()
