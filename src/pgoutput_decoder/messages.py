"""Typed records for pgoutput logical replication messages.

Every record is an immutable value that owns its strings and byte payloads,
so it can outlive the buffer it was decoded from.

Reference: https://www.postgresql.org/docs/current/protocol-logicalrep-message-formats.html
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import ClassVar


class MessageKind(StrEnum):
    """Leading tag byte of each supported message."""

    BEGIN = "B"
    COMMIT = "C"
    ORIGIN = "O"
    RELATION = "R"
    TYPE = "Y"
    INSERT = "I"
    UPDATE = "U"
    DELETE = "D"
    TRUNCATE = "T"
    MESSAGE = "M"


class TupleFlag(StrEnum):
    """Kind of data carried by one column slot of a row image."""

    NULL = "n"
    UNCHANGED_TOAST = "u"
    TEXT = "t"


@dataclass(frozen=True, slots=True)
class Tuple:
    """One column's payload within a row image.

    ``value`` holds the raw text-format bytes when ``flag`` is TEXT and is
    ``None`` for NULL and unchanged TOAST slots.
    """

    flag: TupleFlag
    value: bytes | None = None

    def __post_init__(self) -> None:
        if (self.flag is TupleFlag.TEXT) != (self.value is not None):
            msg = f"Tuple with flag {self.flag!r} cannot carry value {self.value!r}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Column:
    """Column metadata from a Relation message."""

    is_key: bool
    name: str
    type_oid: int
    # Raw atttypmod bits, unsigned; "no modifier" arrives as 0xFFFFFFFF.
    type_modifier: int


@dataclass(frozen=True, slots=True)
class Begin:
    kind: ClassVar[MessageKind] = MessageKind.BEGIN

    # Final LSN of the transaction.
    lsn: int
    # Commit timestamp of the transaction.
    timestamp: datetime
    xid: int


@dataclass(frozen=True, slots=True)
class Commit:
    kind: ClassVar[MessageKind] = MessageKind.COMMIT

    flags: int
    # LSN of the commit.
    lsn: int
    # End LSN of the transaction.
    transaction_lsn: int
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class Origin:
    kind: ClassVar[MessageKind] = MessageKind.ORIGIN

    # LSN of the commit on the origin server.
    lsn: int
    name: str


@dataclass(frozen=True, slots=True)
class Relation:
    """Table schema snapshot, superseded by the next Relation with the same id."""

    kind: ClassVar[MessageKind] = MessageKind.RELATION

    id: int
    # Empty for pg_catalog.
    namespace: str
    name: str
    replica_identity: int
    columns: tuple[Column, ...]


@dataclass(frozen=True, slots=True)
class Type:
    kind: ClassVar[MessageKind] = MessageKind.TYPE

    id: int
    namespace: str
    name: str


@dataclass(frozen=True, slots=True)
class Insert:
    kind: ClassVar[MessageKind] = MessageKind.INSERT

    relation_id: int
    # The 'N' byte marking the row below as the new tuple.
    new: bool
    row: tuple[Tuple, ...]


@dataclass(frozen=True, slots=True)
class Update:
    """Row update.

    ``old_row`` is the pre-image sent when the table's replica identity
    covers changed key columns (``key``) or is FULL (``old``).
    """

    kind: ClassVar[MessageKind] = MessageKind.UPDATE

    relation_id: int
    key: bool
    old: bool
    old_row: tuple[Tuple, ...] | None
    # The 'N' byte marking ``row`` as the new tuple.
    new: bool
    row: tuple[Tuple, ...]


@dataclass(frozen=True, slots=True)
class Delete:
    kind: ClassVar[MessageKind] = MessageKind.DELETE

    relation_id: int
    # Which marker preceded ``row``: 'K' key columns only, 'O' the full old row.
    key: bool
    old: bool
    row: tuple[Tuple, ...]


@dataclass(frozen=True, slots=True)
class Truncate:
    kind: ClassVar[MessageKind] = MessageKind.TRUNCATE

    CASCADE: ClassVar[int] = 1
    RESTART_IDENTITY: ClassVar[int] = 2

    options: int
    relation_ids: tuple[int, ...]

    @property
    def cascade(self) -> bool:
        return bool(self.options & self.CASCADE)

    @property
    def restart_identity(self) -> bool:
        return bool(self.options & self.RESTART_IDENTITY)


@dataclass(frozen=True, slots=True)
class Message:
    """Generic logical decoding message emitted by ``pg_logical_emit_message``."""

    kind: ClassVar[MessageKind] = MessageKind.MESSAGE

    transactional: bool
    lsn: int
    prefix: str
    content: bytes


LogicalReplicationMessage = (
    Begin
    | Commit
    | Origin
    | Relation
    | Type
    | Insert
    | Update
    | Delete
    | Truncate
    | Message
)
