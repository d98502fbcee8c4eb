"""pgoutput binary protocol decoder.

Decodes one pgoutput logical replication message into a typed record.
Handles message types:

- B (Begin)          — transaction start
- C (Commit)         — transaction commit
- O (Origin)         — replication origin of the transaction
- R (Relation)       — table schema definition
- Y (Type)           — custom data type definition
- I (Insert)         — row insert
- U (Update)         — row update
- D (Delete)         — row delete
- T (Truncate)       — table truncation
- M (Message)        — logical decoding message

The decoder is stateless: it does not cache relations or track the current
transaction.  See :class:`pgoutput_decoder.relations.RelationCache` for
caller-side relation tracking.

Reference: https://www.postgresql.org/docs/current/protocol-logicalrep-message-formats.html
"""

from __future__ import annotations

from collections.abc import Callable

from pgoutput_decoder.errors import TruncatedInputError, UnknownMessageTypeError
from pgoutput_decoder.messages import (
    Begin,
    Commit,
    Delete,
    Insert,
    LogicalReplicationMessage,
    Message,
    MessageKind,
    Origin,
    Relation,
    Truncate,
    Type,
    Update,
)
from pgoutput_decoder.reader import ByteReader

_KEY_MARKER = "K"
_OLD_MARKER = "O"


def decode_message(data: bytes | bytearray | memoryview) -> LogicalReplicationMessage:
    """Decode a single pgoutput message.

    Raises a :class:`~pgoutput_decoder.errors.DecodeError` subclass if the
    buffer is truncated, malformed, or starts with an unknown tag.  Bytes
    after the last field of a known message are ignored.
    """
    reader = ByteReader(data)
    if reader.remaining == 0:
        raise TruncatedInputError(needed=1, available=0, offset=0)

    tag = reader.read_u8()
    try:
        kind = MessageKind(chr(tag))
    except ValueError:
        raise UnknownMessageTypeError(tag, offset=0) from None

    return _DECODERS[kind](reader)


def _decode_begin(reader: ByteReader) -> Begin:
    """Begin: final LSN (8) + commit timestamp (8) + xid (4)."""
    return Begin(
        lsn=reader.read_u64(),
        timestamp=reader.read_timestamp(),
        xid=reader.read_i32(),
    )


def _decode_commit(reader: ByteReader) -> Commit:
    """Commit: flags (1) + commit LSN (8) + end LSN (8) + timestamp (8)."""
    return Commit(
        flags=reader.read_u8(),
        lsn=reader.read_u64(),
        transaction_lsn=reader.read_u64(),
        timestamp=reader.read_timestamp(),
    )


def _decode_origin(reader: ByteReader) -> Origin:
    return Origin(lsn=reader.read_u64(), name=reader.read_string())


def _decode_relation(reader: ByteReader) -> Relation:
    """Relation: rel_id + namespace + name + replica identity + columns."""
    return Relation(
        id=reader.read_u32(),
        namespace=reader.read_string(),
        name=reader.read_string(),
        replica_identity=reader.read_u8(),
        columns=reader.read_columns(),
    )


def _decode_type(reader: ByteReader) -> Type:
    return Type(
        id=reader.read_u32(),
        namespace=reader.read_string(),
        name=reader.read_string(),
    )


def _decode_insert(reader: ByteReader) -> Insert:
    """Insert: rel_id (4) + 'N' + TupleData."""
    return Insert(
        relation_id=reader.read_u32(),
        new=reader.read_bool(),
        row=reader.read_tuple_row(),
    )


def _decode_update(reader: ByteReader) -> Update:
    """Update: rel_id (4) + optional 'K'|'O' + old TupleData + 'N' + TupleData."""
    relation_id = reader.read_u32()
    key = reader.read_row_marker(_KEY_MARKER)
    old = reader.read_row_marker(_OLD_MARKER)
    old_row = reader.read_tuple_row() if key or old else None
    return Update(
        relation_id=relation_id,
        key=key,
        old=old,
        old_row=old_row,
        new=reader.read_bool(),
        row=reader.read_tuple_row(),
    )


def _decode_delete(reader: ByteReader) -> Delete:
    """Delete: rel_id (4) + 'K'|'O' + TupleData."""
    return Delete(
        relation_id=reader.read_u32(),
        key=reader.read_row_marker(_KEY_MARKER),
        old=reader.read_row_marker(_OLD_MARKER),
        row=reader.read_tuple_row(),
    )


def _decode_truncate(reader: ByteReader) -> Truncate:
    """Truncate: relation count (4) + options (1) + rel_id (4) per relation."""
    count = reader.read_u32()
    options = reader.read_u8()
    relation_ids = tuple(reader.read_u32() for _ in range(count))
    return Truncate(options=options, relation_ids=relation_ids)


def _decode_message(reader: ByteReader) -> Message:
    """Message: flags (1) + LSN (8) + prefix + length (4) + content."""
    transactional = reader.read_bool()
    lsn = reader.read_u64()
    prefix = reader.read_string()
    content = reader.read_bytes(reader.read_u32())
    return Message(
        transactional=transactional, lsn=lsn, prefix=prefix, content=content
    )


_DECODERS: dict[MessageKind, Callable[[ByteReader], LogicalReplicationMessage]] = {
    MessageKind.BEGIN: _decode_begin,
    MessageKind.COMMIT: _decode_commit,
    MessageKind.ORIGIN: _decode_origin,
    MessageKind.RELATION: _decode_relation,
    MessageKind.TYPE: _decode_type,
    MessageKind.INSERT: _decode_insert,
    MessageKind.UPDATE: _decode_update,
    MessageKind.DELETE: _decode_delete,
    MessageKind.TRUNCATE: _decode_truncate,
    MessageKind.MESSAGE: _decode_message,
}
