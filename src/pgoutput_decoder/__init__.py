"""Decoder for the PostgreSQL pgoutput logical replication protocol."""

from pgoutput_decoder.decoder import decode_message
from pgoutput_decoder.errors import (
    DecodeError,
    MalformedTextError,
    TimestampRangeError,
    TruncatedInputError,
    UnknownMessageTypeError,
    UnknownTupleFlagError,
    UnrecognizedTagError,
)
from pgoutput_decoder.messages import (
    Begin,
    Column,
    Commit,
    Delete,
    Insert,
    LogicalReplicationMessage,
    Message,
    MessageKind,
    Origin,
    Relation,
    Truncate,
    Tuple,
    TupleFlag,
    Type,
    Update,
)
from pgoutput_decoder.reader import PG_EPOCH, ByteReader
from pgoutput_decoder.relations import RelationCache, UnknownRelationError
from pgoutput_decoder.stream import MessageStream, StreamAbortedError, StreamStats

__all__ = [
    "PG_EPOCH",
    "Begin",
    "ByteReader",
    "Column",
    "Commit",
    "DecodeError",
    "Delete",
    "Insert",
    "LogicalReplicationMessage",
    "MalformedTextError",
    "Message",
    "MessageKind",
    "MessageStream",
    "Origin",
    "Relation",
    "RelationCache",
    "StreamAbortedError",
    "StreamStats",
    "TimestampRangeError",
    "Truncate",
    "TruncatedInputError",
    "Tuple",
    "TupleFlag",
    "Type",
    "UnknownMessageTypeError",
    "UnknownRelationError",
    "UnknownTupleFlagError",
    "UnrecognizedTagError",
    "Update",
    "decode_message",
]
