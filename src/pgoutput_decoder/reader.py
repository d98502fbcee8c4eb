"""Cursor over a pgoutput message buffer.

``ByteReader`` extracts the primitive field types used by the pgoutput wire
format.  Each read advances the cursor past the bytes it consumed and raises
a :class:`~pgoutput_decoder.errors.DecodeError` subclass instead of reading
past the end of the buffer.  Multi-byte integers are big-endian.
"""

from __future__ import annotations

import struct
from datetime import UTC, datetime, timedelta

from pgoutput_decoder.errors import (
    MalformedTextError,
    TimestampRangeError,
    TruncatedInputError,
    UnknownTupleFlagError,
)
from pgoutput_decoder.messages import Column, Tuple, TupleFlag

# PostgreSQL epoch: 2000-01-01 00:00:00 UTC
PG_EPOCH = datetime(2000, 1, 1, tzinfo=UTC)
_MAX_TIMESTAMP_US = (datetime.max.replace(tzinfo=UTC) - PG_EPOCH) // timedelta(
    microseconds=1
)

_U16 = struct.Struct("!H")
_I32 = struct.Struct("!i")
_U32 = struct.Struct("!I")
_U64 = struct.Struct("!Q")


class ByteReader:
    """Sequential reader over one message buffer.

    The buffer is borrowed: slices handed back to callers are copies, so
    decoded values never keep a reference to it.
    """

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _require(self, size: int) -> None:
        if size > self.remaining:
            raise TruncatedInputError(
                needed=size, available=self.remaining, offset=self._pos
            )

    def _unpack(self, fmt: struct.Struct) -> int:
        self._require(fmt.size)
        (value,) = fmt.unpack_from(self._data, self._pos)
        self._pos += fmt.size
        return value  # type: ignore[no-any-return]

    # -- fixed width -----------------------------------------------------------

    def read_u8(self) -> int:
        self._require(1)
        value = self._data[self._pos]
        self._pos += 1
        return value

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_u64(self) -> int:
        return self._unpack(_U64)

    def read_bytes(self, size: int) -> bytes:
        """Read exactly *size* bytes as an owned copy."""
        self._require(size)
        value = self._data[self._pos : self._pos + size]
        self._pos += size
        return value

    # -- pgoutput primitives ---------------------------------------------------

    def read_bool(self) -> bool:
        return self.read_u8() != 0

    def read_string(self) -> str:
        """Read a null-terminated UTF-8 string, consuming the terminator."""
        start = self._pos
        end = self._data.find(b"\x00", start)
        if end == -1:
            msg = "string is missing its null terminator"
            raise MalformedTextError(msg, offset=start)
        try:
            value = self._data[start:end].decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"string is not valid UTF-8: {exc.reason}"
            raise MalformedTextError(msg, offset=start + exc.start) from exc
        self._pos = end + 1
        return value

    def read_timestamp(self) -> datetime:
        """Read microseconds since the PostgreSQL epoch as an aware datetime.

        Valid up to 9999-12-31T23:59:59.999999Z; later values raise
        :class:`TimestampRangeError`.
        """
        start = self._pos
        micros = self.read_u64()
        if micros > _MAX_TIMESTAMP_US:
            raise TimestampRangeError(micros, offset=start)
        return PG_EPOCH + timedelta(microseconds=micros)

    def read_row_marker(self, tag: str) -> bool:
        """Consume the optional one-byte marker *tag* if it is next.

        Returns ``False`` without moving the cursor when a different byte
        follows.  An exhausted buffer raises rather than reporting absence.
        """
        self._require(1)
        if self._data[self._pos] != ord(tag):
            return False
        self._pos += 1
        return True

    def read_tuple_row(self) -> tuple[Tuple, ...]:
        """Read TupleData: a column count followed by one slot per column."""
        count = self.read_u16()
        row: list[Tuple] = []
        for _ in range(count):
            flag_offset = self._pos
            raw_flag = self.read_u8()
            try:
                flag = TupleFlag(chr(raw_flag))
            except ValueError:
                raise UnknownTupleFlagError(raw_flag, offset=flag_offset) from None

            if flag is TupleFlag.TEXT:
                size = self.read_u32()
                row.append(Tuple(flag, self.read_bytes(size)))
            else:
                row.append(Tuple(flag))
        return tuple(row)

    def read_columns(self) -> tuple[Column, ...]:
        """Read the column list of a Relation message."""
        count = self.read_u16()
        columns: list[Column] = []
        for _ in range(count):
            columns.append(
                Column(
                    is_key=self.read_bool(),
                    name=self.read_string(),
                    type_oid=self.read_u32(),
                    type_modifier=self.read_u32(),
                )
            )
        return tuple(columns)
