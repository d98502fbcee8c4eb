"""Unit tests for the pgoutput primitive reader."""

from __future__ import annotations

import struct
from datetime import UTC, datetime, timedelta

import pytest

from pgoutput_decoder.errors import (
    DecodeError,
    MalformedTextError,
    TimestampRangeError,
    TruncatedInputError,
    UnknownTupleFlagError,
)
from pgoutput_decoder.messages import Column, Tuple, TupleFlag
from pgoutput_decoder.reader import PG_EPOCH, ByteReader
from tests.wire import UNCHANGED, build_tuple_data


class TestFixedWidth:
    def test_big_endian_integers(self):
        data = struct.pack("!BHiIQ", 7, 0x0102, -5, 0xDEADBEEF, 2**63 + 1)
        reader = ByteReader(data)
        assert reader.read_u8() == 7
        assert reader.read_u16() == 0x0102
        assert reader.read_i32() == -5
        assert reader.read_u32() == 0xDEADBEEF
        assert reader.read_u64() == 2**63 + 1
        assert reader.remaining == 0

    def test_position_advances(self):
        reader = ByteReader(b"\x00" * 10)
        reader.read_u32()
        assert reader.position == 4
        assert reader.remaining == 6

    def test_short_integer_raises_truncated(self):
        reader = ByteReader(b"\x00\x01\x02")
        with pytest.raises(TruncatedInputError) as exc_info:
            reader.read_u32()
        assert exc_info.value.needed == 4
        assert exc_info.value.available == 3
        assert exc_info.value.offset == 0

    def test_read_bytes_copies(self):
        source = bytearray(b"abcdef")
        reader = ByteReader(source)
        value = reader.read_bytes(3)
        source[0:3] = b"xyz"
        assert value == b"abc"
        assert isinstance(value, bytes)

    def test_accepts_memoryview(self):
        reader = ByteReader(memoryview(b"\x00\x2a"))
        assert reader.read_u16() == 42


class TestReadBool:
    @pytest.mark.parametrize(
        ("raw", "expected"), [(b"\x00", False), (b"\x01", True), (b"N", True)]
    )
    def test_nonzero_is_true(self, raw: bytes, expected: bool):
        assert ByteReader(raw).read_bool() is expected

    def test_empty_raises(self):
        with pytest.raises(TruncatedInputError):
            ByteReader(b"").read_bool()


class TestReadString:
    def test_consumes_terminator(self):
        reader = ByteReader(b"public\x00users\x00")
        assert reader.read_string() == "public"
        assert reader.position == 7
        assert reader.read_string() == "users"
        assert reader.remaining == 0

    def test_empty_string(self):
        reader = ByteReader(b"\x00rest")
        assert reader.read_string() == ""
        assert reader.position == 1

    def test_utf8(self):
        assert ByteReader("café\x00".encode()).read_string() == "café"

    def test_missing_terminator(self):
        reader = ByteReader(b"no-terminator")
        with pytest.raises(MalformedTextError, match="terminator"):
            reader.read_string()
        assert reader.position == 0

    def test_invalid_utf8(self):
        reader = ByteReader(b"ok\xff\xfe\x00")
        with pytest.raises(MalformedTextError, match="UTF-8") as exc_info:
            reader.read_string()
        assert exc_info.value.offset == 2

    def test_malformed_text_is_decode_error(self):
        with pytest.raises(DecodeError):
            ByteReader(b"abc").read_string()


class TestReadTimestamp:
    def test_zero_is_epoch(self):
        ts = ByteReader(struct.pack("!Q", 0)).read_timestamp()
        assert ts == datetime(2000, 1, 1, tzinfo=UTC)
        assert ts == PG_EPOCH

    def test_exact_microseconds(self):
        micros = 757_382_400_123_457
        ts = ByteReader(struct.pack("!Q", micros)).read_timestamp()
        assert ts == PG_EPOCH + timedelta(microseconds=micros)
        assert ts.microsecond == 123_457

    def test_timezone_aware(self):
        ts = ByteReader(struct.pack("!Q", 1)).read_timestamp()
        assert ts.tzinfo is UTC

    def test_out_of_range(self):
        with pytest.raises(TimestampRangeError) as exc_info:
            ByteReader(struct.pack("!Q", 2**64 - 1)).read_timestamp()
        assert exc_info.value.microseconds == 2**64 - 1

    def test_latest_representable(self):
        limit = datetime.max.replace(tzinfo=UTC)
        micros = (limit - PG_EPOCH) // timedelta(microseconds=1)
        assert ByteReader(struct.pack("!Q", micros)).read_timestamp() == limit

    def test_truncated(self):
        with pytest.raises(TruncatedInputError):
            ByteReader(b"\x00" * 7).read_timestamp()


class TestReadRowMarker:
    def test_match_consumes_one_byte(self):
        reader = ByteReader(b"K\x00")
        assert reader.read_row_marker("K") is True
        assert reader.position == 1

    def test_mismatch_leaves_cursor(self):
        reader = ByteReader(b"N\x00")
        assert reader.read_row_marker("K") is False
        assert reader.position == 0

    def test_empty_buffer_raises(self):
        with pytest.raises(TruncatedInputError):
            ByteReader(b"").read_row_marker("K")


class TestReadTupleRow:
    def test_zero_count(self):
        reader = ByteReader(struct.pack("!H", 0))
        assert reader.read_tuple_row() == ()
        assert reader.remaining == 0

    def test_all_flags(self):
        reader = ByteReader(build_tuple_data(["42", None, UNCHANGED]))
        row = reader.read_tuple_row()
        assert row == (
            Tuple(TupleFlag.TEXT, b"42"),
            Tuple(TupleFlag.NULL),
            Tuple(TupleFlag.UNCHANGED_TOAST),
        )
        assert reader.remaining == 0

    def test_value_is_raw_bytes(self):
        row = ByteReader(build_tuple_data([b"\x00\xff"])).read_tuple_row()
        assert row[0].value == b"\x00\xff"

    def test_empty_text_value(self):
        row = ByteReader(build_tuple_data([""])).read_tuple_row()
        assert row == (Tuple(TupleFlag.TEXT, b""),)

    def test_unknown_flag_consumes_only_flag(self):
        data = struct.pack("!H", 2) + b"x" + b"t" + struct.pack("!I", 1) + b"a"
        reader = ByteReader(data)
        with pytest.raises(UnknownTupleFlagError) as exc_info:
            reader.read_tuple_row()
        assert exc_info.value.tag == ord("x")
        assert exc_info.value.offset == 2
        assert reader.position == 3

    def test_length_exceeds_buffer(self):
        data = struct.pack("!H", 1) + b"t" + struct.pack("!I", 10) + b"short"
        with pytest.raises(TruncatedInputError) as exc_info:
            ByteReader(data).read_tuple_row()
        assert exc_info.value.needed == 10
        assert exc_info.value.available == 5

    def test_count_exceeds_slots(self):
        data = struct.pack("!H", 3) + b"n"
        with pytest.raises(TruncatedInputError):
            ByteReader(data).read_tuple_row()


class TestReadColumns:
    def test_column_fields_in_order(self):
        data = (
            struct.pack("!H", 2)
            + b"\x01"
            + b"id\x00"
            + struct.pack("!II", 23, 0xFFFFFFFF)
            + b"\x00"
            + b"label\x00"
            + struct.pack("!II", 1043, 36)
        )
        reader = ByteReader(data)
        assert reader.read_columns() == (
            Column(is_key=True, name="id", type_oid=23, type_modifier=0xFFFFFFFF),
            Column(is_key=False, name="label", type_oid=1043, type_modifier=36),
        )
        assert reader.remaining == 0

    def test_type_modifier_is_unsigned(self):
        data = struct.pack("!H", 1) + b"\x00c\x00" + struct.pack("!II", 23, 0xFFFFFFFF)
        (column,) = ByteReader(data).read_columns()
        assert column.type_modifier == 0xFFFFFFFF

    def test_zero_columns(self):
        assert ByteReader(struct.pack("!H", 0)).read_columns() == ()

    def test_truncated_type_modifier(self):
        data = struct.pack("!H", 1) + b"\x00id\x00" + struct.pack("!I", 23) + b"\x00"
        with pytest.raises(TruncatedInputError):
            ByteReader(data).read_columns()


class TestTupleInvariant:
    def test_text_requires_value(self):
        with pytest.raises(ValueError):
            Tuple(TupleFlag.TEXT)

    @pytest.mark.parametrize("flag", [TupleFlag.NULL, TupleFlag.UNCHANGED_TOAST])
    def test_valueless_flags_reject_value(self, flag: TupleFlag):
        with pytest.raises(ValueError):
            Tuple(flag, b"x")
