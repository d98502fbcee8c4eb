"""Decode an ordered sequence of pgoutput message buffers.

``MessageStream`` applies a recovery policy on top of the stateless
decoder: a buffer that fails to decode is either re-raised or logged and
skipped, and the remaining buffers are decoded independently.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

import structlog

from pgoutput_decoder.config.models import ErrorPolicy, StreamConfig
from pgoutput_decoder.decoder import decode_message
from pgoutput_decoder.errors import DecodeError
from pgoutput_decoder.messages import LogicalReplicationMessage

logger = structlog.get_logger()


class StreamAbortedError(Exception):
    """Raised when a stream skips more messages than its config allows."""

    def __init__(self, skipped: int, last_error: DecodeError) -> None:
        super().__init__(
            f"Aborting after {skipped} undecodable message(s); last error: {last_error}"
        )
        self.skipped = skipped
        self.last_error = last_error


@dataclass(slots=True)
class StreamStats:
    """Running counters for a message stream."""

    decoded: int = 0
    skipped: int = 0
    filtered: int = 0


class MessageStream:
    """Iterates decoded records from raw buffers in delivery order."""

    def __init__(self, config: StreamConfig | None = None) -> None:
        self._config = config or StreamConfig()
        self._kinds = frozenset(self._config.message_kinds)
        self.stats = StreamStats()

    def decode(
        self, buffers: Iterable[bytes | bytearray | memoryview]
    ) -> Iterator[LogicalReplicationMessage]:
        """Yield one record per buffer, applying the error policy and filter."""
        for index, data in enumerate(buffers):
            try:
                message = decode_message(data)
            except DecodeError as exc:
                if self._config.error_policy == ErrorPolicy.RAISE:
                    raise
                self._skip(index, exc)
                continue

            self.stats.decoded += 1
            if self._kinds and message.kind not in self._kinds:
                self.stats.filtered += 1
                continue
            yield message

    def _skip(self, index: int, exc: DecodeError) -> None:
        self.stats.skipped += 1
        logger.warning(
            "pgoutput.stream.decode_failed",
            index=index,
            offset=exc.offset,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        max_errors = self._config.max_errors
        if max_errors > 0 and self.stats.skipped >= max_errors:
            logger.error(
                "pgoutput.stream.aborted",
                skipped=self.stats.skipped,
                max_errors=max_errors,
            )
            raise StreamAbortedError(self.stats.skipped, exc) from exc
