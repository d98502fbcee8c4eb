"""Pydantic configuration models for the decoder tooling."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from pgoutput_decoder.messages import MessageKind


class ErrorPolicy(StrEnum):
    """What a message stream does when a buffer fails to decode."""

    RAISE = "raise"
    SKIP = "skip"


class InputFormat(StrEnum):
    """On-disk format of captured messages."""

    # One hex-encoded message per line
    HEX = "hex"
    # One raw message per file
    BINARY = "binary"


class StreamConfig(BaseModel):
    """Error handling and filtering for a stream of messages."""

    error_policy: ErrorPolicy = ErrorPolicy.RAISE
    # Skipped messages tolerated before the stream aborts; 0 means unlimited.
    max_errors: int = Field(default=0, ge=0)
    # Kinds to emit; empty emits every kind.
    message_kinds: list[MessageKind] = Field(default_factory=list)

    @field_validator("message_kinds", mode="before")
    @classmethod
    def resolve_kind_names(cls, v: Any) -> Any:
        """Accept kind names (``insert``) as well as tags (``I``)."""
        if not isinstance(v, list):
            return v
        resolved: list[Any] = []
        for item in v:
            if isinstance(item, str) and item.upper() in MessageKind.__members__:
                resolved.append(MessageKind[item.upper()])
            else:
                resolved.append(item)
        return resolved


class InputConfig(BaseModel):
    """Where and how captured messages are read by the CLI."""

    format: InputFormat = InputFormat.HEX
    # Glob applied when a directory of binary captures is decoded.
    pattern: str = Field(default="*.waldata", min_length=1)


class DecoderConfig(BaseModel, extra="forbid"):
    """Top-level configuration for the pgoutput CLI."""

    stream: StreamConfig = StreamConfig()
    input: InputConfig = InputConfig()
