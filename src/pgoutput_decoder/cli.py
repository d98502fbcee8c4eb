"""Typer CLI for decoding captured pgoutput messages."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pgoutput_decoder.config.loader import load_decoder_config
from pgoutput_decoder.config.models import DecoderConfig, InputFormat
from pgoutput_decoder.config.presets import available_presets, build_decoder_config
from pgoutput_decoder.decoder import decode_message
from pgoutput_decoder.errors import DecodeError
from pgoutput_decoder.messages import (
    Begin,
    Commit,
    Delete,
    Insert,
    LogicalReplicationMessage,
    Message,
    Origin,
    Relation,
    Truncate,
    Tuple,
    Type,
    Update,
)
from pgoutput_decoder.relations import RelationCache, UnknownRelationError
from pgoutput_decoder.stream import MessageStream, StreamAbortedError

logger = structlog.get_logger()
console = Console()
app = typer.Typer(name="pgoutput", help="pgoutput logical replication decoder")


@app.callback()
def main(
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON"),
) -> None:
    """Decode PostgreSQL pgoutput logical replication messages."""
    if json_logs:
        processors: list[Any] = [
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ]
        structlog.configure(
            processors=processors, logger_factory=structlog.PrintLoggerFactory()
        )


def format_lsn(lsn: int) -> str:
    """Format an LSN the way PostgreSQL prints it (``16/B374D848``)."""
    return f"{lsn >> 32:X}/{lsn & 0xFFFFFFFF:X}"


def _format_row(
    row: tuple[Tuple, ...], relation_id: int, relations: RelationCache
) -> str:
    try:
        named = relations.named_row(relation_id, row)
    except UnknownRelationError:
        named = {f"col_{i}": slot for i, slot in enumerate(row)}
    parts = []
    for name, slot in named.items():
        shown = slot.flag.name.lower() if slot.value is None else repr(slot.value)
        parts.append(f"{name}={shown}")
    return "{" + ", ".join(parts) + "}"


def describe(message: LogicalReplicationMessage, relations: RelationCache) -> str:
    """One-line human readable summary of a decoded record."""
    if isinstance(message, Begin):
        return (
            f"lsn={format_lsn(message.lsn)} xid={message.xid} "
            f"at {message.timestamp.isoformat()}"
        )
    if isinstance(message, Commit):
        return (
            f"lsn={format_lsn(message.lsn)} "
            f"end_lsn={format_lsn(message.transaction_lsn)} "
            f"at {message.timestamp.isoformat()}"
        )
    if isinstance(message, Origin):
        return f"{message.name} lsn={format_lsn(message.lsn)}"
    if isinstance(message, Relation):
        cols = ", ".join(
            f"{c.name}{'*' if c.is_key else ''}:{c.type_oid}" for c in message.columns
        )
        return f"#{message.id} {message.namespace}.{message.name} ({cols})"
    if isinstance(message, Type):
        return f"#{message.id} {message.namespace}.{message.name}"
    if isinstance(message, Insert):
        row = _format_row(message.row, message.relation_id, relations)
        return f"rel={message.relation_id} new={row}"
    if isinstance(message, Update):
        detail = f"rel={message.relation_id}"
        if message.old_row is not None:
            old = _format_row(message.old_row, message.relation_id, relations)
            detail += f" old={old}"
        row = _format_row(message.row, message.relation_id, relations)
        return f"{detail} new={row}"
    if isinstance(message, Delete):
        row = _format_row(message.row, message.relation_id, relations)
        return f"rel={message.relation_id} old={row}"
    if isinstance(message, Truncate):
        rels = ", ".join(str(r) for r in message.relation_ids)
        return (
            f"rels=[{rels}] cascade={message.cascade} "
            f"restart_identity={message.restart_identity}"
        )
    if isinstance(message, Message):
        return (
            f"prefix={message.prefix} transactional={message.transactional} "
            f"{len(message.content)} byte(s)"
        )
    return repr(message)


def _read_hex_lines(path: Path) -> Iterator[bytes]:
    """Yield one message per non-blank, non-comment line of hex text."""
    with path.open() as f:
        for lineno, line in enumerate(f, start=1):
            text = line.strip()
            if not text or text.startswith("#"):
                continue
            try:
                yield bytes.fromhex(text)
            except ValueError as exc:
                msg = f"{path}:{lineno}: invalid hex message"
                raise ValueError(msg) from exc


def _read_binary(path: Path, pattern: str) -> Iterator[bytes]:
    """Yield one capture file, or each matching file of a directory by name."""
    if path.is_file():
        yield path.read_bytes()
        return
    for file_path in sorted(path.glob(pattern)):
        if file_path.is_file():
            yield file_path.read_bytes()


def _load(config_path: str | None, preset: str | None = None) -> DecoderConfig:
    if config_path is not None and not Path(config_path).exists():
        console.print(f"[red]Config file not found: {config_path}[/red]")
        raise typer.Exit(1)
    try:
        return load_decoder_config(config_path, preset=preset)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Config error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


@app.command()
def decode(
    hex_messages: list[str] = typer.Argument(..., help="Hex-encoded messages"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print full records"),
) -> None:
    """Decode one or more hex-encoded messages."""
    relations = RelationCache()
    failed = False
    for text in hex_messages:
        try:
            message = decode_message(bytes.fromhex(text))
        except (DecodeError, ValueError) as exc:
            console.print(f"[red]{escape(text[:32])}:[/red] {escape(str(exc))}")
            failed = True
            continue
        relations.observe(message)
        if verbose:
            console.print(message)
        else:
            console.print(
                f"[cyan]{type(message).__name__}[/cyan] "
                f"{escape(describe(message, relations))}"
            )
    if failed:
        raise typer.Exit(1)


@app.command("decode-file")
def decode_file(
    path: str = typer.Argument(..., help="Hex-lines file or directory of captures"),
    config_path: str | None = typer.Option(None, "--config", help="Decoder YAML"),
    preset: str | None = typer.Option(
        None, "--preset", help="Preset to layer the config over"
    ),
    input_format: InputFormat | None = typer.Option(
        None, "--format", help="Override the configured input format"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print full records"),
) -> None:
    """Decode every captured message in a file or directory."""
    config = _load(config_path, preset)
    source = Path(path)
    if not source.exists():
        console.print(f"[red]Input not found: {source}[/red]")
        raise typer.Exit(1)

    fmt = input_format or config.input.format
    if source.is_dir():
        fmt = InputFormat.BINARY
    buffers = (
        _read_binary(source, config.input.pattern)
        if fmt == InputFormat.BINARY
        else _read_hex_lines(source)
    )
    logger.info(
        "pgoutput.cli.loaded",
        path=str(source),
        format=str(fmt),
        error_policy=str(config.stream.error_policy),
    )

    stream = MessageStream(config.stream)
    relations = RelationCache()
    table = Table(title=f"pgoutput — {source}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Kind", style="cyan")
    table.add_column("Detail")

    exit_code = 0
    try:
        for index, message in enumerate(stream.decode(buffers)):
            relations.observe(message)
            if verbose:
                console.print(message)
            table.add_row(
                str(index),
                type(message).__name__,
                escape(describe(message, relations)),
            )
    except (DecodeError, StreamAbortedError, ValueError) as exc:
        console.print(f"[red]Decode failed:[/red] {escape(str(exc))}")
        exit_code = 1

    if not verbose:
        console.print(table)
    stats = stream.stats
    console.print(
        f"decoded={stats.decoded} skipped={stats.skipped} filtered={stats.filtered}"
    )
    if exit_code:
        raise typer.Exit(exit_code)


@app.command()
def validate(
    config_path: str = typer.Argument(..., help="Path to decoder YAML"),
    preset: str | None = typer.Option(
        None, "--preset", help="Preset to layer the config over"
    ),
) -> None:
    """Validate a decoder configuration file."""
    config = _load(config_path, preset)
    kinds = [k.name.lower() for k in config.stream.message_kinds] or ["(all)"]
    console.print(f"[green]Valid[/green] — {config_path}")
    console.print(f"  error policy: {config.stream.error_policy}")
    console.print(f"  max errors:   {config.stream.max_errors or 'unlimited'}")
    console.print(f"  kinds:        {', '.join(kinds)}")
    console.print(f"  input:        {config.input.format} ({config.input.pattern})")


@app.command()
def presets() -> None:
    """List the packaged presets."""
    table = Table(title="Presets")
    table.add_column("Name", style="cyan")
    table.add_column("Error policy")
    table.add_column("Max errors", justify="right")
    table.add_column("Kinds")
    for name in available_presets():
        config = build_decoder_config(preset=name)
        kinds = [k.name.lower() for k in config.stream.message_kinds] or ["(all)"]
        table.add_row(
            name,
            str(config.stream.error_policy),
            str(config.stream.max_errors or "unlimited"),
            ", ".join(kinds),
        )
    console.print(table)
