"""Read decoder config files.

String values may reference the environment as ``${NAME}`` or
``${NAME:-fallback}``; ``$${`` produces a literal ``${``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import ValidationError

from pgoutput_decoder.config.models import DecoderConfig
from pgoutput_decoder.config.presets import DEFAULT_PRESET, build_decoder_config

_ENV_REF = re.compile(r"\$(\$?)\{(\w+)(?::-([^}]*))?\}")


def _substitute(match: re.Match[str]) -> str:
    escaped, name, fallback = match.groups()
    if escaped:
        return match.group(0)[1:]
    if name in os.environ:
        return os.environ[name]
    if fallback is None:
        msg = f"${{{name}}} is referenced but not set in the environment"
        raise ValueError(msg)
    return fallback


def expand_env(value: Any) -> Any:
    """Expand environment references in every string nested in *value*."""
    if isinstance(value, str):
        return _ENV_REF.sub(_substitute, value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    return value


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Parse *path* as a YAML mapping with environment references expanded.

    An empty file is an empty mapping.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" (line {mark.line + 1})" if mark is not None else ""
        msg = f"Failed to parse YAML in {path}{where}: {exc}"
        raise ValueError(msg) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{path} must contain a YAML mapping, not {type(data).__name__}"
        raise TypeError(msg)
    return cast(dict[str, Any], expand_env(data))


def load_decoder_config(
    path: str | Path | None = None, *, preset: str | None = None
) -> DecoderConfig:
    """Build the decoder config from a preset and an optional file.

    The preset is *preset* if given, else the file's ``preset:`` key, else
    ``strict``.  The rest of the file is layered over it.
    """
    layer = load_yaml(path) if path is not None else {}
    file_preset = layer.pop("preset", None)
    chosen = preset or file_preset or DEFAULT_PRESET
    if not isinstance(chosen, str):
        msg = f"preset must be a name, got {chosen!r}"
        raise TypeError(msg)
    try:
        return build_decoder_config(layer, preset=chosen)
    except ValidationError as exc:
        source = path or f"preset '{chosen}'"
        msg = f"Invalid decoder config ({source}):\n{exc}"
        raise ValueError(msg) from exc
