"""Named decoder presets shipped with the package.

A preset is a partial config stored as ``presets/<name>.yaml``.  A user
config file picks one with a top-level ``preset:`` key (or the CLI's
``--preset``) and only spells out the fields it changes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from pgoutput_decoder.config.models import DecoderConfig

PRESETS_DIR = Path(__file__).parent / "presets"
DEFAULT_PRESET = "strict"


def available_presets() -> list[str]:
    return sorted(path.stem for path in PRESETS_DIR.glob("*.yaml"))


def load_preset(name: str) -> dict[str, Any]:
    """Return the raw mapping for preset *name*."""
    path = PRESETS_DIR / f"{name}.yaml"
    if not path.is_file():
        choices = ", ".join(available_presets())
        msg = f"Unknown preset '{name}' (available: {choices})"
        raise ValueError(msg)
    with path.open() as f:
        return yaml.safe_load(f) or {}


def overlay(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Return *base* with *layer* applied on top; nested sections merge.

    Lists are replaced wholesale, so a layer's ``message_kinds`` never
    extends the preset's.
    """
    result = dict(base)
    for key, value in layer.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = overlay(current, value)
        else:
            result[key] = value
    return result


def build_decoder_config(
    overrides: dict[str, Any] | None = None,
    *,
    preset: str = DEFAULT_PRESET,
) -> DecoderConfig:
    """Validate *overrides* layered over the named preset."""
    return DecoderConfig.model_validate(overlay(load_preset(preset), overrides or {}))
