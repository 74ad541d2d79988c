"""Palette normalizer.

Colour palettes arrive in several shapes: a raw list of RGB triples, an
object wrapping the list under ``palette``, the JSON text of either, or
nothing at all. Everything stored goes through ``normalize_palette`` so the
database only ever holds the canonical list.
"""

import json
from collections.abc import Mapping
from enum import Enum
from moodify.errors import ValidationError
from typing import Any


class PaletteShape(Enum):
    """Input shapes accepted by the normalizer."""

    ABSENT = "absent"
    ENCODED_TEXT = "encoded_text"
    SEQUENCE = "sequence"
    WRAPPED = "wrapped"
    OPAQUE = "opaque"
    UNSUPPORTED = "unsupported"


def classify_palette(value: Any) -> PaletteShape:
    """Classify a raw palette value into one of the accepted shapes."""
    if value is None:
        return PaletteShape.ABSENT
    if isinstance(value, str):
        return PaletteShape.ENCODED_TEXT
    if isinstance(value, (list, tuple)):
        return PaletteShape.SEQUENCE
    if isinstance(value, Mapping):
        if isinstance(value.get("palette"), (list, tuple)):
            return PaletteShape.WRAPPED
        return PaletteShape.OPAQUE
    return PaletteShape.UNSUPPORTED


def normalize_palette(value: Any, field: str = "colour_palette") -> Any:
    """Coerce a palette value into its canonical representation.

    Args:
        value: Palette as submitted by the caller
        field: Field name used in error messages

    Returns:
        List of RGB triples, or the mapping itself for opaque keyed input

    Raises:
        ValidationError: If the value is unparseable text or an unsupported type
    """
    shape = classify_palette(value)

    if shape is PaletteShape.ABSENT:
        return []
    if shape is PaletteShape.ENCODED_TEXT:
        try:
            parsed = json.loads(value)
        except (json.JSONDecodeError, RecursionError) as e:
            raise ValidationError(f"Invalid {field}: not valid JSON", detail={"field": field}) from e
        return normalize_palette(parsed, field)
    if shape is PaletteShape.SEQUENCE:
        return list(value)
    if shape is PaletteShape.WRAPPED:
        return list(value["palette"])
    if shape is PaletteShape.OPAQUE:
        return value

    raise ValidationError(
        f"Invalid {field}: expected a list, an object or JSON text, got {type(value).__name__}",
        detail={"field": field},
    )
