# src/siemship/core/canonical.py
"""
Canonical JSON serialization for record payloads.

Map-valued bodies and attributes are turned into log payload bytes here, so
the encoding must be deterministic: the same record always yields the same
bytes regardless of attribute insertion order. Keys are sorted, separators
carry no whitespace and non-ASCII text is kept as UTF-8.

Integers keep their full precision; OTLP int64 values such as nanosecond
timestamps serialize exactly.

NaN and Infinity are rejected, not converted. A record carrying them fails
extraction and is skipped rather than shipped with an invented value.
"""

from __future__ import annotations

import base64
import json
import math
from typing import Any


def _normalize_value(obj: Any) -> Any:
    """Convert a single value to a JSON-safe primitive.

    Raises:
        ValueError: If value is a non-finite float
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Cannot canonicalize non-finite float: {obj}")
        return obj

    if obj is None or isinstance(obj, str | int | bool):
        return obj

    # OTLP bytesValue; proto3 JSON renders bytes as standard base64.
    if isinstance(obj, bytes):
        return base64.b64encode(obj).decode("ascii")

    return obj


def _normalize_for_canonical(data: Any) -> Any:
    """Recursively normalize a data structure for canonical JSON."""
    if isinstance(data, dict):
        return {str(k): _normalize_for_canonical(v) for k, v in data.items()}
    if isinstance(data, list | tuple):
        return [_normalize_for_canonical(v) for v in data]
    return _normalize_value(data)


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON for a record value.

    Args:
        obj: Data structure to serialize

    Returns:
        Canonical JSON string (no whitespace, sorted keys)

    Raises:
        ValueError: If data contains non-finite floats or types that cannot
            be serialized
    """
    normalized = _normalize_for_canonical(obj)
    try:
        return json.dumps(normalized, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except TypeError as e:
        raise ValueError(f"Cannot canonicalize value: {e}") from e


def as_string(value: Any) -> str:
    """Render any attribute value as a string.

    Strings pass through, scalars use their JSON spelling, maps and lists
    become canonical JSON, bytes become base64 and a missing value is empty.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "+Inf" if value > 0 else "-Inf"
        return canonical_json(value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    return canonical_json(value)
