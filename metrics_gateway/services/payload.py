"""Interpretation of metric payload blobs.

Payloads are opaque JSON objects whose shape varies per metric type and even
per reading. Nothing here raises on bad input: a blob that is empty, not JSON,
or not a JSON object reads as an empty mapping.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

NUMBER_PATTERN = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def _reject_constant(value: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {value!r}")


def decode_payload(payload: str | bytes | None) -> dict[str, Any]:
    if payload is None:
        return {}
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError:
            return {}
    if not payload.strip():
        return {}
    try:
        parsed = json.loads(payload, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return {}
    if not isinstance(parsed, dict):
        return {}
    return parsed


def coerce_number(value: Any) -> float | None:
    match value:
        case bool():
            return 1.0 if value else 0.0
        case int() | float():
            try:
                number = float(value)
            except OverflowError:
                return None
            return number if math.isfinite(number) else None
        case str():
            if not NUMBER_PATTERN.match(value):
                return None
            number = float(value)
            return number if math.isfinite(number) else None
        case None | list() | dict():
            return None
        case _:
            return None


def extract_numerics(payload: str | bytes | None) -> dict[str, float]:
    """Top-level payload fields that coerce to a float, in payload key order."""
    numerics: dict[str, float] = {}
    for key, value in decode_payload(payload).items():
        number = coerce_number(value)
        if number is not None:
            numerics[key] = number
    return numerics
