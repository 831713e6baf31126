"""
Row decoding for query results.

Every query result passes through one of these helpers before it reaches
the search layer, so driver-native values (integer wrappers, temporal
types, JSON strings) are converted in exactly one place.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


def to_plain_int(value: Any, default: int = 0) -> int:
    """Convert a driver-native integer into a plain ``int``.

    Handles plain ints, floats, numeric strings, and wrapper objects that
    expose ``to_native()`` or ``toNumber()`` or the ``low``/``high`` pair.

    Args:
        value: Raw value from a result row
        default: Returned when the value cannot be interpreted

    Returns:
        Plain integer
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return int(value)

    to_native = getattr(value, "to_native", None)
    if callable(to_native):
        return to_plain_int(to_native(), default)

    to_number = getattr(value, "toNumber", None)
    if callable(to_number):
        return to_plain_int(to_number(), default)

    low = getattr(value, "low", None)
    high = getattr(value, "high", None)
    if isinstance(low, int) and isinstance(high, int):
        return low + high * 0x100000000

    try:
        return int(str(value))
    except ValueError:
        return default


def to_plain_float(value: Any) -> float | None:
    """Convert an optional numeric value to ``float``."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_text(value: Any) -> str | None:
    """Render temporal or other driver values as text (ISO for temporals)."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    iso_format = getattr(value, "iso_format", None)
    if callable(iso_format):
        return iso_format()
    isoformat = getattr(value, "isoformat", None)
    if callable(isoformat):
        return isoformat()
    return str(value)


def parse_metadata(raw: Any) -> dict[str, Any]:
    """Parse persisted metadata JSON.

    Malformed or non-object metadata recovers to an empty dict. The result
    is for display only; match evidence is never derived from a recovered
    value.
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Discarding malformed metadata payload")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def decode_observations(raw: Any) -> list[dict[str, Any]]:
    """Decode a collected observation list, keeping the query's order.

    Entries without content are dropped.
    """
    if not isinstance(raw, list):
        return []

    observations: list[dict[str, Any]] = []
    for obs in raw:
        if not isinstance(obs, dict) or not obs.get("content"):
            continue
        observations.append(
            {
                "id": obs.get("id"),
                "content": obs["content"],
                "createdAt": to_text(obs.get("createdAt")),
            }
        )
    return observations


def decode_tags(raw: Any) -> list[str]:
    """Decode a collected tag-name list, dropping empty entries."""
    if not isinstance(raw, list):
        return []
    return [str(tag) for tag in raw if tag]
