"""Normalization boundary for graph properties that may arrive as JSON text.

The store returns array properties either as native lists or as JSON-encoded
strings, depending on the backend schema. Reads go through
``normalize_properties``; writes go through ``serialize_properties`` with the
set of fields the store keeps as text.
"""
import json
import logging
from collections.abc import Iterable
from typing import Any

from pydantic_core import to_json, to_jsonable_python

logger = logging.getLogger(__name__)

ARRAY_FIELDS = ("roster", "teamAllocations", "costs", "ddItems")
OBJECT_FIELDS = ("season",)


def parse_json_if_string(value: Any, default: Any) -> Any:
    """Parse ``value`` when it is JSON text, pass native values through."""
    if value is None:
        return default
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if not isinstance(value, str):
        return value
    if not value.strip():
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        logger.warning("Malformed JSON field, using default: %s", e)
        return default


def _normalize_field(name: str, value: Any, node_id: str | None) -> Any:
    if name in ARRAY_FIELDS:
        parsed = parse_json_if_string(value, [])
        if not isinstance(parsed, list):
            logger.warning("Field %s on %s is not a list, substituting empty list", name, node_id or "?")
            return []
        return parsed
    parsed = parse_json_if_string(value, None)
    if parsed is not None and not isinstance(parsed, dict):
        logger.warning("Field %s on %s is not an object, dropping it", name, node_id or "?")
        return None
    return parsed


def normalize_properties(properties: dict[str, Any], node_id: str | None = None) -> dict[str, Any]:
    """Return a copy with every structured field in native form."""
    out = dict(properties)
    for name in (*ARRAY_FIELDS, *OBJECT_FIELDS):
        if name in out:
            out[name] = _normalize_field(name, out[name], node_id)
    return out


def serialize_properties(properties: dict[str, Any], text_fields: Iterable[str]) -> dict[str, Any]:
    """Return a copy in the representation the store expects for each field."""
    text_fields = frozenset(text_fields)
    out: dict[str, Any] = {}
    for name, value in properties.items():
        if name in ARRAY_FIELDS or name in OBJECT_FIELDS:
            value = _normalize_field(name, value, None)
        value = to_jsonable_python(value)
        if name in text_fields and value is not None:
            out[name] = to_json(value).decode()
        else:
            out[name] = value
    return out
