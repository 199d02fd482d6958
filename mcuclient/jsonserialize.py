"""Serialization of Python values to minified or prettified JSON text."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from mcuclient.jsontext import format_boolean, format_float, format_integer, format_string

__all__ = [
    "RawJson",
    "serialize_json",
    "serialize_json_pretty",
    "measure_json",
    "measure_json_pretty",
]

_TAB = "  "


@dataclass(frozen=True)
class RawJson:
    """A fragment of JSON text written out verbatim."""

    text: str


def _emit_scalar(value: Any) -> str | None:
    if value is None:
        return "null"
    if isinstance(value, RawJson):
        return value.text
    if isinstance(value, bool):
        return format_boolean(value)
    if isinstance(value, int):
        return format_integer(value)
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, str):
        return format_string(value)
    return None


def _check_key(key: Any) -> str:
    if not isinstance(key, str):
        raise TypeError(f"object keys must be str, not {type(key).__name__}")
    return key


def _emit(value: Any, parts: list[str], pretty: bool, level: int) -> None:
    scalar = _emit_scalar(value)
    if scalar is not None:
        parts.append(scalar)
    elif isinstance(value, Mapping):
        _emit_collection(
            list(value.items()), "{", "}", parts, pretty, level, is_object=True
        )
    elif isinstance(value, (list, tuple)):
        _emit_collection(list(value), "[", "]", parts, pretty, level, is_object=False)
    else:
        raise TypeError(f"cannot serialize {type(value).__name__} to JSON")


def _emit_collection(
    items: list[Any],
    opening: str,
    closing: str,
    parts: list[str],
    pretty: bool,
    level: int,
    *,
    is_object: bool,
) -> None:
    if pretty and not items:
        parts.append(opening + closing)
        return
    separator = ",\r\n" if pretty else ","
    key_separator = ": " if pretty else ":"
    parts.append(opening + "\r\n" if pretty else opening)
    inner = _TAB * (level + 1) if pretty else ""
    for position, item in enumerate(items):
        if position:
            parts.append(separator)
        parts.append(inner)
        if is_object:
            key, item = item
            parts.append(format_string(_check_key(key)))
            parts.append(key_separator)
        _emit(item, parts, pretty, level + 1)
    if pretty:
        parts.append("\r\n" + _TAB * level)
    parts.append(closing)


def serialize_json(value: Any) -> str:
    """Return *value* as minified JSON text."""
    parts: list[str] = []
    _emit(value, parts, pretty=False, level=0)
    return "".join(parts)


def serialize_json_pretty(value: Any) -> str:
    """Return *value* as indented JSON text with CRLF line breaks."""
    parts: list[str] = []
    _emit(value, parts, pretty=True, level=0)
    return "".join(parts)


def measure_json(value: Any) -> int:
    """Return the number of UTF-8 bytes that serialize_json produces."""
    return len(serialize_json(value).encode("utf-8"))


def measure_json_pretty(value: Any) -> int:
    """Return the number of UTF-8 bytes that serialize_json_pretty produces."""
    return len(serialize_json_pretty(value).encode("utf-8"))