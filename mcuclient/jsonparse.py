"""Parsing of JSON text into Python values, with a nesting limit and optional comments."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from mcuclient.jsontext import Utf16Codepoint, encode_codepoint, unescape_char

__all__ = ["ErrorCode", "DeserializationError", "deserialize_json"]

DEFAULT_NESTING_LIMIT = 10
_MAX_NUMBER_LENGTH = 63
_END = "\0"

_INTEGER = re.compile(r"[-+]?[0-9]+\Z")
_FLOAT = re.compile(r"[-+]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?\Z")


class ErrorCode(Enum):
    """Reasons why a document cannot be parsed."""

    EMPTY_INPUT = "EmptyInput"
    INCOMPLETE_INPUT = "IncompleteInput"
    INVALID_INPUT = "InvalidInput"
    NO_MEMORY = "NoMemory"
    TOO_DEEP = "TooDeep"


class DeserializationError(ValueError):
    """Raised when JSON text cannot be parsed."""

    def __init__(self, code: ErrorCode) -> None:
        super().__init__(code.value)
        self.code = code


class _Latch:
    """Holds the character under the cursor until it is consumed."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0
        self._loaded = False
        self.last = _END

    def current(self) -> str:
        if not self._loaded:
            if self._pos < len(self._text):
                self.last = self._text[self._pos]
                self._pos += 1
            else:
                self.last = _END
            self._loaded = True
        return self.last

    def clear(self) -> None:
        self._loaded = False


def _can_be_in_number(c: str) -> bool:
    return "0" <= c <= "9" or c in "+-.eE"


def _can_be_in_non_quoted_string(c: str) -> bool:
    return "0" <= c <= "9" or "_" <= c <= "z" or "A" <= c <= "Z"


def _decode_hex(c: str) -> int:
    code = ord(c)
    if code > 0x7F:
        return 0xFF
    if code < ord("A"):
        return (code - ord("0")) & 0xFF
    return ((code & ~0x20) - ord("A") + 10) & 0xFF


def _parse_number(text: str) -> int | float | None:
    if _INTEGER.match(text):
        number = int(text)
        if -(2**63) <= number < 2**64:
            return number
        return float(text)
    if _FLOAT.match(text):
        return float(text)
    return None


class _Parser:
    def __init__(self, text: str, allow_comments: bool) -> None:
        self._latch = _Latch(text)
        self._allow_comments = allow_comments
        self._found_something = False

    @property
    def last(self) -> str:
        return self._latch.last

    def _current(self) -> str:
        return self._latch.current()

    def _move(self) -> None:
        self._latch.clear()

    def _eat(self, c: str) -> bool:
        if self._current() != c:
            return False
        self._move()
        return True

    def parse_variant(self, limit: int, existing: Any = None) -> Any:
        self._skip_spaces_and_comments()
        c = self._current()
        if c == "[":
            return self._parse_array(limit)
        if c == "{":
            return self._parse_object(limit)
        if c in "\"'":
            return self._parse_quoted_string()
        if c == "t":
            self._skip_keyword("true")
            return True
        if c == "f":
            self._skip_keyword("false")
            return False
        if c == "n":
            # A repeated key keeps its earlier value when the new one is null.
            self._skip_keyword("null")
            return existing
        return self._parse_numeric_value()

    def _parse_array(self, limit: int) -> list[Any]:
        if limit <= 0:
            raise DeserializationError(ErrorCode.TOO_DEEP)
        self._move()
        self._skip_spaces_and_comments()
        result: list[Any] = []
        if self._eat("]"):
            return result
        while True:
            result.append(self.parse_variant(limit - 1))
            self._skip_spaces_and_comments()
            if self._eat("]"):
                return result
            if not self._eat(","):
                raise DeserializationError(ErrorCode.INVALID_INPUT)

    def _parse_object(self, limit: int) -> dict[str, Any]:
        if limit <= 0:
            raise DeserializationError(ErrorCode.TOO_DEEP)
        self._move()
        self._skip_spaces_and_comments()
        result: dict[str, Any] = {}
        if self._eat("}"):
            return result
        while True:
            key = self._parse_key()
            self._skip_spaces_and_comments()
            if not self._eat(":"):
                raise DeserializationError(ErrorCode.INVALID_INPUT)
            result[key] = self.parse_variant(limit - 1, result.get(key))
            self._skip_spaces_and_comments()
            if self._eat("}"):
                return result
            if not self._eat(","):
                raise DeserializationError(ErrorCode.INVALID_INPUT)
            self._skip_spaces_and_comments()

    def _parse_key(self) -> str:
        if self._current() in "\"'" and self._current() != _END:
            return self._parse_quoted_string()
        return self._parse_non_quoted_string()

    def _parse_quoted_string(self) -> str:
        stop = self._current()
        self._move()
        buffer = bytearray()
        codepoint = Utf16Codepoint()
        while True:
            c = self._current()
            self._move()
            if c == stop:
                break
            if c == _END:
                raise DeserializationError(ErrorCode.INCOMPLETE_INPUT)
            if c == "\\":
                c = self._current()
                if c == _END:
                    raise DeserializationError(ErrorCode.INCOMPLETE_INPUT)
                if c == "u":
                    self._move()
                    if codepoint.append(self._parse_hex4()):
                        buffer += encode_codepoint(codepoint.value())
                    continue
                replacement = unescape_char(c)
                if replacement is None:
                    raise DeserializationError(ErrorCode.INVALID_INPUT)
                c = replacement
                self._move()
            buffer += c.encode("utf-8", "surrogatepass")
        return buffer.decode("utf-8", "surrogatepass")

    def _parse_non_quoted_string(self) -> str:
        c = self._current()
        if not _can_be_in_non_quoted_string(c):
            raise DeserializationError(ErrorCode.INVALID_INPUT)
        chars = []
        while _can_be_in_non_quoted_string(c):
            self._move()
            chars.append(c)
            c = self._current()
        return "".join(chars)

    def _parse_numeric_value(self) -> int | float:
        chars = []
        c = self._current()
        while _can_be_in_number(c) and len(chars) < _MAX_NUMBER_LENGTH:
            self._move()
            chars.append(c)
            c = self._current()
        value = _parse_number("".join(chars))
        if value is None:
            raise DeserializationError(ErrorCode.INVALID_INPUT)
        return value

    def _parse_hex4(self) -> int:
        result = 0
        for _ in range(4):
            digit = self._current()
            if digit == _END:
                raise DeserializationError(ErrorCode.INCOMPLETE_INPUT)
            value = _decode_hex(digit)
            if value > 0x0F:
                raise DeserializationError(ErrorCode.INVALID_INPUT)
            result = ((result << 4) | value) & 0xFFFF
            self._move()
        return result

    def _skip_keyword(self, keyword: str) -> None:
        for expected in keyword:
            c = self._current()
            if c == _END:
                raise DeserializationError(ErrorCode.INCOMPLETE_INPUT)
            if c != expected:
                raise DeserializationError(ErrorCode.INVALID_INPUT)
            self._move()

    def _skip_spaces_and_comments(self) -> None:
        while True:
            c = self._current()
            if c == _END:
                raise DeserializationError(
                    ErrorCode.INCOMPLETE_INPUT
                    if self._found_something
                    else ErrorCode.EMPTY_INPUT
                )
            if c in " \t\r\n":
                self._move()
                continue
            if c == "/" and self._allow_comments:
                self._skip_comment()
                continue
            self._found_something = True
            return

    def _skip_comment(self) -> None:
        self._move()
        c = self._current()
        if c == "*":
            self._move()
            was_star = False
            while True:
                c = self._current()
                if c == _END:
                    raise DeserializationError(ErrorCode.INCOMPLETE_INPUT)
                if c == "/" and was_star:
                    self._move()
                    return
                was_star = c == "*"
                self._move()
        elif c == "/":
            while True:
                self._move()
                c = self._current()
                if c == _END:
                    raise DeserializationError(ErrorCode.INCOMPLETE_INPUT)
                if c == "\n":
                    return
        else:
            raise DeserializationError(ErrorCode.INVALID_INPUT)


def deserialize_json(
    text: str | bytes | bytearray,
    nesting_limit: int = DEFAULT_NESTING_LIMIT,
    allow_comments: bool = False,
) -> Any:
    """Parse JSON *text* and return the value it holds.

    Objects become dicts, arrays lists, and numbers int or float. Input ends
    at the first NUL character. Single-quoted strings and unquoted keys are
    accepted; comments only when *allow_comments* is true. Raises
    DeserializationError on malformed input or nesting deeper than
    *nesting_limit*.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8", "surrogatepass")
    if nesting_limit < 0:
        raise ValueError("nesting_limit must not be negative")
    text = text.split(_END, 1)[0]
    parser = _Parser(text, allow_comments)
    value = parser.parse_variant(nesting_limit)
    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
    if is_number and parser.last != _END:
        raise DeserializationError(ErrorCode.INVALID_INPUT)
    return value