"""Low-level pieces of JSON text: escapes, UTF-16/UTF-8 code points and scalars."""

from __future__ import annotations

import math
import operator

__all__ = [
    "escape_char",
    "unescape_char",
    "Utf16Codepoint",
    "encode_codepoint",
    "format_string",
    "format_boolean",
    "format_integer",
    "format_float",
]

# Pairs of (escape letter, character it stands for).
_ESCAPE_TABLE = "//\"\"\\\\b\bf\fn\nr\rt\t"
_PAIRS = list(zip(_ESCAPE_TABLE[::2], _ESCAPE_TABLE[1::2]))
_UNESCAPES = dict(_PAIRS)
# The solidus is understood when reading but never escaped when writing.
_ESCAPES = {actual: letter for letter, actual in _PAIRS if letter != "/"}

_BOOLEAN_TEXT = {True: "true", False: "false"}


def escape_char(c: str) -> str | None:
    """Return the letter that follows a backslash to escape *c*, or None."""
    return _ESCAPES.get(c)


def unescape_char(c: str) -> str | None:
    """Return the character that the escape ``\\`` + *c* stands for, or None."""
    return _UNESCAPES.get(c)


def _is_high_surrogate(codeunit: int) -> bool:
    return 0xD800 <= codeunit < 0xDC00


def _is_low_surrogate(codeunit: int) -> bool:
    return 0xDC00 <= codeunit < 0xE000


class Utf16Codepoint:
    """Assembles a code point from UTF-16 code units."""

    def __init__(self) -> None:
        self._high_surrogate = 0
        self._codepoint = 0

    def append(self, codeunit: int) -> bool:
        """Feed one code unit; return True once a whole code point is known."""
        if _is_high_surrogate(codeunit):
            self._high_surrogate = codeunit & 0x3FF
            return False
        if _is_low_surrogate(codeunit):
            self._codepoint = 0x10000 + ((self._high_surrogate << 10) | (codeunit & 0x3FF))
            return True
        self._codepoint = codeunit
        return True

    def value(self) -> int:
        """Return the last complete code point."""
        return self._codepoint


def encode_codepoint(codepoint: int) -> bytes:
    """Return the UTF-8 bytes of *codepoint*."""
    if codepoint < 0x80:
        return bytes([codepoint])
    reversed_bytes = [(codepoint | 0x80) & 0xBF]
    rest = (codepoint >> 6) & 0xFFFF
    if rest < 0x20:
        reversed_bytes.append(rest | 0xC0)
    else:
        reversed_bytes.append((rest | 0x80) & 0xBF)
        rest >>= 6
        if rest < 0x10:
            reversed_bytes.append(rest | 0xE0)
        else:
            reversed_bytes.append((rest | 0x80) & 0xBF)
            rest >>= 6
            reversed_bytes.append(rest | 0xF0)
    return bytes(reversed(reversed_bytes))


def _format_char(c: str) -> str:
    letter = escape_char(c)
    if letter:
        return "\\" + letter
    if c == "\0":
        return "\\u0000"
    return c


def format_string(text: str) -> str:
    """Return *text* as a quoted JSON string."""
    return '"' + "".join(_format_char(c) for c in text) + '"'


def format_boolean(value: bool) -> str:
    """Return ``true`` or ``false`` according to the truth of *value*."""
    return _BOOLEAN_TEXT[operator.truth(value)]


def format_integer(value: int) -> str:
    """Return the decimal text of an integer."""
    return str(operator.index(value))


def _strip_fraction(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_float(value: float) -> str:
    """Return the JSON text of a float.

    NaN and infinities become ``null``. Values are written with nine
    significant digits, switching to an exponent outside ``1e-5 .. 1e7``.
    """
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return "null"
    sign = ""
    if value < 0.0:
        sign = "-"
        value = -value
    if value == 0.0:
        return sign + "0"
    mantissa, _, exponent_text = f"{value:.8e}".partition("e")
    exponent = int(exponent_text)
    if -5 <= exponent < 7:
        places = max(0, 8 - exponent)
        return sign + _strip_fraction(f"{value:.{places}f}")
    return f"{sign}{_strip_fraction(mantissa)}e{exponent}"