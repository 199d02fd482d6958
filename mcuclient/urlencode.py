"""Percent-encoding of URL components."""

from __future__ import annotations

from urllib.parse import quote

__all__ = ["url_encode"]


def url_encode(text: str | bytes) -> str:
    """Percent-encode *text*, keeping only ASCII letters, digits and ``-._~``.

    Text is encoded as UTF-8 and every other byte becomes ``%XX`` with
    upper-case hexadecimal digits.
    """
    return quote(text, safe="")