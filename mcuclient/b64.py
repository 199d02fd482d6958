"""Base64 encoding for HTTP basic authentication and WebSocket handshake keys."""

from __future__ import annotations

import base64

__all__ = ["b64_encode"]


def b64_encode(data: bytes | bytearray | memoryview | str) -> str:
    """Return the padded standard Base64 encoding of *data*.

    Text is encoded as UTF-8 before it is encoded.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(bytes(data)).decode("ascii")