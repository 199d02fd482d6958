"""HTTP, WebSocket, Base64, URL-encoding and JSON building blocks for byte-stream clients."""

__version__ = "0.1.0"