"""WebSocket client on top of the HTTP client: handshake, framing and masking."""

from __future__ import annotations

import contextlib
import ipaddress
import random
from enum import IntEnum

from mcuclient.b64 import b64_encode
from mcuclient.httpclient import HTTP_PORT, HttpClient
from mcuclient.httpresponse import (
    DEFAULT_READ_TIMEOUT,
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_WAIT_FOR_DATA_DELAY,
    Client,
    HttpError,
    HttpResponseReader,
    HttpState,
    TimedOutError,
)

__all__ = ["MessageType", "WebSocketError", "WebSocketClient"]

TX_BUFFER_SIZE = 128
_SWITCHING_PROTOCOLS = 101
_MASK_SIZE = 4


class MessageType(IntEnum):
    """WebSocket frame opcodes."""

    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CONNECTION_CLOSE = 0x8
    PING = 0x9
    PONG = 0xA


class WebSocketError(HttpError):
    """Raised when the WebSocket handshake or a message cannot be completed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _as_bytes(data: bytes | bytearray | memoryview | str | int) -> bytes:
    if isinstance(data, int):
        return bytes([data & 0xFF])
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class WebSocketClient(HttpClient):
    """A WebSocket client that upgrades an HTTP connection and exchanges frames."""

    def __init__(
        self,
        client: Client,
        server: str | ipaddress.IPv4Address | ipaddress.IPv6Address,
        port: int = HTTP_PORT,
        *,
        tx_buffer_size: int = TX_BUFFER_SIZE,
        rng: random.Random | None = None,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        wait_for_data_delay: float = DEFAULT_WAIT_FOR_DATA_DELAY,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        super().__init__(
            client,
            server,
            port,
            response_timeout=response_timeout,
            wait_for_data_delay=wait_for_data_delay,
            read_timeout=read_timeout,
        )
        self.tx_buffer_size = tx_buffer_size
        self._rng = rng if rng is not None else random.Random()
        self._tx_started = False
        self._tx_message_type = 0
        self._tx_buffer = bytearray()
        self._rx_opcode = 0
        self._rx_size = 0
        self._rx_masked = False
        self._rx_mask_index = 0
        self._rx_mask_key = bytes(_MASK_SIZE)

    def begin(self, path: str = "/") -> None:
        """Open the connection and upgrade it to a WebSocket at *path*.

        Raises WebSocketError with the status code when the server does not
        answer 101 Switching Protocols.
        """
        self.begin_request()
        self.connection_keep_alive()
        self.get(path)

        key = bytes(self._rng.randint(0x01, 0xFE) for _ in range(16))
        self.send_header("Upgrade", "websocket")
        self.send_header("Connection", "Upgrade")
        self.send_header("Sec-WebSocket-Key", b64_encode(key))
        self.send_header("Sec-WebSocket-Version", "13")
        self.end_request()

        status = self.response_status_code()
        if status > 0:
            with contextlib.suppress(TimedOutError):
                self.skip_response_headers()

        self._rx_size = 0
        if status != _SWITCHING_PROTOCOLS:
            raise WebSocketError(f"upgrade refused with status {status}", status)

    def begin_message(self, message_type: int) -> None:
        """Start a message of *message_type*; its content goes through write."""
        if self._tx_started:
            raise WebSocketError("a message is already being written")
        self._tx_started = True
        self._tx_message_type = int(message_type) & 0x0F
        self._tx_buffer.clear()

    def end_message(self) -> None:
        """Send the message started by begin_message as one masked frame."""
        if not self._tx_started:
            raise WebSocketError("no message has been started")

        size = len(self._tx_buffer)
        header = bytearray([0x80 | self._tx_message_type])
        if size < 126:
            header.append(0x80 | size)
        elif size < 0xFFFF:
            header.append(0x80 | 126)
            header += size.to_bytes(2, "big")
        else:
            header.append(0x80 | 127)
            header += size.to_bytes(8, "big")

        mask = bytes(self._rng.randrange(0xFF) for _ in range(_MASK_SIZE))
        header += mask
        HttpClient.write(self, bytes(header))

        payload = bytes(b ^ mask[i % _MASK_SIZE] for i, b in enumerate(self._tx_buffer))
        self._tx_started = False
        self._tx_buffer.clear()

        if HttpClient.write(self, payload) != len(payload):
            raise WebSocketError("the message could not be sent in full")

    def write(self, data: bytes | bytearray | memoryview | str | int) -> int:
        """Add *data* to the message being written; return how much was taken.

        Before the upgrade, data goes straight to the connection.
        """
        if self.state < HttpState.READING_BODY:
            return HttpClient.write(self, data)
        if not self._tx_started:
            return 0
        payload = _as_bytes(data)
        room = max(0, self.tx_buffer_size - len(self._tx_buffer))
        payload = payload[:room]
        self._tx_buffer += payload
        return len(payload)

    def parse_message(self) -> int:
        """Read the next frame header; return the size of its payload, or 0.

        Close frames stop the client, pings are answered with a pong and
        pongs are discarded; all three return 0.
        """
        self._flush_rx()

        if HttpResponseReader.available(self) < 2:
            return 0

        opcode = self._raw_byte()
        length = self._raw_byte()

        if opcode & 0x0F == 0:
            self._rx_opcode |= opcode
        else:
            self._rx_opcode = opcode

        self._rx_masked = bool(length & 0x80)
        length &= 0x7F

        if length < 126:
            self._rx_size = length
        elif length == 126:
            self._rx_size = int.from_bytes(bytes(self._raw_byte() for _ in range(2)), "big")
        else:
            self._rx_size = int.from_bytes(bytes(self._raw_byte() for _ in range(8)), "big")

        if self._rx_masked:
            self._rx_mask_key = bytes(self._raw_byte() for _ in range(_MASK_SIZE))
        self._rx_mask_index = 0

        kind = self.message_type()
        if kind == MessageType.CONNECTION_CLOSE:
            self._flush_rx()
            self.stop()
            self._rx_size = 0
        elif kind == MessageType.PING:
            self.begin_message(MessageType.PONG)
            while self.available():
                byte = self.read()
                if byte is None:
                    break
                self.write(byte)
            self.end_message()
            self._rx_size = 0
        elif kind == MessageType.PONG:
            self._flush_rx()
            self._rx_size = 0

        return self._rx_size

    def message_type(self) -> MessageType | int:
        """Return the opcode of the message last parsed."""
        value = self._rx_opcode & 0x0F
        try:
            return MessageType(value)
        except ValueError:
            return value

    def is_final(self) -> bool:
        """Return True if the frame last parsed ends its message."""
        return bool(self._rx_opcode & 0x80)

    def read_string(self) -> str:
        """Read what is left of the current message as text."""
        remaining = self.available()
        data = bytearray()
        while remaining > 0:
            chunk = self.read_bytes(remaining)
            if not chunk:
                break
            data += chunk
            remaining -= len(chunk)
        return data.decode("utf-8", "replace")

    def ping(self) -> None:
        """Send a ping with random payload."""
        payload = bytes(self._rng.randrange(0xFF) for _ in range(16))
        self.begin_message(MessageType.PING)
        self.write(payload)
        self.end_message()

    def available(self) -> int:
        """Return how many payload bytes of the current message are left."""
        if self.state < HttpState.READING_BODY:
            return HttpResponseReader.available(self)
        return self._rx_size

    def read(self) -> int | None:
        """Read one unmasked payload byte, or return None if there is none."""
        data = self.read_bytes(1)
        return data[0] if data else None

    def read_bytes(self, size: int) -> bytes:
        """Read up to *size* payload bytes, unmasked."""
        data = HttpResponseReader.read_bytes(self, size)
        if not data:
            return data
        self._rx_size = max(0, self._rx_size - len(data))
        if self._rx_masked:
            start = self._rx_mask_index
            data = bytes(
                b ^ self._rx_mask_key[(start + i) % _MASK_SIZE] for i, b in enumerate(data)
            )
            self._rx_mask_index += len(data)
        return data

    def peek(self) -> int | None:
        """Return the next payload byte, unmasked, without consuming it."""
        byte = HttpResponseReader.peek(self)
        if byte is not None and self._rx_masked:
            byte = (byte & 0xFF) ^ self._rx_mask_key[self._rx_mask_index % _MASK_SIZE]
        return byte

    def _raw_byte(self) -> int:
        byte = HttpResponseReader.read(self)
        return 0xFF if byte is None else byte

    def _flush_rx(self) -> None:
        while self.available():
            if self.read() is None:
                break