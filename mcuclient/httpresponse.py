"""Reading HTTP responses from a byte stream: status line, headers and body."""

from __future__ import annotations

import select
import socket
import time
from abc import ABC, abstractmethod
from enum import IntEnum

__all__ = [
    "HttpError",
    "ConnectionFailedError",
    "ApiError",
    "TimedOutError",
    "InvalidResponseError",
    "HttpState",
    "Client",
    "SocketClient",
    "HttpResponseReader",
]

DEFAULT_RESPONSE_TIMEOUT = 30.0
DEFAULT_WAIT_FOR_DATA_DELAY = 0.1
DEFAULT_READ_TIMEOUT = 1.0

CONTENT_LENGTH_PREFIX = "Content-Length: "
TRANSFER_ENCODING_CHUNKED = "Transfer-Encoding: chunked"
_STATUS_PREFIX = "HTTP/*.* "
_MAX_CONTENT_LENGTH = 2**63 - 1
_DIGITS = "0123456789"
_HEX_DIGITS = "0123456789abcdefABCDEF"
_SPACES = " \t\n\v\f\r"


class HttpError(Exception):
    """Base class of the errors raised while talking HTTP."""


class ConnectionFailedError(HttpError):
    """The connection to the server could not be opened."""


class ApiError(HttpError):
    """A call was made in a state where it makes no sense."""


class TimedOutError(HttpError):
    """The server did not send what was expected in time."""


class InvalidResponseError(HttpError):
    """The server sent something that is not a valid HTTP response."""


class HttpState(IntEnum):
    """Where a request/response exchange has got to, in order."""

    IDLE = 0
    REQUEST_STARTED = 1
    REQUEST_SENT = 2
    READING_STATUS_CODE = 3
    STATUS_CODE_READ = 4
    READING_CONTENT_LENGTH = 5
    SKIP_TO_END_OF_HEADER = 6
    LINE_STARTING_CR_FOUND = 7
    READING_BODY = 8
    READING_CHUNK_LENGTH = 9
    READING_BODY_CHUNK = 10


class Client(ABC):
    """A byte stream to a server that can be polled without blocking."""

    @abstractmethod
    def connect(self, host, port: int) -> bool:
        """Open a connection; return True on success."""

    @abstractmethod
    def connected(self) -> bool:
        """Return True while the connection is open or unread data remains."""

    @abstractmethod
    def available(self) -> int:
        """Return how many bytes can be read without waiting."""

    @abstractmethod
    def read(self, size: int = 1) -> bytes:
        """Return up to *size* bytes that are already available."""

    @abstractmethod
    def peek(self) -> int | None:
        """Return the next byte without consuming it, or None."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Send *data*; return the number of bytes sent."""

    @abstractmethod
    def stop(self) -> None:
        """Close the connection."""


class SocketClient(Client):
    """A Client over a TCP socket."""

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout
        self._sock: socket.socket | None = None
        self._buffer = bytearray()
        self._eof = False

    def connect(self, host, port: int) -> bool:
        self.stop()
        try:
            self._sock = socket.create_connection((str(host), port), timeout=self.timeout)
        except OSError:
            self._sock = None
            return False
        return True

    def _fill(self) -> None:
        if self._sock is None or self._eof:
            return
        while True:
            try:
                readable, _, _ = select.select([self._sock], [], [], 0)
            except (OSError, ValueError):
                self._eof = True
                return
            if not readable:
                return
            try:
                chunk = self._sock.recv(4096)
            except OSError:
                self._eof = True
                return
            if not chunk:
                self._eof = True
                return
            self._buffer += chunk

    def connected(self) -> bool:
        self._fill()
        return self._sock is not None and (not self._eof or bool(self._buffer))

    def available(self) -> int:
        self._fill()
        return len(self._buffer)

    def read(self, size: int = 1) -> bytes:
        self._fill()
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def peek(self) -> int | None:
        self._fill()
        return self._buffer[0] if self._buffer else None

    def write(self, data: bytes) -> int:
        if self._sock is None:
            return 0
        try:
            self._sock.sendall(bytes(data))
        except OSError:
            return 0
        return len(data)

    def stop(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
        self._sock = None
        self._buffer.clear()
        self._eof = False


class HttpResponseReader:
    """Reads an HTTP response from a Client, tracking headers and body length."""

    def __init__(
        self,
        client: Client,
        *,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        wait_for_data_delay: float = DEFAULT_WAIT_FOR_DATA_DELAY,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self.client = client
        self._default_response_timeout = response_timeout
        self._default_wait_for_data_delay = wait_for_data_delay
        self.read_timeout = read_timeout
        self._header_line = ""
        self.reset_state()

    def reset_state(self) -> None:
        """Forget everything about the current exchange."""
        self.state = HttpState.IDLE
        self.status_code = 0
        self._content_length: int | None = None
        self._body_length_consumed = 0
        self._content_length_pos = 0
        self._chunked_pos = 0
        self.is_chunked = False
        self._chunk_length = 0
        self.response_timeout = self._default_response_timeout
        self.wait_for_data_delay = self._default_wait_for_data_delay

    def flush_rx(self) -> None:
        """Discard everything the client has received."""
        while self.client.available():
            self.client.read(self.client.available())

    def response_status_code(self) -> int:
        """Read the status line and return its status code.

        Informational (1xx, except 101) responses are skipped.
        """
        if self.state < HttpState.REQUEST_SENT:
            raise ApiError("the request has not been sent")
        c: str | None = None
        while True:
            self.status_code = 0
            self.state = HttpState.REQUEST_SENT
            timeout_start = time.monotonic()
            pos = 0
            while c != "\n" and time.monotonic() - timeout_start < self.response_timeout:
                if self.available():
                    byte = HttpResponseReader.read(self)
                    if byte is None:
                        continue
                    c = chr(byte)
                    if self.state == HttpState.REQUEST_SENT:
                        expected = _STATUS_PREFIX[pos]
                        if expected == "*" or expected == c:
                            pos += 1
                            if pos == len(_STATUS_PREFIX):
                                self.state = HttpState.READING_STATUS_CODE
                        else:
                            raise InvalidResponseError("malformed status line")
                    elif self.state == HttpState.READING_STATUS_CODE:
                        if c in _DIGITS:
                            self.status_code = self.status_code * 10 + int(c)
                        else:
                            self.state = HttpState.STATUS_CODE_READ
                    timeout_start = time.monotonic()
                else:
                    time.sleep(self.wait_for_data_delay)
            informational = self.status_code < 200 and self.status_code != 101
            if c == "\n" and informational:
                c = None
            if not (self.state == HttpState.STATUS_CODE_READ and informational):
                break
        if c == "\n" and self.state == HttpState.STATUS_CODE_READ:
            return self.status_code
        if c != "\n":
            raise TimedOutError("timed out reading the status line")
        raise InvalidResponseError("malformed status line")

    def skip_response_headers(self) -> None:
        """Read and discard the headers, up to the start of the body."""
        timeout_start = time.monotonic()
        while (
            not self.end_of_headers_reached()
            and time.monotonic() - timeout_start < self.response_timeout
        ):
            if self.available():
                self.read_header()
                timeout_start = time.monotonic()
            else:
                time.sleep(self.wait_for_data_delay)
        if not self.end_of_headers_reached():
            raise TimedOutError("timed out reading the headers")

    def end_of_headers_reached(self) -> bool:
        """Return True once the blank line after the headers has been read."""
        return self.state in (
            HttpState.READING_BODY,
            HttpState.READING_CHUNK_LENGTH,
            HttpState.READING_BODY_CHUNK,
        )

    def content_length(self) -> int | None:
        """Return the Content-Length of the response, or None if it had none."""
        if not self.end_of_headers_reached():
            try:
                self.skip_response_headers()
            except TimedOutError:
                pass
        return self._content_length

    def response_body(self) -> str:
        """Read the rest of the body and return it as text."""
        body_length = self.content_length()
        body = bytearray()
        while self._body_length_consumed != body_length:
            byte = self._timed_read()
            if byte is None:
                break
            body.append(byte)
        if body_length is not None and body_length > 0 and len(body) != body_length:
            raise TimedOutError("the body is shorter than its Content-Length")
        return body.decode("utf-8", "replace")

    def end_of_body_reached(self) -> bool:
        """Return True once as many body bytes as Content-Length have been read."""
        if self.end_of_headers_reached():
            length = self.content_length()
            if length is not None:
                return self._body_length_consumed >= length
        return False

    def available(self) -> int:
        """Return how many bytes can be read now, decoding chunk sizes as needed."""
        if self.state == HttpState.READING_CHUNK_LENGTH:
            while self.client.available():
                data = self.client.read(1)
                if not data:
                    break
                c = chr(data[0])
                if c == "\n":
                    self.state = HttpState.READING_BODY_CHUNK
                    break
                if c in _HEX_DIGITS:
                    self._chunk_length = self._chunk_length * 16 + int(c, 16)
        if self.state == HttpState.READING_BODY_CHUNK and self._chunk_length == 0:
            self.state = HttpState.READING_CHUNK_LENGTH
        if self.state == HttpState.READING_CHUNK_LENGTH:
            return 0
        client_available = self.client.available()
        if self.state == HttpState.READING_BODY_CHUNK:
            return min(client_available, self._chunk_length)
        return client_available

    def read(self) -> int | None:
        """Read one byte, or return None if there is none to read."""
        if self.is_chunked and not self.available():
            return None
        data = self.client.read(1)
        if not data:
            return None
        if self.end_of_headers_reached() and (self._content_length or 0) > 0:
            self._body_length_consumed += 1
        if self.state == HttpState.READING_BODY_CHUNK:
            self._chunk_length -= 1
            if self._chunk_length == 0:
                self.state = HttpState.READING_CHUNK_LENGTH
        return data[0]

    def read_bytes(self, size: int) -> bytes:
        """Read up to *size* bytes that are already available."""
        data = self.client.read(size)
        if self.end_of_headers_reached() and (self._content_length or 0) > 0:
            self._body_length_consumed += len(data)
        return data

    def peek(self) -> int | None:
        """Return the next byte without consuming it, or None."""
        return self.client.peek()

    def header_available(self) -> bool:
        """Read the next header line; return True if there was one."""
        self._header_line = ""
        last_data = time.monotonic()
        while not self.end_of_headers_reached():
            byte = self.read_header()
            if byte is None:
                if time.monotonic() - last_data >= self.response_timeout:
                    raise TimedOutError("timed out reading a header")
                time.sleep(self.wait_for_data_delay)
                continue
            last_data = time.monotonic()
            c = chr(byte)
            if c in "\r\n":
                if self._header_line:
                    break
                continue
            self._header_line += c
        return bool(self._header_line)

    def read_header_name(self) -> str:
        """Return the name of the header line last read, or an empty string."""
        name, colon, _ = self._header_line.partition(":")
        return name if colon else ""

    def read_header_value(self) -> str:
        """Return the value of the header line last read, or an empty string."""
        _, colon, value = self._header_line.partition(":")
        return value.lstrip(_SPACES) if colon else ""

    def read_header(self) -> int | None:
        """Read one byte of the headers, watching for the headers that matter."""
        byte = HttpResponseReader.read(self)
        if byte is None or self.end_of_headers_reached():
            return byte
        c = chr(byte)
        if self.state == HttpState.STATUS_CODE_READ:
            self._match_header_start(c)
        elif self.state == HttpState.READING_CONTENT_LENGTH:
            if c in _DIGITS:
                length = (self._content_length or 0) * 10 + int(c)
                if length <= _MAX_CONTENT_LENGTH:
                    self._content_length = length
            else:
                self.state = HttpState.SKIP_TO_END_OF_HEADER
        elif self.state == HttpState.LINE_STARTING_CR_FOUND:
            if c == "\n":
                if self.is_chunked:
                    self.state = HttpState.READING_CHUNK_LENGTH
                    self._chunk_length = 0
                else:
                    self.state = HttpState.READING_BODY
        if c == "\n" and not self.end_of_headers_reached():
            self.state = HttpState.STATUS_CODE_READ
            self._content_length_pos = 0
            self._chunked_pos = 0
        return byte

    def _match_header_start(self, c: str) -> None:
        if CONTENT_LENGTH_PREFIX[self._content_length_pos] == c:
            self._content_length_pos += 1
            if self._content_length_pos == len(CONTENT_LENGTH_PREFIX):
                self.state = HttpState.READING_CONTENT_LENGTH
                self._content_length = 0
                self._body_length_consumed = 0
        elif TRANSFER_ENCODING_CHUNKED[self._chunked_pos] == c:
            self._chunked_pos += 1
            if self._chunked_pos == len(TRANSFER_ENCODING_CHUNKED):
                self.is_chunked = True
                self.state = HttpState.SKIP_TO_END_OF_HEADER
        elif self._content_length_pos == 0 and self._chunked_pos == 0 and c == "\r":
            self.state = HttpState.LINE_STARTING_CR_FOUND
        else:
            self.state = HttpState.SKIP_TO_END_OF_HEADER

    def _timed_read(self) -> int | None:
        start = time.monotonic()
        while True:
            byte = self.read()
            if byte is not None:
                return byte
            if time.monotonic() - start >= self.read_timeout:
                return None
            time.sleep(0.001)