"""Sending HTTP/1.1 requests over a Client and reading the responses."""

from __future__ import annotations

import ipaddress

from mcuclient.b64 import b64_encode
from mcuclient.httpresponse import (
    DEFAULT_READ_TIMEOUT,
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_WAIT_FOR_DATA_DELAY,
    ApiError,
    Client,
    ConnectionFailedError,
    HttpResponseReader,
    HttpState,
)

__all__ = ["HttpClient"]

USER_AGENT = "Arduino/2.2.0"
HTTP_PORT = 80
HTTPS_PORT = 443

_BODY_STATES = (
    HttpState.READING_BODY,
    HttpState.READING_CHUNK_LENGTH,
    HttpState.READING_BODY_CHUNK,
)

Body = bytes | bytearray | memoryview | str


def _to_bytes(data: Body | int) -> bytes:
    if isinstance(data, int):
        return bytes([data & 0xFF])
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class HttpClient(HttpResponseReader):
    """An HTTP/1.1 client that writes requests to a Client and reads the replies.

    *server* is either a host name, which is also sent in the Host header,
    or an IP address, in which case no Host header is sent.
    """

    def __init__(
        self,
        client: Client,
        server: str | ipaddress.IPv4Address | ipaddress.IPv6Address,
        port: int = HTTP_PORT,
        *,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        wait_for_data_delay: float = DEFAULT_WAIT_FOR_DATA_DELAY,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        super().__init__(
            client,
            response_timeout=response_timeout,
            wait_for_data_delay=wait_for_data_delay,
            read_timeout=read_timeout,
        )
        if isinstance(server, str):
            self.server_name: str | None = server
            self.server_address = None
        else:
            self.server_name = None
            self.server_address = server
        self.server_port = port
        self.connection_close = True
        self.send_default_request_headers = True

    def _print(self, text: str | int = "") -> None:
        self.client.write(str(text).encode("utf-8"))

    def _println(self, text: str | int = "") -> None:
        self.client.write(str(text).encode("utf-8") + b"\r\n")

    def stop(self) -> None:
        """Close the connection and forget the current exchange."""
        self.client.stop()
        self.reset_state()

    def connection_keep_alive(self) -> None:
        """Keep the connection open between requests."""
        self.connection_close = False

    def no_default_request_headers(self) -> None:
        """Stop sending the Host and User-Agent headers."""
        self.send_default_request_headers = False

    def begin_request(self) -> None:
        """Start a request whose headers are finished by end_request."""
        self.state = HttpState.REQUEST_STARTED

    def start_request(
        self,
        url_path: str,
        method: str,
        content_type: str | None = None,
        body: Body | None = None,
    ) -> None:
        """Connect if needed and send the request line and headers.

        With a body, the headers are finished and the body is sent at once.
        Raises ApiError when a request is already under way and
        ConnectionFailedError when the server cannot be reached.
        """
        if self.state in _BODY_STATES:
            self.flush_rx()
            self.reset_state()

        initial_state = self.state
        if self.state not in (HttpState.IDLE, HttpState.REQUEST_STARTED):
            raise ApiError("a request is already in progress")

        if self.connection_close or not self.client.connected():
            host = self.server_name if self.server_name is not None else self.server_address
            if not self.client.connect(host, self.server_port):
                raise ConnectionFailedError(f"cannot connect to {host}:{self.server_port}")

        self._send_initial_headers(url_path, method)

        payload = _to_bytes(body) if body is not None else b""
        if content_type:
            self.send_header("Content-Type", content_type)
        if payload:
            self.send_header("Content-Length", len(payload))
        if initial_state == HttpState.IDLE or payload:
            self.finish_headers()
        if payload:
            self.write(payload)

    def _send_initial_headers(self, url_path: str, method: str) -> None:
        self._println(f"{method} {url_path} HTTP/1.1")
        if self.send_default_request_headers:
            if self.server_name is not None:
                host = self.server_name
                if self.server_port not in (HTTP_PORT, HTTPS_PORT):
                    host = f"{host}:{self.server_port}"
                self.send_header("Host", host)
            self.send_header("User-Agent", USER_AGENT)
        if self.connection_close:
            self.send_header("Connection", "close")
        self.state = HttpState.REQUEST_STARTED

    def send_header(self, name: str, value: str | int | None = None) -> None:
        """Send a header line; with no *value*, *name* is the whole line."""
        if value is None:
            self._println(name)
        else:
            self._println(f"{name}: {value}")

    def send_basic_auth(self, user: str, password: str) -> None:
        """Send an Authorization header for basic authentication."""
        self._println("Authorization: Basic " + b64_encode(f"{user}:{password}"))

    def finish_headers(self) -> None:
        """Send the blank line that ends the headers."""
        self._println()
        self.state = HttpState.REQUEST_SENT

    def end_request(self) -> None:
        """Finish a request started with begin_request."""
        self.begin_body()

    def begin_body(self) -> None:
        """End the headers unless that has already been done."""
        if self.state < HttpState.REQUEST_SENT:
            self.finish_headers()

    def get(self, url_path: str) -> None:
        """Send a GET request."""
        self.start_request(url_path, "GET")

    def post(
        self, url_path: str, content_type: str | None = None, body: Body | None = None
    ) -> None:
        """Send a POST request, with an optional body."""
        self.start_request(url_path, "POST", content_type, body)

    def put(
        self, url_path: str, content_type: str | None = None, body: Body | None = None
    ) -> None:
        """Send a PUT request, with an optional body."""
        self.start_request(url_path, "PUT", content_type, body)

    def patch(
        self, url_path: str, content_type: str | None = None, body: Body | None = None
    ) -> None:
        """Send a PATCH request, with an optional body."""
        self.start_request(url_path, "PATCH", content_type, body)

    def delete(
        self, url_path: str, content_type: str | None = None, body: Body | None = None
    ) -> None:
        """Send a DELETE request, with an optional body."""
        self.start_request(url_path, "DELETE", content_type, body)

    def write(self, data: Body | int) -> int:
        """Send body bytes, ending the headers first if needed; return the count sent."""
        self.begin_body()
        return self.client.write(_to_bytes(data))