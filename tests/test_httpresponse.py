import socket
import threading

import pytest

from mcuclient.httpresponse import (
    ApiError,
    Client,
    HttpResponseReader,
    HttpState,
    InvalidResponseError,
    SocketClient,
    TimedOutError,
)


class FakeClient(Client):
    def __init__(self, incoming=b""):
        self.incoming = bytearray(incoming)
        self.outgoing = bytearray()
        self.stopped = False

    def connect(self, host, port):
        return True

    def connected(self):
        return True

    def available(self):
        return len(self.incoming)

    def read(self, size=1):
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        return data

    def peek(self):
        return self.incoming[0] if self.incoming else None

    def write(self, data):
        self.outgoing += data
        return len(data)

    def stop(self):
        self.stopped = True


def make_reader(data):
    reader = HttpResponseReader(
        FakeClient(data),
        response_timeout=0.05,
        wait_for_data_delay=0.001,
        read_timeout=0.05,
    )
    reader.state = HttpState.REQUEST_SENT
    return reader


def test_status_code_requires_sent_request():
    reader = HttpResponseReader(FakeClient(b"HTTP/1.1 200 OK\r\n"))
    with pytest.raises(ApiError):
        reader.response_status_code()


def test_status_code_is_parsed():
    reader = make_reader(b"HTTP/1.1 200 OK\r\n")
    assert reader.response_status_code() == 200
    assert reader.state == HttpState.STATUS_CODE_READ


def test_informational_status_is_skipped():
    reader = make_reader(b"HTTP/1.1 100 Continue\r\nHTTP/1.1 404 Not Found\r\n")
    assert reader.response_status_code() == 404


def test_switching_protocols_is_returned():
    reader = make_reader(b"HTTP/1.1 101 Switching Protocols\r\n")
    assert reader.response_status_code() == 101


def test_invalid_status_line():
    reader = make_reader(b"FTP/1.1 200 OK\r\n")
    with pytest.raises(InvalidResponseError):
        reader.response_status_code()


def test_status_line_timeout():
    reader = make_reader(b"HTTP/1.1 200")
    with pytest.raises(TimedOutError):
        reader.response_status_code()


def test_headers_and_body_with_content_length():
    reader = make_reader(
        b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nContent-Length: 5\r\n\r\nhello"
    )
    assert reader.response_status_code() == 200
    assert reader.header_available()
    assert reader.read_header_name() == "Content-Type"
    assert reader.read_header_value() == "text/plain"
    assert reader.header_available()
    assert reader.read_header_name() == "Content-Length"
    assert reader.read_header_value() == "5"
    assert not reader.header_available()
    assert reader.end_of_headers_reached()
    assert reader.content_length() == 5
    assert not reader.end_of_body_reached()
    assert reader.response_body() == "hello"
    assert reader.end_of_body_reached()


def test_last_content_length_wins():
    reader = make_reader(
        b"HTTP/1.1 200 OK\r\nContent-Length: 9\r\nContent-Length: 3\r\n\r\nabc"
    )
    reader.response_status_code()
    assert reader.content_length() == 3
    assert reader.response_body() == "abc"


def test_no_content_length_reads_until_data_stops():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nServer: x\r\n\r\nsome text")
    reader.response_status_code()
    assert reader.content_length() is None
    assert reader.response_body() == "some text"
    assert not reader.end_of_body_reached()


def test_chunked_body():
    reader = make_reader(
        b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
        b"5\r\nhello\r\n6\r\n world\r\n0\r\n\r\n"
    )
    reader.response_status_code()
    reader.skip_response_headers()
    assert reader.is_chunked
    assert reader.response_body() == "hello world"


def test_short_body_raises():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nabc")
    reader.response_status_code()
    with pytest.raises(TimedOutError):
        reader.response_body()


def test_skip_headers_timeout():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nContent-Length: 3\r\n")
    reader.response_status_code()
    with pytest.raises(TimedOutError):
        reader.skip_response_headers()
    assert not reader.end_of_headers_reached()


def test_header_without_colon():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nnocolon\r\n\r\n")
    reader.response_status_code()
    assert reader.header_available()
    assert reader.read_header_name() == ""
    assert reader.read_header_value() == ""


def test_read_bytes_counts_body():
    reader = make_reader(b"HTTP/1.1 200 OK\r\nContent-Length: 4\r\n\r\nabcd")
    reader.response_status_code()
    reader.skip_response_headers()
    assert reader.read_bytes(2) == b"ab"
    assert not reader.end_of_body_reached()
    assert reader.peek() == ord("c")
    assert reader.read_bytes(10) == b"cd"
    assert reader.end_of_body_reached()
    assert reader.read() is None


def test_flush_rx_and_reset_state():
    client = FakeClient(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nok")
    reader = HttpResponseReader(client, response_timeout=0.05, wait_for_data_delay=0.001)
    reader.state = HttpState.REQUEST_SENT
    reader.response_status_code()
    reader.flush_rx()
    assert client.available() == 0
    reader.reset_state()
    assert reader.state == HttpState.IDLE
    assert reader.status_code == 0
    assert reader.content_length() is None
    assert reader.response_timeout == 0.05


def test_socket_client_round_trip():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    port = server.getsockname()[1]

    def serve():
        conn, _ = server.accept()
        with conn:
            data = conn.recv(1024)
            conn.sendall(data.upper())

    thread = threading.Thread(target=serve)
    thread.start()
    client = SocketClient(timeout=2.0)
    try:
        assert client.connect("127.0.0.1", port)
        assert client.write(b"ping") == 4
        thread.join(timeout=2.0)
        received = b""
        for _ in range(200):
            if client.available():
                received += client.read(100)
            if len(received) >= 4:
                break
            threading.Event().wait(0.01)
        assert received == b"PING"
        for _ in range(200):
            if not client.connected():
                break
            threading.Event().wait(0.01)
        assert not client.connected()
    finally:
        client.stop()
        server.close()


def test_socket_client_connect_failure():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    client = SocketClient(timeout=1.0)
    assert client.connect("127.0.0.1", port) is False
    assert not client.connected()
    assert client.write(b"x") == 0