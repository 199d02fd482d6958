import base64
import ipaddress

import pytest

from mcuclient.httpclient import HttpClient
from mcuclient.httpresponse import (
    ApiError,
    Client,
    ConnectionFailedError,
    HttpState,
)


class FakeClient(Client):
    def __init__(self, response=b"", connect_ok=True):
        self.sent = bytearray()
        self.incoming = bytearray(response)
        self.is_connected = False
        self.connect_ok = connect_ok
        self.connects = []
        self.stops = 0

    def connect(self, host, port):
        self.connects.append((host, port))
        self.is_connected = self.connect_ok
        return self.connect_ok

    def connected(self):
        return self.is_connected

    def available(self):
        return len(self.incoming)

    def read(self, size=1):
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        return data

    def peek(self):
        return self.incoming[0] if self.incoming else None

    def write(self, data):
        self.sent += data
        return len(data)

    def stop(self):
        self.stops += 1
        self.is_connected = False


def make(response=b"", server="example.com", port=80, **kwargs):
    fake = FakeClient(response, **kwargs)
    http = HttpClient(fake, server, port, wait_for_data_delay=0.001, read_timeout=0.05)
    return fake, http


def test_get_sends_request_line_and_default_headers():
    fake, http = make()
    http.get("/path")
    assert bytes(fake.sent) == (
        b"GET /path HTTP/1.1\r\n"
        b"Host: example.com\r\n"
        b"User-Agent: Arduino/2.2.0\r\n"
        b"Connection: close\r\n"
        b"\r\n"
    )
    assert fake.connects == [("example.com", 80)]
    assert http.state == HttpState.REQUEST_SENT


def test_non_default_port_in_host_header():
    fake, http = make(port=8080)
    http.get("/")
    assert b"Host: example.com:8080\r\n" in fake.sent


def test_https_port_not_in_host_header():
    fake, http = make(port=443)
    http.get("/")
    assert b"Host: example.com\r\n" in fake.sent


def test_ip_address_has_no_host_header():
    address = ipaddress.ip_address("127.0.0.1")
    fake, http = make(server=address)
    http.get("/")
    assert b"Host:" not in fake.sent
    assert fake.connects == [(address, 80)]


def test_no_default_request_headers():
    fake, http = make()
    http.no_default_request_headers()
    http.get("/x")
    assert bytes(fake.sent) == b"GET /x HTTP/1.1\r\nConnection: close\r\n\r\n"


def test_keep_alive_reuses_connection():
    fake, http = make()
    http.connection_keep_alive()
    http.get("/a")
    assert b"Connection:" not in fake.sent
    http.stop()
    fake.is_connected = True
    http.get("/b")
    assert len(fake.connects) == 1


def test_post_with_body():
    fake, http = make()
    http.post("/submit", "text/plain", "hello")
    text = bytes(fake.sent)
    assert text.startswith(b"POST /submit HTTP/1.1\r\n")
    assert b"Content-Type: text/plain\r\n" in text
    assert b"Content-Length: 5\r\n" in text
    assert text.endswith(b"\r\n\r\nhello")


@pytest.mark.parametrize(
    "method_name, verb",
    [("put", b"PUT"), ("patch", b"PATCH"), ("delete", b"DELETE")],
)
def test_other_methods_with_bytes_body(method_name, verb):
    fake, http = make()
    getattr(http, method_name)("/item", "application/json", b"{}")
    assert fake.sent.startswith(verb + b" /item HTTP/1.1\r\n")
    assert fake.sent.endswith(b"\r\n\r\n{}")


def test_connection_failure_raises():
    fake, http = make(connect_ok=False)
    with pytest.raises(ConnectionFailedError):
        http.get("/")
    assert fake.sent == bytearray()


def test_begin_request_leaves_headers_open():
    fake, http = make()
    http.begin_request()
    http.get("/stream")
    assert http.state == HttpState.REQUEST_STARTED
    assert not fake.sent.endswith(b"\r\n\r\n")
    http.send_header("X-Extra", "yes")
    http.send_header("X-Raw: line")
    http.end_request()
    assert fake.sent.endswith(b"X-Extra: yes\r\nX-Raw: line\r\n\r\n")
    assert http.state == HttpState.REQUEST_SENT


def test_write_finishes_headers_first():
    fake, http = make()
    http.begin_request()
    http.post("/upload")
    count = http.write(b"abc")
    assert count == 3
    assert fake.sent.endswith(b"\r\n\r\nabc")


def test_second_request_while_waiting_raises_api_error():
    fake, http = make()
    http.get("/one")
    with pytest.raises(ApiError):
        http.get("/two")


def test_basic_auth_round_trip():
    fake, http = make()
    password = "password"
    http.begin_request()
    http.get("/")
    http.send_basic_auth("user", password)
    line = bytes(fake.sent).split(b"\r\n")[-2]
    prefix = b"Authorization: Basic "
    assert line.startswith(prefix)
    assert base64.b64decode(line[len(prefix):]) == b"user:" + password.encode()


def test_response_round_trip():
    response = (
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: text/plain\r\n"
        b"Content-Length: 5\r\n"
        b"\r\n"
        b"hello"
    )
    fake, http = make(response)
    http.get("/")
    assert http.response_status_code() == 200
    assert http.content_length() == 5
    assert http.response_body() == "hello"
    assert http.end_of_body_reached()


def test_new_request_after_reading_body_flushes_and_resets():
    response = b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nabc"
    fake, http = make(response)
    http.get("/first")
    http.response_status_code()
    http.skip_response_headers()
    assert http.end_of_headers_reached()
    fake.sent.clear()
    http.get("/second")
    assert fake.incoming == bytearray()
    assert fake.sent.startswith(b"GET /second HTTP/1.1\r\n")
    assert http.state == HttpState.REQUEST_SENT


def test_stop_closes_and_resets():
    fake, http = make()
    http.get("/")
    http.stop()
    assert fake.stops == 1
    assert http.state == HttpState.IDLE
    assert http.status_code == 0