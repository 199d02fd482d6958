# mcuclient

Small, dependency-free building blocks for talking to web services over a
plain byte-stream connection, and for reading and writing JSON text.

## Modules

- `mcuclient.b64` — `b64_encode(data)` returns the padded standard Base64
  encoding of bytes, or of text encoded as UTF-8.
- `mcuclient.urlencode` — `url_encode(text)` percent-encodes everything
  except ASCII letters, digits and `-._~`, with upper-case hex digits.
- `mcuclient.jsontext` — low-level JSON text helpers: `escape_char` and
  `unescape_char`, `Utf16Codepoint` (joins UTF-16 surrogate pairs),
  `encode_codepoint` (UTF-8 bytes of a code point) and the formatters
  `format_string`, `format_boolean`, `format_integer` and `format_float`.
  `format_float` writes nine significant digits, uses an exponent outside
  `1e-5 .. 1e7`, and writes NaN and infinities as `null`.
- `mcuclient.jsonserialize` — `serialize_json` (minified) and
  `serialize_json_pretty` (two-space indent, CRLF line breaks) for `None`,
  `bool`, `int`, `float`, `str`, lists, tuples and mappings with `str`
  keys; `measure_json` and `measure_json_pretty` return the UTF-8 length
  of that output. Wrap ready-made JSON text in `RawJson` to write it
  verbatim. Other types raise `TypeError`.
- `mcuclient.jsonparse` — `deserialize_json(text, nesting_limit=10,
  allow_comments=False)` returns dicts, lists, `int`, `float`, `str`,
  `bool` or `None`. It accepts single-quoted strings and unquoted keys, and
  `//` and `/* */` comments when `allow_comments` is true. Input stops at
  the first NUL character. Errors raise `DeserializationError`, whose
  `code` is an `ErrorCode`: `EMPTY_INPUT`, `INCOMPLETE_INPUT`,
  `INVALID_INPUT`, `NO_MEMORY` or `TOO_DEEP`.
- `mcuclient.httpresponse` — the `Client` interface for a pollable byte
  stream, `SocketClient` (a plain TCP implementation), the `HttpState`
  enumeration, and `HttpResponseReader`, which reads the status line
  (skipping 1xx responses other than 101), headers one at a time
  (`header_available`, `read_header_name`, `read_header_value`),
  `Content-Length` and chunked bodies.
- `mcuclient.httpclient` — `HttpClient`, which sends HTTP/1.1 requests
  (`get`, `post`, `put`, `patch`, `delete`, or `start_request` for any
  method), extra headers (`send_header`), basic authentication
  (`send_basic_auth`) and bodies, and reads the reply through the methods
  it inherits from `HttpResponseReader`. By default it sends `Host`,
  `User-Agent` and `Connection: close`; see `connection_keep_alive` and
  `no_default_request_headers`.
- `mcuclient.websocket` — `WebSocketClient`, which upgrades an HTTP
  connection (`begin`), sends masked frames (`begin_message`, `write`,
  `end_message`, `ping`) and reads frames (`parse_message`,
  `message_type`, `is_final`, `read`, `read_bytes`, `read_string`,
  `peek`). Incoming pings are answered with a pong; a close frame stops the
  client. Opcodes are in `MessageType`; failures raise `WebSocketError`.

## Errors

The HTTP layer raises subclasses of `HttpError`: `ConnectionFailedError`,
`ApiError` (a call made in the wrong state), `TimedOutError` and
`InvalidResponseError`. `WebSocketError` is also an `HttpError`.

## Install

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Examples

```python
from mcuclient.jsonserialize import serialize_json
from mcuclient.jsonparse import deserialize_json

text = serialize_json({"sensor": "temp", "values": [1, 2.5, True, None]})
print(text)  # {"sensor":"temp","values":[1,2.5,true,null]}

doc = deserialize_json("{sensor:'temp', values:[1,2]}")
print(doc["values"])  # [1, 2]
```

```python
from mcuclient.httpresponse import SocketClient
from mcuclient.httpclient import HttpClient

client = HttpClient(SocketClient(), "example.com", 80)
client.get("/")
status = client.response_status_code()
body = client.response_body()
```

Adding headers to a request:

```python
password = "password"

client.begin_request()
client.get("/private")
client.send_basic_auth("user", password)
client.send_header("Accept", "application/json")
client.end_request()
status = client.response_status_code()
```

## What it does not do

- `SocketClient` speaks plain TCP only; there is no TLS. Any other
  transport can be plugged in by implementing `Client`.
- Everything is synchronous and polls the connection; there is no async
  API.
- There is no command-line program and no server side.
- JSON is handled as text only: no binary formats, and no filtering of
  what is parsed.