import base64

import pytest

from mcuclient.b64 import b64_encode


def test_empty_input_gives_empty_output():
    assert b64_encode(b"") == ""


@pytest.mark.parametrize(
    "data",
    [b"a", b"ab", b"abc", b"amcewen", bytes(range(256)), b"user:password"],
)
def test_round_trip(data):
    encoded = b64_encode(data)
    assert base64.b64decode(encoded) == data


@pytest.mark.parametrize("length", range(0, 12))
def test_output_length_is_padded_to_multiple_of_four(length):
    encoded = b64_encode(b"x" * length)
    assert len(encoded) % 4 == 0
    assert len(encoded) == ((length + 2) // 3) * 4


def test_padding_for_short_final_chunk():
    assert b64_encode(b"abcd").endswith("==")
    assert b64_encode(b"abcde").endswith("=")
    assert not b64_encode(b"abcdef").endswith("=")


def test_text_is_encoded_as_utf8():
    assert base64.b64decode(b64_encode("user:password")) == b"user:password"
    assert base64.b64decode(b64_encode("é")) == "é".encode("utf-8")


def test_output_uses_standard_alphabet():
    encoded = b64_encode(bytes([0xFB, 0xFF, 0xBF]))
    assert set(encoded) <= set(
        "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/="
    )
    assert "+" in encoded or "/" in encoded