import os

import pytest

from tokenstate.ids import EMPTY_ID, ID_LEN, decode_id, encode_id


def test_empty_id_text_form():
    assert encode_id(EMPTY_ID) == "11111111111111111111111111111111LpoYY"


def test_empty_id_parses():
    assert decode_id("11111111111111111111111111111111LpoYY") == bytes(ID_LEN)


@pytest.mark.parametrize("seed", range(5))
def test_round_trip(seed):
    raw = os.urandom(ID_LEN)
    assert decode_id(encode_id(raw)) == raw


def test_leading_zero_bytes_survive():
    raw = b"\0\0\0" + b"\x7f" * (ID_LEN - 3)
    text = encode_id(raw)
    assert text.startswith("111")
    assert decode_id(text) == raw


def test_encode_rejects_wrong_length():
    with pytest.raises(ValueError):
        encode_id(b"\x01" * 31)


def test_decode_rejects_bad_checksum():
    text = encode_id(bytes(range(ID_LEN)))
    last = "2" if text[-1] != "2" else "3"
    with pytest.raises(ValueError):
        decode_id(text[:-1] + last)


def test_decode_rejects_invalid_character():
    with pytest.raises(ValueError):
        decode_id("0OIl")


def test_decode_rejects_short_input():
    with pytest.raises(ValueError):
        decode_id("1")