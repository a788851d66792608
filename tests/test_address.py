import os

import pytest

from tokenstate.address import EMPTY_PUBLIC_KEY, PUBLIC_KEY_LEN, address, parse_address

HRP = "token"


@pytest.mark.parametrize("seed", range(4))
def test_round_trip(seed):
    public_key = os.urandom(PUBLIC_KEY_LEN)
    assert parse_address(address(public_key, HRP), HRP) == public_key


def test_empty_key_round_trip_and_prefix():
    text = address(EMPTY_PUBLIC_KEY, HRP)
    assert text.startswith(HRP + "1")
    assert parse_address(text, HRP) == EMPTY_PUBLIC_KEY


def test_uppercase_address_parses():
    public_key = bytes(range(PUBLIC_KEY_LEN))
    assert parse_address(address(public_key, HRP).upper(), HRP) == public_key


def test_different_keys_give_different_addresses():
    first = address(b"\x01" * PUBLIC_KEY_LEN, HRP)
    second = address(b"\x02" * PUBLIC_KEY_LEN, HRP)
    assert first != second
    assert len(first) == len(second)


def test_wrong_hrp_rejected():
    text = address(b"\x05" * PUBLIC_KEY_LEN, HRP)
    with pytest.raises(ValueError, match="incorrect hrp"):
        parse_address(text, "other")


def test_tampered_address_rejected():
    text = address(b"\x05" * PUBLIC_KEY_LEN, HRP)
    replacement = "q" if text[-1] != "q" else "p"
    with pytest.raises(ValueError, match="checksum"):
        parse_address(text[:-1] + replacement, HRP)


def test_mixed_case_rejected():
    text = address(b"\x09" * PUBLIC_KEY_LEN, HRP)
    with pytest.raises(ValueError, match="mixed case"):
        parse_address(text[:-1] + text[-1].upper() if text[-1].isalpha() else "Token" + text[5:], HRP)


def test_address_rejects_short_key():
    with pytest.raises(ValueError, match="invalid size"):
        address(b"\x01" * 16, HRP)