"""32-byte identifiers and their checksummed base-58 text form."""

from __future__ import annotations

import hashlib

ID_LEN = 32
EMPTY_ID = bytes(ID_LEN)

_CHECKSUM_LEN = 4
_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {char: value for value, char in enumerate(_ALPHABET)}


def _checksum(payload: bytes) -> bytes:
    return hashlib.sha256(payload).digest()[-_CHECKSUM_LEN:]


def _b58encode(data: bytes) -> str:
    number = int.from_bytes(data, "big")
    chars = []
    while number:
        number, remainder = divmod(number, 58)
        chars.append(_ALPHABET[remainder])
    leading = len(data) - len(data.lstrip(b"\0"))
    return "1" * leading + "".join(reversed(chars))


def _b58decode(text: str) -> bytes:
    number = 0
    for char in text:
        try:
            number = number * 58 + _INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base58 character {char!r}") from None
    leading = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big")
    return b"\0" * leading + body


def encode_id(raw: bytes) -> str:
    """Return the text form of a 32-byte identifier."""
    raw = bytes(raw)
    if len(raw) != ID_LEN:
        raise ValueError(f"identifier must be {ID_LEN} bytes, got {len(raw)}")
    return _b58encode(raw + _checksum(raw))


def decode_id(text: str) -> bytes:
    """Parse the text form of an identifier back into its 32 bytes."""
    decoded = _b58decode(text)
    if len(decoded) < _CHECKSUM_LEN:
        raise ValueError("input string is smaller than the checksum size")
    payload, checksum = decoded[:-_CHECKSUM_LEN], decoded[-_CHECKSUM_LEN:]
    if _checksum(payload) != checksum:
        raise ValueError("invalid input checksum")
    if len(payload) != ID_LEN:
        raise ValueError(f"identifier must be {ID_LEN} bytes, got {len(payload)}")
    return payload