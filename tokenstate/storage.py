"""Key layout and value encoding for the token chain state."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, Sequence

from tokenstate.address import PUBLIC_KEY_LEN
from tokenstate.errors import InvalidBalanceError, NotFoundError
from tokenstate.ids import ID_LEN, encode_id

MAX_UINT64 = 2**64 - 1
MAX_METADATA_LEN = 2**16 - 1

_TX_PREFIX = 0x0

_BALANCE_PREFIX = 0x0
_ASSET_PREFIX = 0x1
_ORDER_PREFIX = 0x2
_LOAN_PREFIX = 0x3
_HEIGHT_PREFIX = 0x4
_INCOMING_WARP_PREFIX = 0x5
_OUTGOING_WARP_PREFIX = 0x6

_FAILURE_BYTE = 0x0
_SUCCESS_BYTE = 0x1

_U64 = struct.Struct(">Q")
_U16 = struct.Struct(">H")
_TX_VALUE = struct.Struct(">qBQ")

ReadState = Callable[[Sequence[bytes]], "list[Optional[bytes]]"]
"""Reads many keys at once; a missing key yields ``None``."""


class Database(Protocol):
    def get_value(self, key: bytes) -> bytes: ...

    def insert(self, key: bytes, value: bytes) -> None: ...

    def remove(self, key: bytes) -> None: ...


class MemoryDatabase:
    """A key-value store held in a dictionary."""

    def __init__(self) -> None:
        self._data: dict[bytes, bytes] = {}

    def get_value(self, key: bytes) -> bytes:
        try:
            return self._data[bytes(key)]
        except KeyError:
            raise NotFoundError() from None

    def insert(self, key: bytes, value: bytes) -> None:
        self._data[bytes(key)] = bytes(value)

    def remove(self, key: bytes) -> None:
        self._data.pop(bytes(key), None)

    def read_state(self, keys: Iterable[bytes]) -> list[Optional[bytes]]:
        return [self._data.get(bytes(key)) for key in keys]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, (bytes, bytearray)) and bytes(key) in self._data

    def __len__(self) -> int:
        return len(self._data)


@dataclass(frozen=True)
class TransactionRecord:
    timestamp: int
    success: bool
    units: int


@dataclass(frozen=True)
class AssetRecord:
    metadata: bytes
    supply: int
    owner: bytes
    warp: bool


@dataclass(frozen=True)
class OrderRecord:
    in_asset: bytes
    in_tick: int
    out_asset: bytes
    out_tick: int
    remaining: int
    owner: bytes


def _id(value: bytes, name: str = "id") -> bytes:
    value = bytes(value)
    if len(value) != ID_LEN:
        raise ValueError(f"{name} must be {ID_LEN} bytes, got {len(value)}")
    return value


def _public_key(value: bytes) -> bytes:
    value = bytes(value)
    if len(value) != PUBLIC_KEY_LEN:
        raise ValueError(f"public key must be {PUBLIC_KEY_LEN} bytes, got {len(value)}")
    return value


def _u64(value: int, name: str) -> bytes:
    if not 0 <= value <= MAX_UINT64:
        raise ValueError(f"{name} out of uint64 range: {value}")
    return _U64.pack(value)


def _get_or_none(db: Database, key: bytes) -> Optional[bytes]:
    try:
        return db.get_value(key)
    except NotFoundError:
        return None


def _read_one(read_state: ReadState, key: bytes) -> Optional[bytes]:
    return read_state([key])[0]


def _decode_u64(value: Optional[bytes]) -> int:
    return 0 if value is None else _U64.unpack_from(value)[0]


# Transactions: [txPrefix] + [txID] => timestamp|success|units


def prefix_tx_key(tx_id: bytes) -> bytes:
    return bytes([_TX_PREFIX]) + _id(tx_id, "tx id")


def store_transaction(db: Database, tx_id: bytes, timestamp: int, success: bool, units: int) -> None:
    _u64(units, "units")
    value = _TX_VALUE.pack(timestamp, _SUCCESS_BYTE if success else _FAILURE_BYTE, units)
    db.insert(prefix_tx_key(tx_id), value)


def get_transaction(db: Database, tx_id: bytes) -> Optional[TransactionRecord]:
    """Return the stored outcome of a transaction, or ``None`` if unknown."""
    value = _get_or_none(db, prefix_tx_key(tx_id))
    if value is None:
        return None
    timestamp, flag, units = _TX_VALUE.unpack_from(value)
    return TransactionRecord(timestamp, flag != _FAILURE_BYTE, units)


# Balances: [balancePrefix] + [owner] + [asset] => balance


def prefix_balance_key(public_key: bytes, asset: bytes) -> bytes:
    return bytes([_BALANCE_PREFIX]) + _public_key(public_key) + _id(asset, "asset")


def get_balance(db: Database, public_key: bytes, asset: bytes) -> int:
    """Return a balance; an absent account holds zero."""
    return _decode_u64(_get_or_none(db, prefix_balance_key(public_key, asset)))


def get_balance_from_state(read_state: ReadState, public_key: bytes, asset: bytes) -> int:
    return _decode_u64(_read_one(read_state, prefix_balance_key(public_key, asset)))


def set_balance(db: Database, public_key: bytes, asset: bytes, balance: int) -> None:
    db.insert(prefix_balance_key(public_key, asset), _u64(balance, "balance"))


def delete_balance(db: Database, public_key: bytes, asset: bytes) -> None:
    db.remove(prefix_balance_key(public_key, asset))


def _balance_error(action: str, asset: bytes, balance: int, public_key: bytes, amount: int) -> InvalidBalanceError:
    return InvalidBalanceError(
        f"invalid balance: could not {action} balance (asset={encode_id(asset)}, "
        f"bal={balance}, addr={public_key.hex()}, amount={amount})"
    )


def add_balance(db: Database, public_key: bytes, asset: bytes, amount: int) -> None:
    key = prefix_balance_key(public_key, asset)
    balance = _decode_u64(_get_or_none(db, key))
    new_balance = balance + amount
    if amount < 0 or new_balance > MAX_UINT64:
        raise _balance_error("add", bytes(asset), balance, bytes(public_key), amount)
    db.insert(key, _U64.pack(new_balance))


def sub_balance(db: Database, public_key: bytes, asset: bytes, amount: int) -> None:
    key = prefix_balance_key(public_key, asset)
    balance = _decode_u64(_get_or_none(db, key))
    if amount < 0 or amount > balance:
        raise _balance_error("subtract", bytes(asset), balance, bytes(public_key), amount)
    new_balance = balance - amount
    if new_balance == 0:
        # An emptied account is deleted rather than stored as zero.
        db.remove(key)
    else:
        db.insert(key, _U64.pack(new_balance))


# Assets: [assetPrefix] + [asset] => metadataLen|metadata|supply|owner|warp


def prefix_asset_key(asset: bytes) -> bytes:
    return bytes([_ASSET_PREFIX]) + _id(asset, "asset")


def _decode_asset(value: Optional[bytes]) -> Optional[AssetRecord]:
    if value is None:
        return None
    (metadata_len,) = _U16.unpack_from(value)
    offset = _U16.size
    metadata = value[offset : offset + metadata_len]
    offset += metadata_len
    (supply,) = _U64.unpack_from(value, offset)
    offset += _U64.size
    owner = value[offset : offset + PUBLIC_KEY_LEN]
    warp = value[offset + PUBLIC_KEY_LEN] == 0x1
    return AssetRecord(bytes(metadata), supply, bytes(owner), warp)


def get_asset_from_state(read_state: ReadState, asset: bytes) -> Optional[AssetRecord]:
    return _decode_asset(_read_one(read_state, prefix_asset_key(asset)))


def get_asset(db: Database, asset: bytes) -> Optional[AssetRecord]:
    """Return an asset's record, or ``None`` if it does not exist."""
    return _decode_asset(_get_or_none(db, prefix_asset_key(asset)))


def set_asset(
    db: Database,
    asset: bytes,
    metadata: bytes,
    supply: int,
    owner: bytes,
    warp: bool,
) -> None:
    metadata = bytes(metadata)
    if len(metadata) > MAX_METADATA_LEN:
        raise ValueError(f"metadata longer than {MAX_METADATA_LEN} bytes")
    value = (
        _U16.pack(len(metadata))
        + metadata
        + _u64(supply, "supply")
        + _public_key(owner)
        + bytes([0x1 if warp else 0x0])
    )
    db.insert(prefix_asset_key(asset), value)


def delete_asset(db: Database, asset: bytes) -> None:
    db.remove(prefix_asset_key(asset))


# Orders: [orderPrefix] + [txID] => in|inTick|out|outTick|remaining|owner


def prefix_order_key(tx_id: bytes) -> bytes:
    return bytes([_ORDER_PREFIX]) + _id(tx_id, "order id")


def set_order(
    db: Database,
    tx_id: bytes,
    in_asset: bytes,
    in_tick: int,
    out_asset: bytes,
    out_tick: int,
    supply: int,
    owner: bytes,
) -> None:
    value = (
        _id(in_asset, "in asset")
        + _u64(in_tick, "in tick")
        + _id(out_asset, "out asset")
        + _u64(out_tick, "out tick")
        + _u64(supply, "supply")
        + _public_key(owner)
    )
    db.insert(prefix_order_key(tx_id), value)


def get_order(db: Database, order: bytes) -> Optional[OrderRecord]:
    """Return an open order, or ``None`` if it does not exist."""
    value = _get_or_none(db, prefix_order_key(order))
    if value is None:
        return None
    in_asset = value[:ID_LEN]
    (in_tick,) = _U64.unpack_from(value, ID_LEN)
    out_start = ID_LEN + _U64.size
    out_asset = value[out_start : out_start + ID_LEN]
    (out_tick,) = _U64.unpack_from(value, out_start + ID_LEN)
    (remaining,) = _U64.unpack_from(value, out_start + ID_LEN + _U64.size)
    owner_start = ID_LEN * 2 + _U64.size * 3
    owner = value[owner_start : owner_start + PUBLIC_KEY_LEN]
    return OrderRecord(bytes(in_asset), in_tick, bytes(out_asset), out_tick, remaining, bytes(owner))


def delete_order(db: Database, order: bytes) -> None:
    db.remove(prefix_order_key(order))


# Loans: [loanPrefix] + [asset] + [destination] => amount


def prefix_loan_key(asset: bytes, destination: bytes) -> bytes:
    return bytes([_LOAN_PREFIX]) + _id(asset, "asset") + _id(destination, "destination")


def get_loan_from_state(read_state: ReadState, asset: bytes, destination: bytes) -> int:
    return _decode_u64(_read_one(read_state, prefix_loan_key(asset, destination)))


def get_loan(db: Database, asset: bytes, destination: bytes) -> int:
    """Return the amount lent to a destination chain; zero if none."""
    return _decode_u64(_get_or_none(db, prefix_loan_key(asset, destination)))


def set_loan(db: Database, asset: bytes, destination: bytes, amount: int) -> None:
    db.insert(prefix_loan_key(asset, destination), _u64(amount, "amount"))


def _loan_error(action: str, asset: bytes, destination: bytes, amount: int) -> InvalidBalanceError:
    return InvalidBalanceError(
        f"invalid balance: could not {action} loan (asset={encode_id(asset)}, "
        f"destination={encode_id(destination)}, amount={amount})"
    )


def add_loan(db: Database, asset: bytes, destination: bytes, amount: int) -> None:
    loan = get_loan(db, asset, destination)
    new_loan = loan + amount
    if amount < 0 or new_loan > MAX_UINT64:
        raise _loan_error("add", bytes(asset), bytes(destination), amount)
    set_loan(db, asset, destination, new_loan)


def sub_loan(db: Database, asset: bytes, destination: bytes, amount: int) -> None:
    loan = get_loan(db, asset, destination)
    if amount < 0 or amount > loan:
        raise _loan_error("subtract", bytes(asset), bytes(destination), amount)
    new_loan = loan - amount
    if new_loan == 0:
        db.remove(prefix_loan_key(asset, destination))
    else:
        set_loan(db, asset, destination, new_loan)


def height_key() -> bytes:
    return bytes([_HEIGHT_PREFIX])


def incoming_warp_key_prefix(source_chain_id: bytes, msg_id: bytes) -> bytes:
    return bytes([_INCOMING_WARP_PREFIX]) + _id(source_chain_id, "source chain id") + _id(msg_id, "message id")


def outgoing_warp_key_prefix(tx_id: bytes) -> bytes:
    return bytes([_OUTGOING_WARP_PREFIX]) + _id(tx_id, "tx id")