import pytest

from tokenstate import storage
from tokenstate.errors import InvalidBalanceError, NotFoundError
from tokenstate.storage import (
    MAX_UINT64,
    AssetRecord,
    MemoryDatabase,
    OrderRecord,
    TransactionRecord,
)

TX = bytes(range(32))
ASSET = b"\xaa" * 32
OTHER_ASSET = b"\xbb" * 32
DEST = b"\xcc" * 32
PK = b"\x11" * 32
OWNER = b"\x22" * 32


@pytest.fixture
def db():
    return MemoryDatabase()


def test_memory_database_missing_key_raises(db):
    with pytest.raises(NotFoundError):
        db.get_value(b"missing")


def test_memory_database_round_trip_and_read_state(db):
    db.insert(b"k", b"v")
    assert db.get_value(b"k") == b"v"
    assert db.read_state([b"k", b"x"]) == [b"v", None]
    db.remove(b"k")
    assert b"k" not in db


def test_key_prefixes():
    assert storage.prefix_tx_key(TX) == b"\x00" + TX
    assert storage.prefix_balance_key(PK, ASSET) == b"\x00" + PK + ASSET
    assert storage.prefix_asset_key(ASSET) == b"\x01" + ASSET
    assert storage.prefix_order_key(TX) == b"\x02" + TX
    assert storage.prefix_loan_key(ASSET, DEST) == b"\x03" + ASSET + DEST
    assert storage.height_key() == b"\x04"
    assert storage.incoming_warp_key_prefix(DEST, TX) == b"\x05" + DEST + TX
    assert storage.outgoing_warp_key_prefix(TX) == b"\x06" + TX


def test_key_rejects_wrong_id_length():
    with pytest.raises(ValueError):
        storage.prefix_asset_key(b"\x01" * 5)


def test_transaction_wire_format(db):
    storage.store_transaction(db, TX, 1, True, 2)
    expected = b"\x00" * 7 + b"\x01" + b"\x01" + b"\x00" * 7 + b"\x02"
    assert db.get_value(storage.prefix_tx_key(TX)) == expected


@pytest.mark.parametrize("success", [True, False])
def test_transaction_round_trip(db, success):
    storage.store_transaction(db, TX, -7, success, 472)
    assert storage.get_transaction(db, TX) == TransactionRecord(-7, success, 472)


def test_missing_transaction(db):
    assert storage.get_transaction(db, TX) is None


def test_missing_balance_is_zero(db):
    assert storage.get_balance(db, PK, ASSET) == 0
    assert storage.get_balance_from_state(db.read_state, PK, ASSET) == 0


def test_set_and_get_balance(db):
    storage.set_balance(db, PK, ASSET, 1000)
    assert storage.get_balance(db, PK, ASSET) == 1000
    assert storage.get_balance_from_state(db.read_state, PK, ASSET) == 1000
    assert storage.get_balance(db, PK, OTHER_ASSET) == 0


def test_add_balance_to_empty(db):
    storage.add_balance(db, PK, ASSET, 5000)
    assert storage.get_balance(db, PK, ASSET) == 5000


def test_add_balance_overflow(db):
    storage.set_balance(db, PK, ASSET, MAX_UINT64)
    with pytest.raises(InvalidBalanceError, match="could not add balance"):
        storage.add_balance(db, PK, ASSET, 1)
    assert storage.get_balance(db, PK, ASSET) == MAX_UINT64


def test_sub_balance_underflow(db):
    storage.set_balance(db, PK, ASSET, 100)
    with pytest.raises(InvalidBalanceError) as info:
        storage.sub_balance(db, PK, ASSET, 101)
    assert str(info.value).startswith("invalid balance")
    assert storage.get_balance(db, PK, ASSET) == 100


def test_sub_balance_to_zero_removes_record(db):
    storage.add_balance(db, PK, ASSET, 2000)
    storage.sub_balance(db, PK, ASSET, 2000)
    assert storage.prefix_balance_key(PK, ASSET) not in db
    assert storage.get_balance(db, PK, ASSET) == 0


def test_add_then_sub_restores_balance(db):
    storage.set_balance(db, PK, ASSET, 2900)
    storage.add_balance(db, PK, ASSET, 100)
    storage.sub_balance(db, PK, ASSET, 100)
    assert storage.get_balance(db, PK, ASSET) == 2900


def test_delete_balance(db):
    storage.set_balance(db, PK, ASSET, 10)
    storage.delete_balance(db, PK, ASSET)
    assert len(db) == 0


def test_asset_wire_format(db):
    storage.set_asset(db, ASSET, b"1", 15, OWNER, False)
    expected = b"\x00\x01" + b"1" + b"\x00" * 7 + b"\x0f" + OWNER + b"\x00"
    assert db.get_value(storage.prefix_asset_key(ASSET)) == expected


def test_asset_round_trip(db):
    storage.set_asset(db, ASSET, b"blah", 10, OWNER, True)
    record = AssetRecord(b"blah", 10, OWNER, True)
    assert storage.get_asset(db, ASSET) == record
    assert storage.get_asset_from_state(db.read_state, ASSET) == record


def test_asset_without_metadata(db):
    storage.set_asset(db, ASSET, b"", 0, OWNER, False)
    assert storage.get_asset(db, ASSET) == AssetRecord(b"", 0, OWNER, False)


def test_missing_and_deleted_asset(db):
    assert storage.get_asset(db, ASSET) is None
    storage.set_asset(db, ASSET, b"3", 1, OWNER, False)
    storage.delete_asset(db, ASSET)
    assert storage.get_asset_from_state(db.read_state, ASSET) is None


def test_asset_metadata_too_long(db):
    with pytest.raises(ValueError):
        storage.set_asset(db, ASSET, bytes(70000), 1, OWNER, False)


def test_order_round_trip(db):
    storage.set_order(db, TX, ASSET, 4, OTHER_ASSET, 1, 5, OWNER)
    assert storage.get_order(db, TX) == OrderRecord(ASSET, 4, OTHER_ASSET, 1, 5, OWNER)


def test_order_missing_and_deleted(db):
    assert storage.get_order(db, TX) is None
    storage.set_order(db, TX, ASSET, 1, OTHER_ASSET, 2, 4, OWNER)
    storage.delete_order(db, TX)
    assert storage.get_order(db, TX) is None


def test_loan_lifecycle(db):
    assert storage.get_loan(db, ASSET, DEST) == 0
    storage.add_loan(db, ASSET, DEST, 2900)
    assert storage.get_loan(db, ASSET, DEST) == 2900
    assert storage.get_loan_from_state(db.read_state, ASSET, DEST) == 2900
    storage.sub_loan(db, ASSET, DEST, 2900)
    assert storage.prefix_loan_key(ASSET, DEST) not in db


def test_loan_underflow(db):
    storage.set_loan(db, ASSET, DEST, 10)
    with pytest.raises(InvalidBalanceError, match="could not subtract loan"):
        storage.sub_loan(db, ASSET, DEST, 11)
    assert storage.get_loan(db, ASSET, DEST) == 10


def test_loan_overflow(db):
    storage.set_loan(db, ASSET, DEST, MAX_UINT64)
    with pytest.raises(InvalidBalanceError, match="could not add loan"):
        storage.add_loan(db, ASSET, DEST, 1)


def test_set_balance_rejects_out_of_range(db):
    with pytest.raises(ValueError):
        storage.set_balance(db, PK, ASSET, MAX_UINT64 + 1)