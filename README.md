# tokenstate

`tokenstate` stores the state of a token ledger in a flat key-value layout.
The state covers balances, assets, open orders, cross-chain loans and
transaction results. It also answers read-only queries about that state
through a JSON-RPC request handler and a matching client.

The package uses only the standard library.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `tokenstate.storage`: key construction, value encoding and the
  read/update functions. Also provides `MemoryDatabase`, a dictionary-backed store.
- `tokenstate.server`: `JSONRPCServer`, which answers JSON-RPC 2.0
  requests against a `Controller`.
- `tokenstate.client`: `JSONRPCClient`, `TxStatus`, `AssetInfo` and
  `JSONRPCError`.
- `tokenstate.address`: Bech32 addresses for 32-byte public keys
  (`address`, `parse_address`).
- `tokenstate.ids`: the text form of 32-byte identifiers (`encode_id`,
  `decode_id`). The text form is base-58 with a 4-byte SHA-256 checksum.
- `tokenstate.errors`: the exceptions. `TokenError` is the base class.
  The others are `NotFoundError`, `InvalidBalanceError`, `TxNotFoundError`
  and `AssetNotFoundError`.

## State layout

Every key starts with a one-byte prefix, followed by fixed-width 32-byte
identifiers or public keys. All integers are big-endian.

| Prefix | Key                          | Value                                                     |
|--------|------------------------------|-----------------------------------------------------------|
| `0x0`  | owner public key + asset     | balance (uint64)                                          |
| `0x1`  | asset                        | metadata length (uint16), metadata, supply, owner, warp flag |
| `0x2`  | order transaction ID         | in asset, in tick, out asset, out tick, remaining, owner  |
| `0x3`  | asset + destination chain    | loan amount (uint64)                                      |
| `0x4`  | none (`height_key()`)        | not interpreted by this package                           |
| `0x5`  | source chain + message ID    | key only (`incoming_warp_key_prefix`)                     |
| `0x6`  | transaction ID               | key only (`outgoing_warp_key_prefix`)                     |

Transaction results are written with `store_transaction` under prefix
`0x0` followed by the transaction ID. Each result holds a signed 64-bit
timestamp, a success byte and a uint64 unit count.

These keys share prefix `0x0` with balances. Keep transaction results in a
separate store from the other records.

## Using the storage functions

The functions take any object that provides `get_value(key)`,
`insert(key, value)` and `remove(key)`. `get_value` must raise
`NotFoundError` when the key is missing.

```python
from tokenstate.storage import (
    MemoryDatabase, set_balance, add_balance, sub_balance, get_balance,
    set_asset, get_asset,
)

db = MemoryDatabase()
owner = bytes(32)
asset = bytes(32)

set_balance(db, owner, asset, 100)
add_balance(db, owner, asset, 50)
sub_balance(db, owner, asset, 150)      # the record is removed at zero
print(get_balance(db, owner, asset))    # 0

set_asset(db, asset, b"TKN", 1_000, owner, False)
print(get_asset(db, asset))             # AssetRecord(metadata=b'TKN', ...)
```

Return values for missing records:

- A missing balance or loan reads as `0`.
- `get_asset`, `get_order` and `get_transaction` return `None` when the
  record does not exist. Otherwise they return an `AssetRecord`,
  `OrderRecord` or `TransactionRecord`.

Updates that would go out of range:

- An add or subtract that would overflow or underflow raises
  `InvalidBalanceError`. This applies to `add_balance`, `sub_balance`,
  `add_loan` and `sub_loan`.
- Values outside the uint64 range raise `ValueError`.
- Identifiers and public keys that are not 32 bytes raise `ValueError`.

The `*_from_state` variants read through a callable instead of a database.
The callable takes a list of keys and returns a list of values, with `None`
for each missing key. `MemoryDatabase.read_state` fits that signature.

## Answering queries

Create the handler with `JSONRPCServer(controller, hrp)`:

- The `controller` implements the `Controller` protocol: `genesis`,
  `get_transaction`, `get_asset_from_state`, `get_balance_from_state`,
  `orders` and `get_loan_from_state`.
- `hrp` is the human-readable part used for addresses.

`handle(request)` answers one JSON-RPC 2.0 request. The request can be a
mapping, a JSON string or JSON bytes. The method names are `tokenvm.genesis`,
`tokenvm.tx`, `tokenvm.asset`, `tokenvm.balance`, `tokenvm.orders` and
`tokenvm.loan`. The `tokenvm` part can be changed with the `name` argument.

What the handler returns:

- Identifiers in the parameters are given in their `encode_id` text form.
- Bytes in results are base64-encoded.
- `orders` returns at most 128 orders for a pair.
- An unknown transaction or asset comes back as an error response with code
  `-32000` and the message `tx not found` or `asset not found`.

## Calling the service

`JSONRPCClient(uri, chain_id)` posts requests to `uri + "/tokenapi"` using
`urllib`. You can pass a different `transport` callable, which takes a URL
and a body and returns the response body.

| Method | Returns |
|--------|---------|
| `genesis()` | the genesis value; it is cached after the first call |
| `tx(tx_id)` | a `TxStatus`; `found=False` for an unknown transaction |
| `asset(asset)` | an `AssetInfo`; `exists=False` for an unknown asset |
| `balance(address, asset)` | the balance |
| `orders(pair)` | the orders for the pair |
| `loan(asset, destination)` | the loan amount |

Any other error from the service raises `JSONRPCError`.

Two methods poll every `poll_interval` seconds:

- `wait_for_balance(address, asset, minimum)` polls until the balance is at
  least `minimum`.
- `wait_for_transaction(tx_id)` polls until the transaction is known, then
  returns whether it succeeded.

If `wait_timeout` is set, both methods raise `TimeoutError` once it has passed.

## What this package does not do

- It does not run an HTTP server. `JSONRPCServer.handle` turns a request
  into a response, and putting it behind a listener is up to the caller.
- It has no chain behind the `Controller`: it does not build, verify or
  execute transactions or blocks, and it does not keep an order book.
- It does not define a genesis format. Genesis values are passed through as
  given.
- It has no persistent database, only `MemoryDatabase`.
- It has no command-line program.