"""JSON-RPC service answering queries about token chain state."""

from __future__ import annotations

import base64
import dataclasses
import json
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

from tokenstate.address import address as encode_address
from tokenstate.address import parse_address
from tokenstate.errors import AssetNotFoundError, TokenError, TxNotFoundError
from tokenstate.ids import EMPTY_ID, decode_id
from tokenstate.storage import AssetRecord, TransactionRecord

JSONRPC_ENDPOINT = "/tokenapi"
ORDERS_TO_SEND = 128
DEFAULT_SERVICE_NAME = "tokenvm"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000


class Controller(Protocol):
    """What the service needs from the running chain."""

    def genesis(self) -> Any: ...

    def get_transaction(self, tx_id: bytes) -> Optional[TransactionRecord]: ...

    def get_asset_from_state(self, asset: bytes) -> Optional[AssetRecord]: ...

    def get_balance_from_state(self, public_key: bytes, asset: bytes) -> int: ...

    def orders(self, pair: str, limit: int) -> Sequence[Any]: ...

    def get_loan_from_state(self, asset: bytes, destination: bytes) -> int: ...


def _as_id(value: Any) -> bytes:
    if value is None:
        return EMPTY_ID
    if isinstance(value, str):
        return decode_id(value)
    return bytes(value)


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _jsonable(dataclasses.asdict(value))
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def _error(request_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": request_id}


def _params(params: Any) -> Mapping:
    if params is None:
        return {}
    if isinstance(params, Mapping):
        return params
    if isinstance(params, list):
        if not params:
            return {}
        if len(params) == 1 and (params[0] is None or isinstance(params[0], Mapping)):
            return params[0] or {}
    raise ValueError("invalid params: expected one object")


class JSONRPCServer:
    """Serves genesis, transaction, asset, balance, order and loan queries."""

    def __init__(self, controller: Controller, hrp: str, name: str = DEFAULT_SERVICE_NAME) -> None:
        self._controller = controller
        self._hrp = hrp
        self.name = name
        self._methods: dict[str, tuple[Callable[..., dict], tuple[tuple[str, str], ...]]] = {
            "genesis": (self.genesis, ()),
            "tx": (self.tx, (("txId", "tx_id"),)),
            "asset": (self.asset, (("asset", "asset"),)),
            "balance": (self.balance, (("address", "address"), ("asset", "asset"))),
            "orders": (self.orders, (("pair", "pair"),)),
            "loan": (self.loan, (("destination", "destination"), ("asset", "asset"))),
        }

    def genesis(self) -> dict:
        return {"genesis": self._controller.genesis()}

    def tx(self, tx_id: Any) -> dict:
        record = self._controller.get_transaction(_as_id(tx_id))
        if record is None:
            raise TxNotFoundError()
        return {"timestamp": record.timestamp, "success": record.success, "units": record.units}

    def asset(self, asset: Any) -> dict:
        record = self._controller.get_asset_from_state(_as_id(asset))
        if record is None:
            raise AssetNotFoundError()
        return {
            "metadata": base64.b64encode(record.metadata).decode("ascii"),
            "supply": record.supply,
            "owner": encode_address(record.owner, self._hrp),
            "warp": record.warp,
        }

    def balance(self, address: Optional[str], asset: Any) -> dict:
        public_key = parse_address(address or "", self._hrp)
        return {"amount": self._controller.get_balance_from_state(public_key, _as_id(asset))}

    def orders(self, pair: Optional[str]) -> dict:
        found = self._controller.orders(pair or "", ORDERS_TO_SEND)
        return {"orders": _jsonable(list(found))}

    def loan(self, destination: Any, asset: Any) -> dict:
        amount = self._controller.get_loan_from_state(_as_id(asset), _as_id(destination))
        return {"amount": amount}

    def handle(self, request: Any) -> dict:
        """Answer one JSON-RPC 2.0 request given as a mapping, text or bytes."""
        if isinstance(request, (bytes, bytearray, str)):
            try:
                request = json.loads(request)
            except ValueError as exc:
                return _error(None, PARSE_ERROR, f"parse error: {exc}")
        if not isinstance(request, Mapping):
            return _error(None, INVALID_REQUEST, "invalid request")
        request_id = request.get("id")
        method = request.get("method")
        if not isinstance(method, str):
            return _error(request_id, INVALID_REQUEST, "invalid request: missing method")
        service, _, action = method.rpartition(".")
        entry = self._methods.get(action) if service == self.name else None
        if entry is None:
            return _error(request_id, METHOD_NOT_FOUND, f"rpc: can't find method {method!r}")
        try:
            args = _params(request.get("params"))
        except ValueError as exc:
            return _error(request_id, INVALID_PARAMS, str(exc))
        handler, fields = entry
        try:
            result = handler(**{param: args.get(key) for key, param in fields})
        except (TokenError, ValueError, LookupError) as exc:
            return _error(request_id, SERVER_ERROR, str(exc))
        return {"jsonrpc": "2.0", "result": _jsonable(result), "id": request_id}