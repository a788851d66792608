"""Client for the token JSON-RPC service."""

from __future__ import annotations

import base64
import itertools
import json
import logging
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Optional

from tokenstate.errors import AssetNotFoundError, TokenError, TxNotFoundError
from tokenstate.ids import encode_id
from tokenstate.server import DEFAULT_SERVICE_NAME, JSONRPC_ENDPOINT

VERSION = "0.0.1"

Transport = Callable[[str, bytes], bytes]
"""Posts a request body to a URL and returns the response body."""

_log = logging.getLogger(__name__)


class JSONRPCError(TokenError):
    """The service answered with an error, or could not be reached."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class TxStatus:
    found: bool
    success: bool
    timestamp: int


@dataclass(frozen=True)
class AssetInfo:
    exists: bool
    metadata: bytes
    supply: int
    owner: str
    warp: bool


def _http_transport(url: str, body: bytes) -> bytes:
    request = urllib.request.Request(
        url, data=body, headers={"Content-Type": "application/json"}, method="POST"
    )
    try:
        with urllib.request.urlopen(request, timeout=30) as response:
            return response.read()
    except urllib.error.HTTPError as exc:
        payload = exc.read()
        if payload:
            return payload
        raise JSONRPCError(f"HTTP {exc.code}: {exc.reason}", exc.code) from exc
    except urllib.error.URLError as exc:
        raise JSONRPCError(f"request failed: {exc.reason}") from exc


class JSONRPCClient:
    """Queries one chain's token service over JSON-RPC."""

    def __init__(
        self,
        uri: str,
        chain_id: bytes,
        *,
        name: str = DEFAULT_SERVICE_NAME,
        transport: Optional[Transport] = None,
        poll_interval: float = 1.0,
        wait_timeout: Optional[float] = None,
    ) -> None:
        self.endpoint = uri.removesuffix("/") + JSONRPC_ENDPOINT
        self.chain_id = bytes(chain_id)
        self.name = name
        self.poll_interval = poll_interval
        self.wait_timeout = wait_timeout
        self._transport = transport or _http_transport
        self._ids = itertools.count(1)
        self._genesis: Any = None

    def _call(self, method: str, params: Optional[dict] = None) -> Any:
        body = json.dumps(
            {
                "jsonrpc": "2.0",
                "method": f"{self.name}.{method}",
                "params": [params or {}],
                "id": next(self._ids),
            }
        ).encode()
        raw = self._transport(self.endpoint, body)
        try:
            response = json.loads(raw)
        except ValueError as exc:
            raise JSONRPCError(f"invalid response: {exc}") from exc
        error = response.get("error")
        if error:
            if isinstance(error, dict):
                raise JSONRPCError(str(error.get("message", "")), error.get("code"))
            raise JSONRPCError(str(error))
        return response.get("result") or {}

    def genesis(self) -> Any:
        """Return the chain's genesis, fetched once and then cached."""
        if self._genesis is None:
            self._genesis = self._call("genesis").get("genesis")
        return self._genesis

    def tx(self, tx_id: bytes) -> TxStatus:
        try:
            reply = self._call("tx", {"txId": encode_id(tx_id)})
        except JSONRPCError as exc:
            if TxNotFoundError.default_message in str(exc):
                return TxStatus(False, False, -1)
            raise
        return TxStatus(True, bool(reply.get("success")), int(reply.get("timestamp", 0)))

    def asset(self, asset: bytes) -> AssetInfo:
        try:
            reply = self._call("asset", {"asset": encode_id(asset)})
        except JSONRPCError as exc:
            if AssetNotFoundError.default_message in str(exc):
                return AssetInfo(False, b"", 0, "", False)
            raise
        metadata = base64.b64decode(reply.get("metadata") or "")
        return AssetInfo(
            True,
            metadata,
            int(reply.get("supply", 0)),
            str(reply.get("owner", "")),
            bool(reply.get("warp")),
        )

    def balance(self, address: str, asset: bytes) -> int:
        reply = self._call("balance", {"address": address, "asset": encode_id(asset)})
        return int(reply.get("amount", 0))

    def orders(self, pair: str) -> list:
        return list(self._call("orders", {"pair": pair}).get("orders") or [])

    def loan(self, asset: bytes, destination: bytes) -> int:
        reply = self._call(
            "loan", {"asset": encode_id(asset), "destination": encode_id(destination)}
        )
        return int(reply.get("amount", 0))

    def _wait(self, done: Callable[[], bool]) -> None:
        deadline = None if self.wait_timeout is None else time.monotonic() + self.wait_timeout
        while not done():
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError("gave up waiting")
            time.sleep(self.poll_interval)

    def wait_for_balance(self, address: str, asset: bytes, minimum: int) -> None:
        """Block until the address holds at least ``minimum`` of the asset."""

        def reached() -> bool:
            if self.balance(address, asset) >= minimum:
                return True
            _log.info("waiting for %d balance: %s", minimum, address)
            return False

        self._wait(reached)

    def wait_for_transaction(self, tx_id: bytes) -> bool:
        """Block until the transaction is known and return whether it succeeded."""
        outcome: list[TxStatus] = []

        def found() -> bool:
            status = self.tx(tx_id)
            outcome[:] = [status]
            return status.found

        self._wait(found)
        return outcome[0].success