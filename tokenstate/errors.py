"""Exceptions raised by the token state layer and its RPC service."""

from __future__ import annotations


class TokenError(Exception):
    """Base class for every error raised by this package."""

    default_message = "token error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class NotFoundError(TokenError, LookupError):
    """A key is not present in the database."""

    default_message = "not found"


class InvalidBalanceError(TokenError, ValueError):
    """A balance or loan update would overflow or underflow."""

    default_message = "invalid balance"


class TxNotFoundError(NotFoundError):
    """The requested transaction is unknown."""

    default_message = "tx not found"


class AssetNotFoundError(NotFoundError):
    """The requested asset is unknown."""

    default_message = "asset not found"