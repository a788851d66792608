"""Key-value state layout, JSON-RPC query handler and client for a token ledger."""

__version__ = "0.0.1"

__all__ = ["__version__"]