"""Core error taxonomy shared by the RPC client, store, processor and scheduler."""

from timely_credits.core.exceptions import (
    AccountNotFound,
    ConfigError,
    DecodeError,
    InvalidAddress,
    MalformedHistory,
    RpcError,
    RpcTimeout,
    RpcTransportError,
    StoreError,
    TimelyCreditsError,
)

__all__ = [
    "AccountNotFound",
    "ConfigError",
    "DecodeError",
    "InvalidAddress",
    "MalformedHistory",
    "RpcError",
    "RpcTimeout",
    "RpcTransportError",
    "StoreError",
    "TimelyCreditsError",
]
