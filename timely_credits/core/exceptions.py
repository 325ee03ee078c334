"""
Application-level exceptions.

- ConfigError is fatal and only raised at startup.
- Everything else is recoverable: the account processor catches it, logs it
  with alias/epoch context, and the refresh loop keeps running.
"""

from __future__ import annotations


class TimelyCreditsError(Exception):
    """Base class for all agent errors."""


class ConfigError(TimelyCreditsError):
    """Configuration file missing, unreadable, or invalid."""


class InvalidAddress(TimelyCreditsError):
    """Configured account address is not a valid Solana pubkey."""

    def __init__(self, address: str, reason: str = "") -> None:
        self.address = address
        self.reason = reason
        msg = f"invalid account address {address!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class RpcError(TimelyCreditsError):
    """Base for chain RPC failures (per account, recoverable)."""

    def __init__(self, message: str, *, address: str | None = None) -> None:
        self.address = address
        super().__init__(message)


class AccountNotFound(RpcError):
    """RPC returned no account for the address."""


class RpcTimeout(RpcError):
    """RPC did not answer within the configured timeout."""


class RpcTransportError(RpcError):
    """Connection failure, HTTP error status, bad JSON, or JSON-RPC error object."""


class DecodeError(TimelyCreditsError):
    """Raw account bytes could not be decoded into a credit history."""


class MalformedHistory(TimelyCreditsError):
    """A credit history entry has cumulative credits below the previous cumulative value."""

    def __init__(
        self,
        alias: str,
        epoch: int,
        cumulative_credits: int,
        previous_cumulative_credits: int,
    ) -> None:
        self.alias = alias
        self.epoch = epoch
        self.cumulative_credits = cumulative_credits
        self.previous_cumulative_credits = previous_cumulative_credits
        super().__init__(
            f"{alias} epoch {epoch}: cumulative credits {cumulative_credits} "
            f"< previous {previous_cumulative_credits}"
        )


class StoreError(TimelyCreditsError):
    """A score could not be written to or read from the store."""

    def __init__(
        self,
        message: str,
        *,
        alias: str | None = None,
        epoch: int | None = None,
    ) -> None:
        self.alias = alias
        self.epoch = epoch
        super().__init__(message)
