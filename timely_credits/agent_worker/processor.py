"""
Account processor: fetch -> decode -> score -> upsert for one vote account.

Account-level failures (bad address, RPC, decode) end processing of that
account and are reported in the result. Epoch-level failures (malformed
history, store write) skip only that epoch. Nothing propagates to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol

from timely_credits.core.exceptions import (
    DecodeError,
    InvalidAddress,
    MalformedHistory,
    RpcError,
    StoreError,
)
from timely_credits.database.database import ScoreStore
from timely_credits.logging import bind_account
from timely_credits.scoring.calculator import MAX_CREDITS_PER_EPOCH, calculate_epoch_score
from timely_credits.scoring.models import Account, CreditHistoryEntry
from timely_credits.solana_rpc.client import resolve_address
from timely_credits.solana_rpc.vote_state import decode_epoch_credits


class AccountFetcher(Protocol):
    """Anything with get_account(address) -> bytes (SolanaRpcClient in production)."""

    def get_account(self, address: str) -> bytes: ...


HistoryDecoder = Callable[[bytes], list[CreditHistoryEntry]]


@dataclass
class EpochFailure:
    """One epoch that could not be scored or written."""

    epoch: int
    error: str
    kind: str


@dataclass
class AccountResult:
    """Outcome of processing one account in one tick."""

    alias: str
    epochs_written: int = 0
    failures: list[EpochFailure] = field(default_factory=list)
    error: str | None = None
    """Account-level error (address, RPC, decode); None if history was fetched."""
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failures


def process_account(
    account: Account,
    rpc: AccountFetcher,
    store: ScoreStore,
    *,
    max_possible_credits: int = MAX_CREDITS_PER_EPOCH,
    decoder: HistoryDecoder = decode_epoch_credits,
) -> AccountResult:
    """
    Refresh all epoch scores for one account.

    One RPC read, then one upsert per epoch in ascending epoch order.
    Never raises for chain, decode or store failures.
    """
    log = bind_account(account.alias, __name__)
    result = AccountResult(alias=account.alias)
    try:
        resolve_address(account.address)
        raw = rpc.get_account(account.address)
        history = decoder(raw)
    except (InvalidAddress, RpcError, DecodeError) as e:
        result.error = str(e)
        result.error_kind = type(e).__name__
        log.warning(
            "account_fetch_failed",
            address=account.address,
            error_kind=result.error_kind,
            error=result.error,
        )
        return result

    log.debug("account_history_decoded", epochs=len(history))

    for entry in sorted(history, key=lambda e: e.epoch):
        try:
            score = calculate_epoch_score(account.alias, entry, max_possible_credits)
            store.upsert(score)
        except (MalformedHistory, StoreError) as e:
            result.failures.append(
                EpochFailure(epoch=entry.epoch, error=str(e), kind=type(e).__name__)
            )
            log.warning(
                "epoch_score_failed",
                epoch=entry.epoch,
                error_kind=type(e).__name__,
                error=str(e),
            )
            continue
        result.epochs_written += 1

    log.info(
        "account_processed",
        epochs_written=result.epochs_written,
        epochs_failed=len(result.failures),
    )
    return result
