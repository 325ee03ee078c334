"""
Domain models shared by the decoder, calculator, store and processor.

Plain frozen dataclasses; no ORM coupling so the store backend stays swappable.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Account:
    """A vote account to monitor, loaded once from the config file."""

    alias: str
    """Human-readable label; unique within a run and used as the store key."""
    address: str
    """Base58 vote account address."""


@dataclass(frozen=True)
class CreditHistoryEntry:
    """One (epoch, credits, prev_credits) triple from VoteState.epoch_credits."""

    epoch: int
    cumulative_credits: int
    previous_cumulative_credits: int


@dataclass(frozen=True)
class EpochScore:
    """Persisted score row for one (alias, epoch)."""

    alias: str
    epoch: int
    earned_credits: int
    max_possible_credits: int
    score: float
    """earned_credits / max_possible_credits * 100, unrounded."""

    @property
    def key(self) -> tuple[str, int]:
        return (self.alias, self.epoch)
