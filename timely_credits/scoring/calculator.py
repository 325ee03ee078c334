"""
Epoch score calculator: one credit history entry -> one EpochScore.

Timely vote credits award up to 16 credits per slot; votes that land within
the 2-slot grace period receive the full 16. The per-epoch cap is therefore
slots_per_epoch * 16, a protocol constant that is never read from chain state.
See https://www.anza.xyz/blog/feature-gate-spotlight-timely-vote-credits

Pure functions only: no I/O, no retries, no logging.
"""

from __future__ import annotations

from timely_credits.core.exceptions import MalformedHistory
from timely_credits.scoring.models import CreditHistoryEntry, EpochScore

SLOTS_PER_EPOCH = 432_000
MAX_CREDITS_PER_SLOT = 16
MAX_CREDITS_PER_EPOCH = SLOTS_PER_EPOCH * MAX_CREDITS_PER_SLOT


def max_credits_for_epoch(slots_per_epoch: int = SLOTS_PER_EPOCH) -> int:
    """Return the credit cap for an epoch of the given length."""
    if slots_per_epoch <= 0:
        raise ValueError("slots_per_epoch must be positive")
    return slots_per_epoch * MAX_CREDITS_PER_SLOT


def earned_credits(alias: str, entry: CreditHistoryEntry) -> int:
    """
    Credits earned during entry.epoch.

    Raises MalformedHistory if the cumulative counter went backwards; the value
    is never clamped or wrapped.
    """
    if entry.cumulative_credits < entry.previous_cumulative_credits:
        raise MalformedHistory(
            alias,
            entry.epoch,
            entry.cumulative_credits,
            entry.previous_cumulative_credits,
        )
    return entry.cumulative_credits - entry.previous_cumulative_credits


def calculate_epoch_score(
    alias: str,
    entry: CreditHistoryEntry,
    max_possible_credits: int = MAX_CREDITS_PER_EPOCH,
) -> EpochScore:
    """
    Convert one epoch's credits into a score in [0, 100].

    score = earned / max_possible_credits * 100. A validator that somehow
    earns more than the cap scores above 100; no clamping is applied.
    """
    if max_possible_credits <= 0:
        raise ValueError("max_possible_credits must be positive")
    earned = earned_credits(alias, entry)
    score = (earned / max_possible_credits) * 100.0
    return EpochScore(
        alias=alias,
        epoch=entry.epoch,
        earned_credits=earned,
        max_possible_credits=max_possible_credits,
        score=score,
    )
