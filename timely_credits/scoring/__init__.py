"""
Scoring: domain models and the pure epoch score calculator.
"""

from timely_credits.scoring.calculator import (
    MAX_CREDITS_PER_EPOCH,
    MAX_CREDITS_PER_SLOT,
    SLOTS_PER_EPOCH,
    calculate_epoch_score,
    earned_credits,
    max_credits_for_epoch,
)
from timely_credits.scoring.models import Account, CreditHistoryEntry, EpochScore

__all__ = [
    "MAX_CREDITS_PER_EPOCH",
    "MAX_CREDITS_PER_SLOT",
    "SLOTS_PER_EPOCH",
    "Account",
    "CreditHistoryEntry",
    "EpochScore",
    "calculate_epoch_score",
    "earned_credits",
    "max_credits_for_epoch",
]
