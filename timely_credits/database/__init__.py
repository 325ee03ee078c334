"""
Database layer: timely_vote_credits table and the ScoreStore contract.

PostgreSQL in production (DATABASE_URL); SQLite for local runs and tests.
"""

from timely_credits.database.database import (
    ScoreStore,
    SQLAlchemyScoreStore,
    get_store,
    normalize_database_url,
)
from timely_credits.database.models import TimelyVoteCredit

__all__ = [
    "ScoreStore",
    "SQLAlchemyScoreStore",
    "TimelyVoteCredit",
    "get_store",
    "normalize_database_url",
]
