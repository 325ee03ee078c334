"""
SQLAlchemy table for persisted epoch scores.

timely_vote_credits(alias, epoch) is the only uniqueness constraint; one row
per validator alias per epoch.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, Double, Text
from sqlalchemy.orm import declarative_base

from timely_credits.scoring.models import EpochScore

Base = declarative_base()


class TimelyVoteCredit(Base):
    """One epoch score row. Upserted on every refresh tick."""

    __tablename__ = "timely_vote_credits"

    alias = Column(Text, primary_key=True)
    epoch = Column(BigInteger, primary_key=True, autoincrement=False)
    earned_credits = Column(BigInteger, nullable=False)
    max_possible_credits = Column(BigInteger, nullable=False)
    score = Column(Double, nullable=False)

    def to_epoch_score(self) -> EpochScore:
        return EpochScore(
            alias=self.alias,
            epoch=int(self.epoch),
            earned_credits=int(self.earned_credits),
            max_possible_credits=int(self.max_possible_credits),
            score=float(self.score),
        )
