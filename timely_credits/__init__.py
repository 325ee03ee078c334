"""
Timely vote credits agent: per-epoch performance scores for Solana vote accounts.

Runs 24/7: fetches each configured vote account, decodes its epoch credit
history, converts every epoch into a 0-100 score under the timely vote
credits reward model, and upserts the scores into the timely_vote_credits table.
"""

__version__ = "0.1.0"
