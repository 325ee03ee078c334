"""
Solana RPC access: getAccountInfo client and VoteState decoder.
"""

from timely_credits.solana_rpc.client import SolanaRpcClient, resolve_address
from timely_credits.solana_rpc.vote_state import (
    VoteStateSnapshot,
    decode_epoch_credits,
    decode_vote_state,
)

__all__ = [
    "SolanaRpcClient",
    "VoteStateSnapshot",
    "decode_epoch_credits",
    "decode_vote_state",
    "resolve_address",
]
