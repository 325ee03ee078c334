#!/usr/bin/env python3
"""
Fetch and decode one vote account; print its epoch credits and scores.

Read-only: nothing is written to the store.

Usage:
  python -m timely_credits.tools.inspect_vote_account Chorus6Kis8tFHA7AowrPMcRJk3LbApHTYpgSNXzY5KE
  python -m timely_credits.tools.inspect_vote_account <ADDRESS> --rpc-url https://api.devnet.solana.com
"""

from __future__ import annotations

import argparse
import os
import sys

from timely_credits.config.env import load_agent_env
from timely_credits.core.exceptions import DecodeError, InvalidAddress, MalformedHistory, RpcError
from timely_credits.scoring.calculator import SLOTS_PER_EPOCH, calculate_epoch_score, max_credits_for_epoch
from timely_credits.solana_rpc.client import SolanaRpcClient
from timely_credits.solana_rpc.vote_state import decode_vote_state

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"

SEP = "=" * 60


def main(argv: list[str] | None = None) -> int:
    load_agent_env()
    parser = argparse.ArgumentParser(description="Inspect a Solana vote account's epoch credits.")
    parser.add_argument("address", help="Base58 vote account address")
    parser.add_argument(
        "--rpc-url",
        default=(os.getenv("SOLANA_RPC_URL") or "").strip() or MAINNET_RPC_URL,
        help="Solana RPC endpoint (default: $SOLANA_RPC_URL or mainnet-beta)",
    )
    parser.add_argument("--timeout", type=float, default=30.0, help="RPC timeout in seconds")
    parser.add_argument("--slots-per-epoch", type=int, default=SLOTS_PER_EPOCH)
    args = parser.parse_args(argv)

    try:
        with SolanaRpcClient(args.rpc_url, timeout_sec=args.timeout) as rpc:
            raw = rpc.get_account(args.address)
        state = decode_vote_state(raw)
    except (InvalidAddress, RpcError, DecodeError) as e:
        print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    max_credits = max_credits_for_epoch(args.slots_per_epoch)
    print(SEP)
    print(f"vote account     {args.address}")
    print(f"layout version   {state.version}")
    print(f"node pubkey      {state.node_pubkey}")
    print(f"withdrawer       {state.authorized_withdrawer}")
    print(f"commission       {state.commission}%")
    print(f"root slot        {state.root_slot}")
    print(f"last timestamp   {state.last_timestamp} (slot {state.last_timestamp_slot})")
    print(SEP)
    print(f"{'epoch':>8} {'credits':>14} {'prev':>14} {'earned':>10} {'score':>8}")
    for entry in state.epoch_credits:
        try:
            s = calculate_epoch_score(args.address, entry, max_credits)
            earned, score = str(s.earned_credits), f"{s.score:.2f}"
        except MalformedHistory:
            earned, score = "malformed", "-"
        print(
            f"{entry.epoch:>8} {entry.cumulative_credits:>14} "
            f"{entry.previous_cumulative_credits:>14} {earned:>10} {score:>8}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
