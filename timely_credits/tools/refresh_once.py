#!/usr/bin/env python3
"""
Run exactly one refresh tick over all configured accounts, then exit.

Useful to backfill the timely_vote_credits table or to check a new config
before starting the long-running agent.

Exit codes: 0 all accounts succeeded, 2 some accounts/epochs failed,
1 fatal startup error (bad config, store unreachable).

Usage:
  python -m timely_credits.tools.refresh_once --config config.toml
"""

from __future__ import annotations

import argparse
import sys

from timely_credits.agent_worker.runtime import build_scheduler, open_store
from timely_credits.config.settings import load_settings
from timely_credits.core.exceptions import ConfigError, StoreError
from timely_credits.logging import get_logger
from timely_credits.solana_rpc.client import SolanaRpcClient

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run one timely vote credits refresh tick.")
    parser.add_argument("--config", default=None, help="TOML config file (default: $CONFIG_PATH or config.toml)")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
        store = open_store(settings)
    except (ConfigError, StoreError) as e:
        logger.error("refresh_once_fatal", error_kind=type(e).__name__, error=str(e))
        return EXIT_FATAL

    try:
        with SolanaRpcClient(settings.rpc_url, timeout_sec=settings.rpc_timeout_seconds) as rpc:
            report = build_scheduler(settings, rpc, store).run_tick()
    finally:
        store.close()

    for r in sorted(report.results, key=lambda r: r.alias):
        status = "ok" if r.ok else "FAILED"
        detail = r.error or ", ".join(f"epoch {f.epoch}: {f.kind}" for f in r.failures)
        print(f"{r.alias:<24} {status:<7} epochs_written={r.epochs_written} {detail}".rstrip())
    return EXIT_OK if report.failed == 0 else EXIT_PARTIAL


if __name__ == "__main__":
    sys.exit(main())
