"""
Main entrypoint: timely vote credits refresh loop in the foreground.

Loads config.toml (or --config / CONFIG_PATH), connects to the score store,
and refreshes every configured vote account every refresh_interval_seconds
until SIGINT/SIGTERM.

Env: CONFIG_PATH, SOLANA_RPC_URL, DATABASE_URL or DB_PATH, LOG_LEVEL, LOG_FORMAT.
"""

import sys

from timely_credits.agent_worker.runtime import main

if __name__ == "__main__":
    sys.exit(main())
