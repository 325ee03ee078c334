"""
Environment variable loading for the agent.

- CONFIG_PATH: TOML config file (default: config.toml)
- SOLANA_RPC_URL: overrides rpc_url from the config file
- DATABASE_URL / DB_PATH: score store location (PostgreSQL URL or SQLite file)
- REFRESH_INTERVAL_SECONDS: overrides refresh_interval_seconds
- LOG_LEVEL / LOG_FORMAT: read by timely_credits.logging after .env is loaded
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is timely_credits/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_CONFIG_PATH = "config.toml"


def load_agent_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set vars."""
    load_dotenv(_ENV_PATH, override=False)


def get_config_path() -> Path:
    """Return CONFIG_PATH from env, or config.toml in the working directory."""
    load_agent_env()
    return Path((os.getenv("CONFIG_PATH") or "").strip() or DEFAULT_CONFIG_PATH)


def get_env_overrides() -> dict[str, str]:
    """
    Return config-file keys overridden by the environment.

    Only non-empty variables are returned; values are raw strings and are
    validated together with the file contents.
    """
    load_agent_env()
    mapping = {
        "SOLANA_RPC_URL": "rpc_url",
        "DATABASE_URL": "database_url",
        "REFRESH_INTERVAL_SECONDS": "refresh_interval_seconds",
    }
    overrides: dict[str, str] = {}
    for env_name, key in mapping.items():
        value = (os.getenv(env_name) or "").strip()
        if value:
            overrides[key] = value
    return overrides


def mask_rpc_url(url: str) -> str:
    """Mask API keys embedded in provider RPC URLs for logging."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
