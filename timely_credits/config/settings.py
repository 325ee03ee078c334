"""
Agent settings loaded from a TOML config file plus environment overrides.

Example config.toml:

    rpc_url = "https://api.mainnet-beta.solana.com"
    rpc_timeout_seconds = 30

    [[accounts]]
    alias = "chorus-one"
    address = "Chorus6Kis8tFHA7AowrPMcRJk3LbApHTYpgSNXzY5KE"

Optional keys: refresh_interval_seconds (300), concurrency (4),
slots_per_epoch (432000), database_url.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from timely_credits.config.env import get_config_path, get_env_overrides
from timely_credits.core.exceptions import ConfigError
from timely_credits.scoring.calculator import SLOTS_PER_EPOCH, max_credits_for_epoch
from timely_credits.scoring.models import Account

DEFAULT_REFRESH_INTERVAL_SEC = 300
DEFAULT_CONCURRENCY = 4


class AccountConfig(BaseModel):
    """One [[accounts]] entry."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    alias: str = Field(min_length=1)
    address: str = Field(min_length=1)

    def to_account(self) -> Account:
        return Account(alias=self.alias, address=self.address)


class Settings(BaseModel):
    """Validated agent configuration. Immutable for the process lifetime."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    rpc_url: str = Field(min_length=1)
    rpc_timeout_seconds: int = Field(gt=0)
    accounts: list[AccountConfig] = Field(min_length=1)
    refresh_interval_seconds: float = Field(default=DEFAULT_REFRESH_INTERVAL_SEC, ge=1)
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)
    slots_per_epoch: int = Field(default=SLOTS_PER_EPOCH, gt=0)
    database_url: str | None = None

    @field_validator("accounts")
    @classmethod
    def _aliases_unique(cls, accounts: list[AccountConfig]) -> list[AccountConfig]:
        seen: set[str] = set()
        for acc in accounts:
            if acc.alias in seen:
                raise ValueError(f"duplicate account alias: {acc.alias}")
            seen.add(acc.alias)
        return accounts

    @property
    def account_list(self) -> list[Account]:
        return [a.to_account() for a in self.accounts]

    @property
    def max_possible_credits(self) -> int:
        return max_credits_for_epoch(self.slots_per_epoch)


def parse_settings(data: dict[str, Any]) -> Settings:
    """Validate a raw config mapping. Raises ConfigError with all validation errors."""
    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e


def load_settings(path: str | Path | None = None, *, apply_env: bool = True) -> Settings:
    """
    Read and validate the TOML config file.

    Args:
        path: Config file; defaults to CONFIG_PATH env or config.toml.
        apply_env: Apply SOLANA_RPC_URL / DATABASE_URL / REFRESH_INTERVAL_SECONDS overrides.

    Raises:
        ConfigError: file missing or unreadable, TOML syntax error, or invalid values.
    """
    config_path = Path(path) if path is not None else get_config_path()
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"config file not found: {config_path}") from e
    except OSError as e:
        raise ConfigError(f"cannot read config file {config_path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML in {config_path}: {e}") from e
    if apply_env:
        data.update(get_env_overrides())
    return parse_settings(data)
