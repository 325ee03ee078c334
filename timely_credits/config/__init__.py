"""
Configuration management for the timely vote credits agent.

Loads and validates settings from the TOML config file and environment
variables. Exposes a single source of truth for all service configuration.
"""

from timely_credits.config.settings import Settings, load_settings, parse_settings  # noqa: F401

__all__ = ["Settings", "load_settings", "parse_settings"]
