"""
Structured logging for the timely vote credits agent.

JSON logs with timestamp, alias, epoch, event_type.
Use get_logger() in all agent modules for aggregation-friendly output.
"""

from timely_credits.logging.logger import bind_account, configure_logging, get_logger

__all__ = ["bind_account", "configure_logging", "get_logger"]
