"""
Agent worker: per-account processor and the periodic refresh scheduler.
"""

from timely_credits.agent_worker.processor import AccountResult, EpochFailure, process_account
from timely_credits.agent_worker.runtime import (
    RefreshScheduler,
    SchedulerState,
    TickReport,
    WorkerState,
    run_loop,
)

__all__ = [
    "AccountResult",
    "EpochFailure",
    "RefreshScheduler",
    "SchedulerState",
    "TickReport",
    "WorkerState",
    "process_account",
    "run_loop",
]
