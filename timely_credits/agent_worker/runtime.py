"""
Persistent refresh loop for the timely vote credits agent.

Runs as a separate process (CLI entrypoint). Every tick passes each configured
account to the account processor (bounded thread pool), waits for every result,
then sleeps refresh_interval_seconds measured from the end of the tick.
Exception isolation per account; loop never crashes. Safe shutdown on
SIGINT/SIGTERM: the in-flight tick is finished, then the loop exits.

Usage: python -m timely_credits.agent_worker.runtime --config config.toml
"""

from __future__ import annotations

import argparse
import enum
import signal
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from timely_credits.agent_worker.processor import AccountFetcher, AccountResult, process_account
from timely_credits.config.env import mask_rpc_url
from timely_credits.config.settings import DEFAULT_CONCURRENCY, DEFAULT_REFRESH_INTERVAL_SEC, Settings, load_settings
from timely_credits.core.exceptions import ConfigError, StoreError
from timely_credits.database.database import ScoreStore, get_store
from timely_credits.logging import get_logger
from timely_credits.scoring.calculator import MAX_CREDITS_PER_EPOCH
from timely_credits.scoring.models import Account
from timely_credits.solana_rpc.client import SolanaRpcClient

logger = get_logger(__name__)

MIN_REFRESH_INTERVAL_SEC = 1.0

ProcessFn = Callable[..., AccountResult]


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class TickReport:
    """Results of one refresh tick, one AccountResult per configured account."""

    tick: int
    results: list[AccountResult] = field(default_factory=list)
    duration_sec: float = 0.0

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded


@dataclass
class WorkerState:
    """Mutable counters for heartbeat and monitoring."""

    ticks: int = 0
    last_tick_started_at: float | None = None
    last_tick_finished_at: float | None = None
    accounts_succeeded: int = 0
    accounts_failed: int = 0
    epochs_written: int = 0
    last_error: str | None = None


class RefreshScheduler:
    """
    Periodic driver over the configured account set.

    Two states: IDLE between ticks, RUNNING during a tick. No terminal state;
    run_forever() returns only after stop().
    """

    def __init__(
        self,
        accounts: Sequence[Account],
        rpc: AccountFetcher,
        store: ScoreStore,
        *,
        interval_sec: float = DEFAULT_REFRESH_INTERVAL_SEC,
        concurrency: int = DEFAULT_CONCURRENCY,
        max_possible_credits: int = MAX_CREDITS_PER_EPOCH,
        process: ProcessFn = process_account,
    ) -> None:
        self._accounts = tuple(accounts)
        self._rpc = rpc
        self._store = store
        self._interval_sec = max(MIN_REFRESH_INTERVAL_SEC, float(interval_sec))
        self._concurrency = max(1, min(int(concurrency), max(1, len(self._accounts))))
        self._max_possible_credits = max_possible_credits
        self._process = process
        self._stop_event = threading.Event()
        self._state = SchedulerState.IDLE
        self.worker_state = WorkerState()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval_sec(self) -> float:
        return self._interval_sec

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request shutdown; wakes the inter-tick wait immediately."""
        self._stop_event.set()

    def _process_safe(self, account: Account) -> AccountResult:
        """Run the processor for one account; convert unexpected exceptions into a failed result."""
        try:
            return self._process(
                account,
                self._rpc,
                self._store,
                max_possible_credits=self._max_possible_credits,
            )
        except Exception as e:
            logger.exception("account_unexpected_error", alias=account.alias, error=str(e))
            return AccountResult(alias=account.alias, error=str(e), error_kind=type(e).__name__)

    def run_tick(self) -> TickReport:
        """Process every account once and wait for all results."""
        ws = self.worker_state
        ws.ticks += 1
        report = TickReport(tick=ws.ticks)
        start = time.monotonic()
        ws.last_tick_started_at = time.time()
        self._state = SchedulerState.RUNNING
        logger.info("refresh_tick_started", tick=ws.ticks, accounts=len(self._accounts))
        try:
            with ThreadPoolExecutor(max_workers=self._concurrency) as executor:
                futures = {executor.submit(self._process_safe, a): a for a in self._accounts}
                for fut in as_completed(futures):
                    report.results.append(fut.result())
        finally:
            self._state = SchedulerState.IDLE
            ws.last_tick_finished_at = time.time()

        report.duration_sec = round(time.monotonic() - start, 3)
        ws.accounts_succeeded += report.succeeded
        ws.accounts_failed += report.failed
        ws.epochs_written += sum(r.epochs_written for r in report.results)
        for r in report.results:
            if r.error:
                ws.last_error = f"{r.alias}: {r.error}"
            elif r.failures:
                ws.last_error = f"{r.alias} epoch {r.failures[-1].epoch}: {r.failures[-1].error}"
        logger.info(
            "refresh_tick_done",
            tick=report.tick,
            succeeded=report.succeeded,
            failed=report.failed,
            epochs_written=sum(r.epochs_written for r in report.results),
            duration_sec=report.duration_sec,
        )
        return report

    def run_forever(self) -> None:
        """Tick, then wait interval_sec after completion; repeat until stop()."""
        logger.info(
            "scheduler_started",
            accounts=len(self._accounts),
            interval_sec=self._interval_sec,
            concurrency=self._concurrency,
        )
        while not self._stop_event.is_set():
            try:
                self.run_tick()
            except Exception as e:
                self.worker_state.last_error = str(e)
                logger.exception("refresh_tick_failed", tick=self.worker_state.ticks, error=str(e))
            logger.debug(
                "scheduler_heartbeat",
                ticks=self.worker_state.ticks,
                accounts_succeeded=self.worker_state.accounts_succeeded,
                accounts_failed=self.worker_state.accounts_failed,
                last_error=self.worker_state.last_error,
            )
            if self._stop_event.wait(timeout=self._interval_sec):
                break
        logger.info("scheduler_stopped", ticks=self.worker_state.ticks)


def build_scheduler(
    settings: Settings,
    rpc: AccountFetcher,
    store: ScoreStore,
) -> RefreshScheduler:
    return RefreshScheduler(
        settings.account_list,
        rpc,
        store,
        interval_sec=settings.refresh_interval_seconds,
        concurrency=settings.concurrency,
        max_possible_credits=settings.max_possible_credits,
    )


def open_store(settings: Settings) -> ScoreStore:
    """Create the store and make sure the table exists. Raises StoreError if unreachable."""
    store = get_store(settings.database_url)
    store.ensure_schema()
    return store


def _install_signal_handlers(scheduler: RefreshScheduler) -> None:
    def request_shutdown(signum: int, frame: Any) -> None:
        logger.info("runtime_shutdown_signal", signal=signal.Signals(signum).name)
        scheduler.stop()

    try:
        signal.signal(signal.SIGINT, request_shutdown)
        signal.signal(signal.SIGTERM, request_shutdown)
    except (AttributeError, ValueError) as e:
        # Not in main thread, or unsupported platform
        logger.warning("runtime_signal_handlers_unavailable", error=str(e))


def run_loop(settings: Settings) -> None:
    """Wire RPC client and store from settings, then refresh until a shutdown signal."""
    store = open_store(settings)
    try:
        with SolanaRpcClient(settings.rpc_url, timeout_sec=settings.rpc_timeout_seconds) as rpc:
            logger.info(
                "runtime_worker_started",
                rpc_url=mask_rpc_url(settings.rpc_url),
                rpc_timeout_sec=settings.rpc_timeout_seconds,
                accounts=[a.alias for a in settings.accounts],
            )
            scheduler = build_scheduler(settings, rpc, store)
            _install_signal_handlers(scheduler)
            scheduler.run_forever()
    finally:
        store.close()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timely-credits",
        description="Refresh timely vote credit scores for configured Solana vote accounts.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the TOML config file (default: $CONFIG_PATH or config.toml)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint: load config and run the refresh loop. 1 on fatal startup error."""
    args = build_arg_parser().parse_args(argv)
    try:
        settings = load_settings(args.config)
        run_loop(settings)
        return 0
    except (ConfigError, StoreError) as e:
        logger.error("runtime_fatal", error_kind=type(e).__name__, error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("runtime_keyboard_interrupt")
        return 0


if __name__ == "__main__":
    sys.exit(main())
