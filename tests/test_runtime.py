"""
Tests for RefreshScheduler: tick isolation, state machine, stop, signal
handling, run_loop wiring and CLI exit codes.
"""

from __future__ import annotations

import signal
import threading

import pytest

from timely_credits.agent_worker import runtime
from timely_credits.agent_worker.processor import AccountResult, process_account
from timely_credits.agent_worker.runtime import (
    RefreshScheduler,
    SchedulerState,
    _install_signal_handlers,
    main,
    run_loop,
)
from timely_credits.config.settings import parse_settings
from timely_credits.core.exceptions import RpcTransportError
from timely_credits.database.database import get_store
from timely_credits.scoring.models import Account

VOTE_ACCOUNT_A = "Chorus6Kis8tFHA7AowrPMcRJk3LbApHTYpgSNXzY5KE"
VOTE_ACCOUNT_B = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
VOTE_ACCOUNT_C = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"

ACCOUNTS = [
    Account(alias="A", address=VOTE_ACCOUNT_A),
    Account(alias="B", address=VOTE_ACCOUNT_B),
    Account(alias="C", address=VOTE_ACCOUNT_C),
]


@pytest.fixture
def rpc(fake_rpc, vote_state):
    """A scores 100, B fails at the transport, C scores 50."""
    return fake_rpc(
        {
            VOTE_ACCOUNT_A: vote_state([(10, 6_912_000, 0)]),
            VOTE_ACCOUNT_B: RpcTransportError("connection reset"),
            VOTE_ACCOUNT_C: vote_state([(10, 3_456_000, 0)]),
        }
    )


@pytest.fixture
def saved_signal_handlers():
    """Restore the process SIGINT/SIGTERM handlers after the test."""
    saved = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    yield saved
    for sig, handler in saved.items():
        signal.signal(sig, handler)


def test_failing_account_does_not_block_others(store, rpc):
    scheduler = RefreshScheduler(ACCOUNTS, rpc, store, concurrency=3)
    report = scheduler.run_tick()
    assert report.tick == 1
    assert report.succeeded == 2
    assert report.failed == 1
    assert store.get_score("A", 10).score == 100.0
    assert store.get_score("C", 10).score == 50.0
    assert store.list_scores("B") == []
    failed = [r for r in report.results if not r.ok]
    assert failed[0].alias == "B"
    assert failed[0].error_kind == "RpcTransportError"


def test_sequential_tick(store, rpc):
    report = RefreshScheduler(ACCOUNTS, rpc, store, concurrency=1).run_tick()
    assert sorted(r.alias for r in report.results) == ["A", "B", "C"]


def test_unexpected_processor_exception_is_contained(store, rpc):
    def process(account, rpc, store, **kwargs):
        if account.alias == "A":
            raise RuntimeError("bug")
        return process_account(account, rpc, store, **kwargs)

    scheduler = RefreshScheduler(ACCOUNTS, rpc, store, process=process)
    report = scheduler.run_tick()
    a = next(r for r in report.results if r.alias == "A")
    assert a.error_kind == "RuntimeError"
    assert store.get_score("C", 10) is not None
    assert scheduler.state is SchedulerState.IDLE


def test_state_is_running_during_tick(store, rpc):
    seen: list[SchedulerState] = []

    def process(account, rpc, store, **kwargs):
        seen.append(scheduler.state)
        return AccountResult(alias=account.alias)

    scheduler = RefreshScheduler(ACCOUNTS, rpc, store, process=process)
    assert scheduler.state is SchedulerState.IDLE
    scheduler.run_tick()
    assert seen == [SchedulerState.RUNNING] * 3
    assert scheduler.state is SchedulerState.IDLE


def test_worker_state_counters(store, rpc):
    scheduler = RefreshScheduler(ACCOUNTS, rpc, store)
    scheduler.run_tick()
    scheduler.run_tick()
    ws = scheduler.worker_state
    assert ws.ticks == 2
    assert ws.accounts_succeeded == 4
    assert ws.accounts_failed == 2
    assert ws.epochs_written == 4
    assert ws.last_error.startswith("B:")


def test_run_forever_stops_after_stop(store, rpc):
    ticks: list[int] = []

    def process(account, rpc, store, **kwargs):
        if account.alias == "A":
            ticks.append(scheduler.worker_state.ticks)
            if len(ticks) == 2:
                scheduler.stop()
        return AccountResult(alias=account.alias)

    scheduler = RefreshScheduler(ACCOUNTS, rpc, store, interval_sec=0.01, process=process)
    worker = threading.Thread(target=scheduler.run_forever)
    worker.start()
    worker.join(timeout=10)
    assert not worker.is_alive()
    assert ticks == [1, 2]
    assert scheduler.state is SchedulerState.IDLE


def test_stop_interrupts_wait(store, rpc):
    scheduler = RefreshScheduler(ACCOUNTS, rpc, store, interval_sec=3600)
    worker = threading.Thread(target=scheduler.run_forever)
    worker.start()
    while scheduler.worker_state.last_tick_finished_at is None and worker.is_alive():
        worker.join(timeout=0.01)
    scheduler.stop()
    worker.join(timeout=10)
    assert not worker.is_alive()
    assert scheduler.worker_state.ticks == 1


def test_stop_before_start_runs_no_tick(store, rpc):
    scheduler = RefreshScheduler(ACCOUNTS, rpc, store)
    scheduler.stop()
    scheduler.run_forever()
    assert scheduler.worker_state.ticks == 0


@pytest.mark.parametrize("signum", [signal.SIGTERM, signal.SIGINT])
def test_signal_handler_requests_stop(store, rpc, saved_signal_handlers, signum):
    scheduler = RefreshScheduler(ACCOUNTS, rpc, store)
    _install_signal_handlers(scheduler)
    handler = signal.getsignal(signum)
    assert handler is not saved_signal_handlers[signum]
    assert not scheduler.stopped
    handler(signum, None)
    assert scheduler.stopped


def test_run_loop_finishes_in_flight_tick_on_sigterm(tmp_path, monkeypatch, fake_rpc, vote_state):
    db_url = f"sqlite:///{tmp_path / 'loop.db'}"
    settings = parse_settings(
        {
            "rpc_url": "http://localhost:8899",
            "rpc_timeout_seconds": 5,
            "refresh_interval_seconds": 3600,
            "concurrency": 1,
            "database_url": db_url,
            "accounts": [
                {"alias": "A", "address": VOTE_ACCOUNT_A},
                {"alias": "C", "address": VOTE_ACCOUNT_C},
            ],
        }
    )
    handlers: dict[int, object] = {}
    monkeypatch.setattr(runtime.signal, "signal", lambda sig, handler: handlers.__setitem__(sig, handler))

    def deliver_sigterm(address: str) -> None:
        # Delivered while the first account of the first tick is being fetched
        if address == VOTE_ACCOUNT_A:
            handlers[signal.SIGTERM](signal.SIGTERM, None)

    client = fake_rpc(
        {
            VOTE_ACCOUNT_A: vote_state([(10, 6_912_000, 0)]),
            VOTE_ACCOUNT_C: vote_state([(10, 3_456_000, 0)]),
        },
        on_fetch=deliver_sigterm,
    )
    monkeypatch.setattr(runtime, "SolanaRpcClient", lambda url, timeout_sec: client)

    worker = threading.Thread(target=run_loop, args=(settings,))
    worker.start()
    worker.join(timeout=10)

    assert not worker.is_alive()
    assert set(handlers) == {signal.SIGINT, signal.SIGTERM}
    assert sorted(client.calls) == sorted([VOTE_ACCOUNT_A, VOTE_ACCOUNT_C])
    assert client.closed
    store = get_store(db_url)
    try:
        assert store.get_score("A", 10).score == 100.0
        assert store.get_score("C", 10).score == 50.0
    finally:
        store.close()


def test_main_missing_config_is_fatal(tmp_path):
    assert main(["--config", str(tmp_path / "missing.toml")]) == 1


def test_main_invalid_config_is_fatal(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('rpc_url = "http://localhost:8899"\nrpc_timeout_seconds = 0\naccounts = []\n')
    assert main(["--config", str(path)]) == 1
