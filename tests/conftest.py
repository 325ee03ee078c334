"""
Pytest fixtures for timely credits tests. Uses a temporary SQLite DB for the score store.

Test modules request helpers as fixtures (vote_state, fake_rpc, flaky_store)
rather than importing from this file.
"""

from __future__ import annotations

import struct
from typing import Callable

import pytest

from timely_credits.core.exceptions import StoreError
from timely_credits.database.database import SQLAlchemyScoreStore
from timely_credits.scoring.models import EpochScore

_NODE_KEY = bytes([1]) * 32
_WITHDRAWER_KEY = bytes([2]) * 32
_VOTER_KEY = bytes([3]) * 32


def _build_vote_state(
    epoch_credits: list[tuple[int, int, int]],
    *,
    version: int = 2,
    votes: int = 3,
    root_slot: int | None = 1000,
    authorized_voters: int = 1,
    commission: int = 7,
    padding: int = 0,
    node_key: bytes = _NODE_KEY,
    withdrawer_key: bytes = _WITHDRAWER_KEY,
) -> bytes:
    """Serialize a vote account the way the vote program lays it out on chain."""
    out = struct.pack("<I", version)
    root = b"\x00" if root_slot is None else b"\x01" + struct.pack("<Q", root_slot)
    if version == 0:
        voter = _VOTER_KEY if authorized_voters else bytes(32)
        out += node_key + voter + struct.pack("<Q", 5)
        out += bytes(32 * 56) + struct.pack("<Q", 0)
        out += withdrawer_key + bytes([commission])
        out += struct.pack("<Q", votes) + bytes(votes * 12)
        out += root
    else:
        vote_len = 13 if version == 2 else 12
        out += node_key + withdrawer_key + bytes([commission])
        out += struct.pack("<Q", votes) + bytes(votes * vote_len)
        out += root
        out += struct.pack("<Q", authorized_voters)
        out += (struct.pack("<Q", 600) + _VOTER_KEY) * authorized_voters
        out += bytes(32 * 48) + struct.pack("<Q", 0) + b"\x01"
    out += struct.pack("<Q", len(epoch_credits))
    for epoch, credits, prev in epoch_credits:
        out += struct.pack("<QQQ", epoch, credits, prev)
    out += struct.pack("<Qq", 123_456, 1_700_000_000)
    return out + bytes(padding)


class _FakeRpc:
    """In-memory get_account: address -> bytes, or an exception to raise.

    on_fetch, when given, is called with the address before each lookup.
    Usable as a context manager in place of SolanaRpcClient.
    """

    def __init__(
        self,
        accounts: dict[str, bytes | Exception],
        on_fetch: Callable[[str], None] | None = None,
    ) -> None:
        self.accounts = accounts
        self.on_fetch = on_fetch
        self.calls: list[str] = []
        self.closed = False

    def get_account(self, address: str) -> bytes:
        self.calls.append(address)
        if self.on_fetch is not None:
            self.on_fetch(address)
        value = self.accounts[address]
        if isinstance(value, Exception):
            raise value
        return value

    def __enter__(self) -> "_FakeRpc":
        return self

    def __exit__(self, *exc) -> None:
        self.closed = True


class _FlakyStore:
    """Wraps a real store; raises StoreError when upserting the listed epochs."""

    def __init__(self, inner: SQLAlchemyScoreStore, failing_epochs: set[int]) -> None:
        self.inner = inner
        self.failing_epochs = failing_epochs

    def upsert(self, score: EpochScore) -> None:
        if score.epoch in self.failing_epochs:
            raise StoreError("connection lost", alias=score.alias, epoch=score.epoch)
        self.inner.upsert(score)


@pytest.fixture
def store(tmp_path):
    """Fresh SQLite-backed score store with the table created."""
    s = SQLAlchemyScoreStore.from_url(f"sqlite:///{tmp_path / 'scores.db'}")
    s.ensure_schema()
    yield s
    s.close()


@pytest.fixture
def vote_state():
    """Factory fixture: vote_state(epoch_credits, **layout) -> raw account bytes."""
    return _build_vote_state


@pytest.fixture
def fake_rpc():
    """Factory fixture: fake_rpc({address: bytes | Exception}, on_fetch=None)."""
    return _FakeRpc


@pytest.fixture
def flaky_store(store):
    """Factory fixture: flaky_store(failing_epochs) wrapping the tmp SQLite store."""

    def make(failing_epochs: set[int]) -> _FlakyStore:
        return _FlakyStore(store, failing_epochs)

    return make
