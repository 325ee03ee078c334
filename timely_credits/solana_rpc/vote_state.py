"""
Minimal VoteState account decoder: epoch credits and header fields.

Vote accounts are bincode-serialized (little-endian; u32 enum tag; u64 length
prefix for Vec/VecDeque; u8 tag for Option; fixed arrays without prefix).
Only the fields needed to reach epoch_credits are walked; trailing account
padding is ignored.

Layouts by version tag:
  0  V0_23_5   node_pubkey, authorized_voter, authorized_voter_epoch,
               prior_voters[32 x (pubkey, u64, u64, u64)] + idx,
               authorized_withdrawer, commission, votes[n x 12], root_slot,
               epoch_credits, last_timestamp
  1  V1_14_11  node_pubkey, authorized_withdrawer, commission, votes[n x 12],
               root_slot, authorized_voters[n x (u64, pubkey)],
               prior_voters[32 x (pubkey, u64, u64)] + idx + is_empty,
               epoch_credits, last_timestamp
  2  Current   as V1_14_11 but votes are landed votes [n x (u8 latency + 12)]
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from solders.pubkey import Pubkey

from timely_credits.core.exceptions import DecodeError
from timely_credits.scoring.models import CreditHistoryEntry

VERSION_0_23_5 = 0
VERSION_1_14_11 = 1
VERSION_CURRENT = 2

PUBKEY_LEN = 32
LOCKOUT_LEN = 8 + 4  # slot u64, confirmation_count u32
LANDED_VOTE_LEN = 1 + LOCKOUT_LEN  # latency u8 + lockout
AUTHORIZED_VOTER_LEN = 8 + PUBKEY_LEN
EPOCH_CREDITS_LEN = 8 * 3
PRIOR_VOTERS_MAX = 32
PRIOR_VOTER_LEN_0_23_5 = PUBKEY_LEN + 8 * 3
PRIOR_VOTER_LEN = PUBKEY_LEN + 8 * 2


@dataclass
class VoteStateSnapshot:
    """Decoded subset of a vote account."""

    version: int
    node_pubkey: str
    authorized_withdrawer: str
    commission: int
    root_slot: int | None
    epoch_credits: list[CreditHistoryEntry] = field(default_factory=list)
    last_timestamp_slot: int = 0
    last_timestamp: int = 0
    """Unix seconds of the last vote timestamp."""


class _Reader:
    """Bounds-checked cursor over account bytes."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self.pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self.pos

    def take(self, n: int) -> bytes:
        if n < 0 or n > self.remaining:
            raise DecodeError(
                f"vote state truncated at offset {self.pos}: need {n} bytes, have {self.remaining}"
            )
        out = self._data[self.pos : self.pos + n]
        self.pos += n
        return out

    def skip(self, n: int) -> None:
        self.take(n)

    def u8(self) -> int:
        return self.take(1)[0]

    def u32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.take(8))[0]

    def i64(self) -> int:
        return struct.unpack("<q", self.take(8))[0]

    def pubkey(self) -> Pubkey:
        return Pubkey.from_bytes(self.take(PUBKEY_LEN))

    def length(self, item_len: int, what: str) -> int:
        """Read a u64 length prefix and check that n items fit in the buffer."""
        n = self.u64()
        if n * item_len > self.remaining:
            raise DecodeError(
                f"{what} length {n} exceeds remaining {self.remaining} bytes at offset {self.pos}"
            )
        return n

    def option_u64(self) -> int | None:
        tag = self.u8()
        if tag == 0:
            return None
        if tag == 1:
            return self.u64()
        raise DecodeError(f"invalid Option tag {tag} at offset {self.pos - 1}")

    def boolean(self) -> bool:
        b = self.u8()
        if b > 1:
            raise DecodeError(f"invalid bool {b} at offset {self.pos - 1}")
        return b == 1


def _read_epoch_credits(r: _Reader) -> list[CreditHistoryEntry]:
    n = r.length(EPOCH_CREDITS_LEN, "epoch_credits")
    entries: list[CreditHistoryEntry] = []
    for _ in range(n):
        epoch = r.u64()
        credits = r.u64()
        prev_credits = r.u64()
        entries.append(
            CreditHistoryEntry(
                epoch=epoch,
                cumulative_credits=credits,
                previous_cumulative_credits=prev_credits,
            )
        )
    return entries


def _decode_0_23_5(r: _Reader) -> VoteStateSnapshot:
    node_pubkey = r.pubkey()
    authorized_voter = r.pubkey()
    r.u64()  # authorized_voter_epoch
    r.skip(PRIOR_VOTERS_MAX * PRIOR_VOTER_LEN_0_23_5)
    r.u64()  # prior_voters.idx
    authorized_withdrawer = r.pubkey()
    commission = r.u8()
    votes = r.length(LOCKOUT_LEN, "votes")
    r.skip(votes * LOCKOUT_LEN)
    root_slot = r.option_u64()
    epoch_credits = _read_epoch_credits(r)
    ts_slot = r.u64()
    ts = r.i64()
    if authorized_voter == Pubkey.default():
        raise DecodeError("vote account is uninitialized")
    return VoteStateSnapshot(
        version=VERSION_0_23_5,
        node_pubkey=str(node_pubkey),
        authorized_withdrawer=str(authorized_withdrawer),
        commission=commission,
        root_slot=root_slot,
        epoch_credits=epoch_credits,
        last_timestamp_slot=ts_slot,
        last_timestamp=ts,
    )


def _decode_modern(r: _Reader, version: int) -> VoteStateSnapshot:
    node_pubkey = r.pubkey()
    authorized_withdrawer = r.pubkey()
    commission = r.u8()
    vote_len = LANDED_VOTE_LEN if version == VERSION_CURRENT else LOCKOUT_LEN
    votes = r.length(vote_len, "votes")
    r.skip(votes * vote_len)
    root_slot = r.option_u64()
    voters = r.length(AUTHORIZED_VOTER_LEN, "authorized_voters")
    r.skip(voters * AUTHORIZED_VOTER_LEN)
    r.skip(PRIOR_VOTERS_MAX * PRIOR_VOTER_LEN)
    r.u64()  # prior_voters.idx
    r.boolean()  # prior_voters.is_empty
    epoch_credits = _read_epoch_credits(r)
    ts_slot = r.u64()
    ts = r.i64()
    if voters == 0:
        raise DecodeError("vote account is uninitialized")
    return VoteStateSnapshot(
        version=version,
        node_pubkey=str(node_pubkey),
        authorized_withdrawer=str(authorized_withdrawer),
        commission=commission,
        root_slot=root_slot,
        epoch_credits=epoch_credits,
        last_timestamp_slot=ts_slot,
        last_timestamp=ts,
    )


def decode_vote_state(data: bytes) -> VoteStateSnapshot:
    """
    Decode raw vote account data.

    Raises DecodeError on unknown version, truncation, implausible lengths,
    or an uninitialized account.
    """
    if not data:
        raise DecodeError("empty account data")
    r = _Reader(bytes(data))
    version = r.u32()
    if version == VERSION_0_23_5:
        return _decode_0_23_5(r)
    if version in (VERSION_1_14_11, VERSION_CURRENT):
        return _decode_modern(r, version)
    raise DecodeError(f"unknown vote state version {version}")


def decode_epoch_credits(data: bytes) -> list[CreditHistoryEntry]:
    """Return the epoch credit history of a vote account, in stored order."""
    return decode_vote_state(data).epoch_credits
