"""
Solana JSON-RPC client for vote account data.

- Resolve configured addresses into solders Pubkeys (InvalidAddress on failure).
- Fetch raw account bytes via getAccountInfo (base64, finalized commitment).
- Map every failure to AccountNotFound / RpcTimeout / RpcTransportError.

No retries: the refresh loop runs again on the next tick. The httpx timeout
bounds every request so a hung node never blocks a tick indefinitely.
"""

from __future__ import annotations

import base64
import binascii
import itertools
from typing import Any

import httpx
from solders.pubkey import Pubkey

from timely_credits.core.exceptions import (
    AccountNotFound,
    InvalidAddress,
    RpcTimeout,
    RpcTransportError,
)
from timely_credits.logging import get_logger

logger = get_logger(__name__)

DEFAULT_RPC_TIMEOUT_SEC = 30.0
DEFAULT_COMMITMENT = "finalized"

_request_ids = itertools.count(1)


def resolve_address(address: str) -> Pubkey:
    """Parse a base58 address into a Pubkey. Raises InvalidAddress if malformed."""
    raw = (address or "").strip()
    if not raw:
        raise InvalidAddress(address, "address must be non-empty")
    try:
        return Pubkey.from_string(raw)
    except Exception as e:
        raise InvalidAddress(address, str(e)) from e


def _build_rpc_body(pubkey: Pubkey, commitment: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": next(_request_ids),
        "method": "getAccountInfo",
        "params": [str(pubkey), {"encoding": "base64", "commitment": commitment}],
    }


def _decode_account_data(address: str, value: dict[str, Any]) -> bytes:
    """Extract raw bytes from an account value with data=[<base64>, "base64"]."""
    data = value.get("data")
    if not isinstance(data, list) or len(data) != 2 or data[1] != "base64":
        raise RpcTransportError(f"unexpected account data encoding: {data!r:.80}", address=address)
    try:
        return base64.b64decode(data[0], validate=True)
    except (binascii.Error, TypeError) as e:
        raise RpcTransportError(f"invalid base64 account data: {e}", address=address) from e


class SolanaRpcClient:
    """
    Thin getAccountInfo client over a shared httpx.Client.

    Safe to share across worker threads; holds no per-request state.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC,
        commitment: str = DEFAULT_COMMITMENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Args:
            rpc_url: Solana RPC HTTP endpoint (e.g. https://api.mainnet-beta.solana.com).
            timeout_sec: Per-request timeout (connect, read, write, pool).
            commitment: Commitment level passed to getAccountInfo.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        if not (rpc_url or "").strip():
            raise ValueError("rpc_url must be non-empty")
        if timeout_sec <= 0:
            raise ValueError("timeout_sec must be positive")
        self._rpc_url = rpc_url.strip().rstrip("/")
        self._timeout_sec = timeout_sec
        self._commitment = commitment
        self._client = httpx.Client(timeout=timeout_sec, transport=transport)

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    def get_account(self, address: str) -> bytes:
        """
        Return the raw data of the account at address.

        Raises InvalidAddress, AccountNotFound, RpcTimeout or RpcTransportError.
        """
        pubkey = resolve_address(address)
        body = _build_rpc_body(pubkey, self._commitment)
        try:
            resp = self._client.post(self._rpc_url, json=body)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.TimeoutException as e:
            raise RpcTimeout(
                f"getAccountInfo timed out after {self._timeout_sec}s", address=address
            ) from e
        except httpx.HTTPStatusError as e:
            raise RpcTransportError(
                f"getAccountInfo HTTP {e.response.status_code}", address=address
            ) from e
        except httpx.HTTPError as e:
            raise RpcTransportError(f"getAccountInfo failed: {e}", address=address) from e
        except ValueError as e:
            raise RpcTransportError(f"getAccountInfo returned invalid JSON: {e}", address=address) from e

        if not isinstance(payload, dict):
            raise RpcTransportError("getAccountInfo returned a non-object payload", address=address)
        err = payload.get("error")
        if err:
            raise RpcTransportError(f"getAccountInfo RPC error: {err}", address=address)
        result = payload.get("result")
        if not isinstance(result, dict) or "value" not in result:
            raise RpcTransportError("getAccountInfo response missing result.value", address=address)
        value = result["value"]
        if value is None:
            raise AccountNotFound(f"account {address} not found", address=address)
        if not isinstance(value, dict):
            raise RpcTransportError(
                f"getAccountInfo result.value is not an object: {type(value).__name__}",
                address=address,
            )
        raw = _decode_account_data(address, value)
        logger.debug(
            "rpc_account_fetched",
            address=address,
            data_len=len(raw),
            slot=(result.get("context") or {}).get("slot"),
        )
        return raw

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SolanaRpcClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
