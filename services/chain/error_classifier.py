"""Translate web3/requests failures into tagged `ChainError`s."""

from __future__ import annotations

from typing import Any, Optional, Tuple

import requests
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from services.rpc.errors import ChainError, ChainErrorKind

# -32016 is the "over rate limit" code used by Alchemy and several public gateways.
RATE_LIMIT_CODES = {-32016, -32005, 429}

_RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "over rate limit")

_REVERT_MARKERS: Tuple[Tuple[str, ChainErrorKind], ...] = (
    ("week not active", ChainErrorKind.WEEK_NOT_ACTIVE),
    ("not active", ChainErrorKind.WEEK_NOT_ACTIVE),
    ("insufficient", ChainErrorKind.INSUFFICIENT_FUNDS),
    ("exceeds balance", ChainErrorKind.INSUFFICIENT_FUNDS),
    ("exceeds allowance", ChainErrorKind.INSUFFICIENT_FUNDS),
    ("too far", ChainErrorKind.DEADLINE_TOO_FAR),
    ("too long", ChainErrorKind.DEADLINE_TOO_FAR),
    ("too soon", ChainErrorKind.DEADLINE_TOO_SOON),
    ("too short", ChainErrorKind.DEADLINE_TOO_SOON),
    ("in the past", ChainErrorKind.DEADLINE_PAST),
    ("in the future", ChainErrorKind.DEADLINE_PAST),
)

_REJECTION_MARKERS = ("nonce too low", "replacement transaction underpriced", "rejected", "denied")


def revert_kind(reason: str) -> ChainErrorKind:
    """Map a contract revert reason onto a commit error kind."""
    lowered = (reason or "").lower()
    for marker, kind in _REVERT_MARKERS:
        if marker in lowered:
            return kind
    return ChainErrorKind.CONTRACT_REVERTED


def _rpc_error(exc: Exception) -> Tuple[Optional[int], str]:
    response: Any = getattr(exc, "rpc_response", None) or {}
    error = response.get("error") if isinstance(response, dict) else None
    if isinstance(error, dict):
        return error.get("code"), str(error.get("message") or exc)
    return None, str(exc)


def classify_chain_error(exc: BaseException) -> ChainError:
    """Return a `ChainError` describing `exc`.

    Rate-limit signals (HTTP 429, JSON-RPC rate-limit codes or messages) become
    `RATE_LIMITED` so the failover executor can retry them on another endpoint.
    """
    if isinstance(exc, ChainError):
        return exc

    if isinstance(exc, requests.HTTPError):
        status = exc.response.status_code if exc.response is not None else None
        if status == 429:
            return ChainError(ChainErrorKind.RATE_LIMITED, str(exc))
        return ChainError(ChainErrorKind.UNAVAILABLE, str(exc))

    if isinstance(exc, (requests.ConnectionError, requests.Timeout, TimeExhausted)):
        return ChainError(ChainErrorKind.UNAVAILABLE, str(exc))

    if isinstance(exc, ContractLogicError):
        reason = getattr(exc, "message", None) or str(exc)
        return ChainError(revert_kind(reason), str(exc), reason=reason)

    if isinstance(exc, Web3RPCError):
        code, message = _rpc_error(exc)
        lowered = message.lower()
        if code in RATE_LIMIT_CODES or any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
            return ChainError(ChainErrorKind.RATE_LIMITED, message)
        if "insufficient funds" in lowered:
            return ChainError(ChainErrorKind.INSUFFICIENT_FUNDS, message)
        if "execution reverted" in lowered:
            return ChainError(revert_kind(message), message, reason=message)
        if any(marker in lowered for marker in _REJECTION_MARKERS):
            return ChainError(ChainErrorKind.TRANSACTION_REJECTED, message)
        return ChainError(ChainErrorKind.UNKNOWN, message)

    message = str(exc)
    if any(marker in message.lower() for marker in _RATE_LIMIT_MARKERS):
        return ChainError(ChainErrorKind.RATE_LIMITED, message)
    return ChainError(ChainErrorKind.UNKNOWN, message)
