"""Replay protection for dues settlement.

A host (or its payment client) may retry ``POST /dues/settle`` after a
timeout. A retry carrying the same ``Idempotency-Key`` header, for the same
host and amount, gets the first settlement result back instead of paying
down the dues a second time.

Results are held in process memory; run a single API worker or move the
store to Redis before scaling out.
"""

import hashlib
import json
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

REPLAY_WINDOW = timedelta(hours=24)


class SettlementReplayStore:
    """Settlement results keyed by replay key, expiring after a window."""

    def __init__(self, window: timedelta = REPLAY_WINDOW) -> None:
        self._results: dict[str, tuple[datetime, dict[str, Any]]] = {}
        self._window = window

    def _purge(self, now: datetime) -> None:
        stale = [key for key, (expires_at, _) in self._results.items() if expires_at <= now]
        for key in stale:
            del self._results[key]

    def recall(self, key: str) -> dict[str, Any] | None:
        now = datetime.now(UTC)
        self._purge(now)
        entry = self._results.get(key)
        return entry[1] if entry else None

    def remember(self, key: str, result: dict[str, Any]) -> None:
        self._results[key] = (datetime.now(UTC) + self._window, result)

    def clear(self) -> None:
        self._results.clear()


_replay_store = SettlementReplayStore()


def settlement_replay_key(host_id: UUID | str, idempotency_key: str, amount: int) -> str:
    """Hash of the host, client key and amount.

    Reusing a client key with a different amount is treated as a new payment.
    """
    material = json.dumps(
        {"host_id": str(host_id), "key": idempotency_key, "amount": amount},
        sort_keys=True,
    )
    return hashlib.sha256(material.encode()).hexdigest()


def recall_settlement(key: str) -> dict[str, Any] | None:
    """Result of an earlier settlement with this replay key, if any."""
    return _replay_store.recall(key)


def remember_settlement(key: str, result: dict[str, Any]) -> None:
    _replay_store.remember(key, result)


def reset_replay_store() -> None:
    _replay_store.clear()
