from __future__ import annotations

import threading
from typing import Protocol

from symbol_registry.errors import SnapshotNotFoundError
from symbol_registry.schemas.symbols import ExchangeSymbols


class SnapshotStore(Protocol):
    def save(self, snapshot: ExchangeSymbols) -> None: ...

    def load_latest(self, year: int, month: int, day: int, exchange_id: int) -> ExchangeSymbols: ...


class InMemorySnapshotStore:
    """Process-local store keyed by (year, month, day, exchange_id)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[tuple[int, int, int, int], list[ExchangeSymbols]] = {}

    def save(self, snapshot: ExchangeSymbols) -> None:
        key = (snapshot.year, snapshot.month, snapshot.day, snapshot.exchange_id)
        with self._lock:
            self._rows.setdefault(key, []).append(snapshot)

    def load_latest(self, year: int, month: int, day: int, exchange_id: int) -> ExchangeSymbols:
        with self._lock:
            rows = list(self._rows.get((year, month, day, exchange_id), []))
        if not rows:
            raise SnapshotNotFoundError(year, month, day, exchange_id)
        # ties on snapshot_time go to the later write
        latest = rows[0]
        for row in rows[1:]:
            if row.snapshot_time >= latest.snapshot_time:
                latest = row
        return latest

    def count(self) -> int:
        with self._lock:
            return sum(len(rows) for rows in self._rows.values())
