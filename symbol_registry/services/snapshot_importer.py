from __future__ import annotations

import queue
import threading
import time
from typing import Callable

from symbol_registry.schemas.symbols import ExchangeSymbols, ExchangesSymbols
from symbol_registry.services.snapshot_store import SnapshotStore


class SnapshotImporter:
    """Single consumer of fetch rounds; persists each exchange snapshot.

    Save failures are retried with exponential backoff. When retries are
    exhausted the round is recorded as failed and the worker keeps running.
    """

    def __init__(
        self,
        *,
        store: SnapshotStore,
        results: queue.Queue,
        max_retries: int = 5,
        backoff_base_sec: float = 1.0,
        backoff_cap_sec: float = 30.0,
        sleep_fn: Callable[[float], None] | None = None,
        poll_sec: float = 0.5,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.store = store
        self.results = results
        self.max_retries = max_retries
        self.backoff_base_sec = backoff_base_sec
        self.backoff_cap_sec = backoff_cap_sec
        self.poll_sec = poll_sec
        self._stop_event = threading.Event()
        self._sleep_fn = sleep_fn or self._stop_event.wait
        self._thread: threading.Thread | None = None
        self._metrics = {
            "rounds": 0,
            "imported_rounds": 0,
            "empty_rounds": 0,
            "failed_rounds": 0,
            "saved_snapshots": 0,
            "save_retries": 0,
        }
        self.consecutive_failures = 0
        self.last_error: str | None = None
        self.last_success_ts: int | None = None

    def _save_with_retry(self, snapshot: ExchangeSymbols) -> None:
        for attempt in range(self.max_retries):
            try:
                self.store.save(snapshot)
                return
            except Exception as exc:
                self.last_error = str(exc)
                print(
                    "[IMPORT][save_error] "
                    f"exchange_id={snapshot.exchange_id} attempt={attempt + 1}/{self.max_retries} error={exc}",
                    flush=True,
                )
                if attempt == self.max_retries - 1 or self._stop_event.is_set():
                    raise
                self._metrics["save_retries"] += 1
                backoff = min(self.backoff_base_sec * (2**attempt), self.backoff_cap_sec)
                self._sleep_fn(backoff)

    def import_once(self, snapshots: ExchangesSymbols) -> bool:
        self._metrics["rounds"] += 1
        if snapshots.is_empty():
            self._metrics["empty_rounds"] += 1
            print("[IMPORT][round_empty] reason=no_exchanges", flush=True)
            return False

        try:
            for snapshot in snapshots.exchanges:
                self._save_with_retry(snapshot)
                self._metrics["saved_snapshots"] += 1
        except Exception:
            self._metrics["failed_rounds"] += 1
            self.consecutive_failures += 1
            print(
                "[IMPORT][round_failed] "
                f"exchanges={snapshots.exchange_ids()} consecutive_failures={self.consecutive_failures} "
                f"error={self.last_error}",
                flush=True,
            )
            return False

        self._metrics["imported_rounds"] += 1
        self.consecutive_failures = 0
        self.last_success_ts = int(time.time())
        print(
            "[IMPORT][round_saved] "
            f"exchanges={snapshots.exchange_ids()} "
            f"symbols={sum(len(e.symbols) for e in snapshots.exchanges)}",
            flush=True,
        )
        return True

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                snapshots = self.results.get(timeout=self.poll_sec)
            except queue.Empty:
                continue
            try:
                self.import_once(snapshots)
            finally:
                self.results.task_done()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="symbols-importer")
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.0)

    def metrics(self) -> dict:
        return {
            **self._metrics,
            "healthy": self.consecutive_failures == 0,
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error,
            "last_success_ts": self.last_success_ts,
        }
