from __future__ import annotations

import queue
import threading
import time
from typing import Callable

from symbol_registry.services.fetch_dispatcher import DispatchResult, FetchDispatcher

STATE_IDLE = "IDLE"
STATE_DISPATCHING = "DISPATCHING"
STATE_STOPPED = "STOPPED"


def next_tick_after(next_tick: float, now: float, interval_sec: float) -> tuple[float, int]:
    """Advance a tick schedule past ``now``; returns (next_tick, dropped_ticks)."""
    candidate = next_tick + interval_sec
    if candidate > now:
        return candidate, 0
    dropped = int((now - candidate) // interval_sec) + 1
    return candidate + dropped * interval_sec, dropped


class FetchScheduler:
    """Fixed-interval fetch loop publishing one aggregate per round.

    Rounds never overlap: ticks that fall due while a round is in flight are
    dropped. Publishing blocks until the single consumer has taken the
    previous round.
    """

    def __init__(
        self,
        *,
        dispatcher: FetchDispatcher,
        exchange_ids: list[int],
        results: queue.Queue,
        interval_sec: float = 300.0,
        publish_poll_sec: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be > 0")
        self.dispatcher = dispatcher
        self.exchange_ids = list(exchange_ids)
        self.results = results
        self.interval_sec = interval_sec
        self.publish_poll_sec = publish_poll_sec
        self.clock = clock
        self.state = STATE_IDLE
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._metrics = {
            "rounds": 0,
            "published": 0,
            "empty_rounds": 0,
            "dropped_ticks": 0,
            "round_errors": 0,
        }
        self.last_round_ts: int | None = None
        self.last_round_errors: list[str] = []
        self.consecutive_empty_rounds = 0

    def _publish(self, result: DispatchResult) -> bool:
        while not self._stop_event.is_set():
            try:
                self.results.put(result.symbols, timeout=self.publish_poll_sec)
                return True
            except queue.Full:
                continue
        print("[FETCH][publish_aborted] reason=stopped", flush=True)
        return False

    def run_round(self) -> DispatchResult:
        self.state = STATE_DISPATCHING
        try:
            result = self.dispatcher.dispatch(self.exchange_ids)
            self._metrics["rounds"] += 1
            self._metrics["round_errors"] += len(result.errors)
            self.last_round_ts = int(time.time())
            self.last_round_errors = [str(e) for e in result.errors]
            if result.symbols.is_empty():
                self._metrics["empty_rounds"] += 1
                self.consecutive_empty_rounds += 1
                print(
                    f"[FETCH][round_empty] requested={len(self.exchange_ids)} errors={len(result.errors)}",
                    flush=True,
                )
            else:
                self.consecutive_empty_rounds = 0
            if self._publish(result):
                self._metrics["published"] += 1
                print(
                    "[FETCH][round_published] "
                    f"exchanges={result.symbols.exchange_ids()} errors={len(result.errors)}",
                    flush=True,
                )
            return result
        finally:
            self.state = STATE_STOPPED if self._stop_event.is_set() else STATE_IDLE

    def _loop(self) -> None:
        next_tick = self.clock() + self.interval_sec
        while not self._stop_event.wait(max(next_tick - self.clock(), 0.0)):
            try:
                self.run_round()
            except Exception as exc:  # pragma: no cover
                print(f"[FETCH][round_error] error={exc}", flush=True)
            next_tick, dropped = next_tick_after(next_tick, self.clock(), self.interval_sec)
            if dropped:
                self._metrics["dropped_ticks"] += dropped
                print(f"[FETCH][ticks_dropped] count={dropped}", flush=True)
        self.state = STATE_STOPPED

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self.state = STATE_IDLE
        self._thread = threading.Thread(target=self._loop, daemon=True, name="symbols-fetch-scheduler")
        self._thread.start()
        print(
            f"[FETCH][scheduler_start] exchanges={self.exchange_ids} interval_sec={self.interval_sec}",
            flush=True,
        )

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.0)
        self.state = STATE_STOPPED
        print("[FETCH][scheduler_stop]", flush=True)

    def metrics(self) -> dict:
        return {
            **self._metrics,
            "state": self.state,
            "interval_sec": self.interval_sec,
            "last_round_ts": self.last_round_ts,
            "last_round_errors": list(self.last_round_errors),
            "consecutive_empty_rounds": self.consecutive_empty_rounds,
            "dispatcher": self.dispatcher.metrics(),
        }
