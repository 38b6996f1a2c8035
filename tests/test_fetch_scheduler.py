import queue
import threading
import time
import unittest

from symbol_registry.schemas.symbols import ExchangeSymbols, ExchangesSymbols, SymbolInfo
from symbol_registry.services.fetch_dispatcher import DispatchResult, ExchangeFetchError
from symbol_registry.services.fetch_scheduler import (
    STATE_IDLE,
    STATE_STOPPED,
    FetchScheduler,
    next_tick_after,
)


class StubDispatcher:
    def __init__(self, result: DispatchResult | None = None) -> None:
        self.result = result or DispatchResult(
            symbols=ExchangesSymbols(
                exchanges=[
                    ExchangeSymbols(
                        exchange_id=1,
                        snapshot_time=1551398400000,
                        symbols=[SymbolInfo(symbol="BTCUSDT")],
                    )
                ]
            )
        )
        self.calls: list[list[int]] = []
        self.called = threading.Event()

    def dispatch(self, exchange_ids: list[int]) -> DispatchResult:
        self.calls.append(list(exchange_ids))
        self.called.set()
        return self.result

    def metrics(self) -> dict:
        return {"rounds": len(self.calls)}


class SlowDispatcher(StubDispatcher):
    def __init__(self, delay_sec: float) -> None:
        super().__init__()
        self.delay_sec = delay_sec
        self.in_flight = 0
        self.max_in_flight = 0
        self.second_call = threading.Event()
        self._lock = threading.Lock()

    def dispatch(self, exchange_ids: list[int]) -> DispatchResult:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        time.sleep(self.delay_sec)
        with self._lock:
            self.in_flight -= 1
        result = super().dispatch(exchange_ids)
        if len(self.calls) >= 2:
            self.second_call.set()
        return result


class TestNextTick(unittest.TestCase):
    def test_on_time_round_keeps_cadence(self):
        self.assertEqual(next_tick_after(10.0, 12.0, 10.0), (20.0, 0))

    def test_overrunning_round_drops_missed_ticks(self):
        # round started at 10 and finished at 35: ticks at 20 and 30 are dropped
        self.assertEqual(next_tick_after(10.0, 35.0, 10.0), (40.0, 2))


class TestFetchScheduler(unittest.TestCase):
    def test_run_round_publishes_aggregate(self):
        results: queue.Queue = queue.Queue(maxsize=1)
        dispatcher = StubDispatcher()
        scheduler = FetchScheduler(dispatcher=dispatcher, exchange_ids=[1, 2], results=results)

        scheduler.run_round()

        self.assertEqual(dispatcher.calls, [[1, 2]])
        published = results.get_nowait()
        self.assertEqual(published.exchange_ids(), [1])
        self.assertEqual(scheduler.state, STATE_IDLE)
        self.assertEqual(scheduler.metrics()["published"], 1)

    def test_empty_round_is_still_published_and_counted(self):
        results: queue.Queue = queue.Queue(maxsize=1)
        empty = DispatchResult(
            symbols=ExchangesSymbols(),
            errors=[ExchangeFetchError(exchange_id=1, error=ConnectionError("down"))],
        )
        scheduler = FetchScheduler(dispatcher=StubDispatcher(empty), exchange_ids=[1], results=results)

        scheduler.run_round()

        self.assertTrue(results.get_nowait().is_empty())
        metrics = scheduler.metrics()
        self.assertEqual(metrics["empty_rounds"], 1)
        self.assertEqual(metrics["round_errors"], 1)
        self.assertEqual(metrics["last_round_errors"], ["exchange_id=1 error=down"])

    def test_stop_releases_blocked_publish(self):
        results: queue.Queue = queue.Queue(maxsize=1)
        results.put(ExchangesSymbols())  # consumer never drains
        scheduler = FetchScheduler(
            dispatcher=StubDispatcher(),
            exchange_ids=[1],
            results=results,
            publish_poll_sec=0.02,
        )

        worker = threading.Thread(target=scheduler.run_round)
        worker.start()
        self.assertTrue(scheduler.dispatcher.called.wait(1.0))
        scheduler.stop()
        worker.join(1.0)

        self.assertFalse(worker.is_alive())
        self.assertEqual(scheduler.metrics()["published"], 0)
        self.assertEqual(scheduler.state, STATE_STOPPED)

    def test_loop_dispatches_on_interval_and_stops(self):
        results: queue.Queue = queue.Queue(maxsize=1)
        dispatcher = StubDispatcher()
        scheduler = FetchScheduler(
            dispatcher=dispatcher,
            exchange_ids=[1],
            results=results,
            interval_sec=0.05,
        )

        scheduler.start()
        try:
            published = results.get(timeout=1.0)
        finally:
            scheduler.stop()

        self.assertEqual(published.exchange_ids(), [1])
        self.assertGreaterEqual(len(dispatcher.calls), 1)
        self.assertEqual(scheduler.state, STATE_STOPPED)

    def test_slow_rounds_never_overlap_and_drop_ticks(self):
        results: queue.Queue = queue.Queue()
        dispatcher = SlowDispatcher(delay_sec=0.15)
        scheduler = FetchScheduler(
            dispatcher=dispatcher,
            exchange_ids=[1],
            results=results,
            interval_sec=0.05,
        )

        scheduler.start()
        try:
            self.assertTrue(dispatcher.second_call.wait(2.0))
        finally:
            scheduler.stop()

        self.assertEqual(dispatcher.max_in_flight, 1)
        self.assertGreaterEqual(scheduler.metrics()["dropped_ticks"], 1)
        self.assertGreaterEqual(results.qsize(), 2)

    def test_consecutive_empty_rounds_reset_on_data(self):
        results: queue.Queue = queue.Queue()
        empty = DispatchResult(symbols=ExchangesSymbols())
        dispatcher = StubDispatcher(empty)
        scheduler = FetchScheduler(dispatcher=dispatcher, exchange_ids=[1], results=results)

        scheduler.run_round()
        scheduler.run_round()
        self.assertEqual(scheduler.metrics()["consecutive_empty_rounds"], 2)

        dispatcher.result = StubDispatcher().result
        scheduler.run_round()

        metrics = scheduler.metrics()
        self.assertEqual(metrics["consecutive_empty_rounds"], 0)
        self.assertEqual(metrics["empty_rounds"], 2)

    def test_invalid_interval(self):
        with self.assertRaises(ValueError):
            FetchScheduler(
                dispatcher=StubDispatcher(),
                exchange_ids=[1],
                results=queue.Queue(maxsize=1),
                interval_sec=0,
            )


if __name__ == "__main__":
    unittest.main()
