from __future__ import annotations

import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable

from symbol_registry.errors import FetchTimeoutError
from symbol_registry.schemas.symbols import ExchangeSymbols, ExchangesSymbols
from symbol_registry.services.exchange_registry import Fetcher


@dataclass
class ExchangeFetchError:
    exchange_id: int
    error: BaseException

    def __str__(self) -> str:
        return f"exchange_id={self.exchange_id} error={self.error}"


@dataclass
class DispatchResult:
    symbols: ExchangesSymbols
    errors: list[ExchangeFetchError] = field(default_factory=list)

    @property
    def outcomes(self) -> int:
        return len(self.symbols.exchanges) + len(self.errors)


class FetchDispatcher:
    """Fan out one fetch per exchange and partition the outcomes."""

    def __init__(
        self,
        *,
        fetcher_factory: Callable[[int], Fetcher],
        max_workers: int = 8,
        round_timeout_sec: float | None = 60.0,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.fetcher_factory = fetcher_factory
        self.max_workers = max_workers
        self.round_timeout_sec = round_timeout_sec
        self._metrics = {
            "rounds": 0,
            "fetch_ok": 0,
            "fetch_failed": 0,
            "fetch_timed_out": 0,
        }

    def _fetch_one(self, exchange_id: int) -> ExchangeSymbols:
        fetcher = self.fetcher_factory(exchange_id)
        result = fetcher.fetch_symbols()
        if result.exchange_id != exchange_id:
            raise ValueError(
                f"fetcher for exchange_id={exchange_id} returned exchange_id={result.exchange_id}"
            )
        return result

    def _record_outcome(
        self,
        future: Future,
        exchange_id: int,
        successes: list[ExchangeSymbols],
        errors: list[ExchangeFetchError],
    ) -> None:
        exc = future.exception()
        if exc is None:
            successes.append(future.result())
            self._metrics["fetch_ok"] += 1
            return
        print(f"[FETCH][exchange_error] exchange_id={exchange_id} error={exc}", flush=True)
        errors.append(ExchangeFetchError(exchange_id=exchange_id, error=exc))
        self._metrics["fetch_failed"] += 1

    def dispatch(self, exchange_ids: list[int]) -> DispatchResult:
        unique_ids = list(dict.fromkeys(exchange_ids))
        if len(unique_ids) != len(exchange_ids):
            print(
                f"[FETCH][dispatch_dedupe] requested={len(exchange_ids)} unique={len(unique_ids)}",
                flush=True,
            )

        successes: list[ExchangeSymbols] = []
        errors: list[ExchangeFetchError] = []
        if not unique_ids:
            self._metrics["rounds"] += 1
            return DispatchResult(symbols=ExchangesSymbols(), errors=errors)

        started = time.monotonic()
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(unique_ids)),
            thread_name_prefix="symbols-fetch",
        )
        pending: dict[Future, int] = {
            executor.submit(self._fetch_one, exchange_id): exchange_id for exchange_id in unique_ids
        }
        deadline = None if self.round_timeout_sec is None else started + self.round_timeout_sec

        try:
            while pending:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    break
                done, _ = wait(list(pending), timeout=remaining, return_when=FIRST_COMPLETED)
                for future in done:
                    self._record_outcome(future, pending.pop(future), successes, errors)
        finally:
            # fetches that finished after the last wait() still count
            for future in [f for f in pending if f.done() and not f.cancelled()]:
                self._record_outcome(future, pending.pop(future), successes, errors)
            for future, exchange_id in pending.items():
                future.cancel()
                print(
                    f"[FETCH][exchange_timeout] exchange_id={exchange_id} "
                    f"round_timeout_sec={self.round_timeout_sec}",
                    flush=True,
                )
                errors.append(
                    ExchangeFetchError(
                        exchange_id=exchange_id,
                        error=FetchTimeoutError(exchange_id, self.round_timeout_sec or 0.0),
                    )
                )
                self._metrics["fetch_timed_out"] += 1
            # hung fetchers keep their worker thread; the round does not wait for them
            executor.shutdown(wait=False, cancel_futures=True)

        self._metrics["rounds"] += 1
        print(
            "[FETCH][dispatch_done] "
            f"requested={len(unique_ids)} ok={len(successes)} failed={len(errors)} "
            f"elapsed_ms={int((time.monotonic() - started) * 1000)}",
            flush=True,
        )
        return DispatchResult(symbols=ExchangesSymbols(exchanges=successes), errors=errors)

    def metrics(self) -> dict[str, int]:
        return dict(self._metrics)
