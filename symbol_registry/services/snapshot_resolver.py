from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from symbol_registry.errors import SnapshotNotFoundError
from symbol_registry.schemas.symbols import ExchangeSymbols, ExchangesSymbols
from symbol_registry.services.dates import YearMonthDay, previous_date
from symbol_registry.services.snapshot_store import SnapshotStore


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotResolver:
    """Snapshot lookup by calendar day with a one-step fallback.

    When the requested day has no snapshot for an exchange, the lookup is
    retried once for the day before *now* (not the day before the requested
    date). Any other store error, or a second miss, aborts the resolution.
    """

    def __init__(
        self,
        *,
        store: SnapshotStore,
        now_fn: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.now_fn = now_fn
        self.fallbacks = 0
        self.resolutions = 0

    def _load_with_fallback(self, exchange_id: int, target: YearMonthDay) -> ExchangeSymbols:
        year, month, day = target
        try:
            return self.store.load_latest(year, month, day, exchange_id)
        except SnapshotNotFoundError:
            fb_year, fb_month, fb_day = previous_date(self.now_fn())
            self.fallbacks += 1
            print(
                "[RESOLVE][fallback] "
                f"exchange_id={exchange_id} requested={year:04d}-{month:02d}-{day:02d} "
                f"fallback={fb_year:04d}-{fb_month:02d}-{fb_day:02d}",
                flush=True,
            )
            return self.store.load_latest(fb_year, fb_month, fb_day, exchange_id)

    def resolve(
        self,
        exchange_ids: list[int],
        date_fn: Callable[[], YearMonthDay],
    ) -> ExchangesSymbols:
        target = date_fn()
        out: list[ExchangeSymbols] = []
        for exchange_id in dict.fromkeys(exchange_ids):
            try:
                out.append(self._load_with_fallback(exchange_id, target))
            except Exception as exc:
                print(
                    f"[RESOLVE][error] exchange_id={exchange_id} error_type={type(exc).__name__} error={exc}",
                    flush=True,
                )
                raise
        self.resolutions += 1
        return ExchangesSymbols(exchanges=out)

    def metrics(self) -> dict[str, int]:
        return {"resolutions": self.resolutions, "fallbacks": self.fallbacks}
