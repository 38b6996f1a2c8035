from __future__ import annotations


class UnknownExchangeError(ValueError):
    """Raised when an exchange id or name is not in the registry."""


class InvalidDateError(ValueError):
    pass


class FetchTimeoutError(TimeoutError):
    def __init__(self, exchange_id: int, timeout_sec: float) -> None:
        super().__init__(f"FETCH_TIMEOUT exchange_id={exchange_id} timeout_sec={timeout_sec}")
        self.exchange_id = exchange_id
        self.timeout_sec = timeout_sec


class SnapshotStoreError(RuntimeError):
    """Base for snapshot store failures; raised as-is for transport errors."""


class SnapshotNotFoundError(SnapshotStoreError):
    def __init__(self, year: int, month: int, day: int, exchange_id: int) -> None:
        super().__init__(
            f"SNAPSHOT_NOT_FOUND date={year:04d}-{month:02d}-{day:02d} exchange_id={exchange_id}"
        )
        self.year = year
        self.month = month
        self.day = day
        self.exchange_id = exchange_id


class SnapshotConsistencyError(SnapshotStoreError):
    pass
