from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from symbol_registry.db.models import Base, SnapshotSymbol, SymbolsSnapshot
from symbol_registry.db.session import build_session_factory
from symbol_registry.errors import (
    SnapshotConsistencyError,
    SnapshotNotFoundError,
    SnapshotStoreError,
)
from symbol_registry.schemas.symbols import ExchangeSymbols, SymbolInfo
from symbol_registry.services.dates import year_month_day


class SqlSnapshotStore:
    """SQLAlchemy-backed snapshot store; one short-lived session per call."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory = build_session_factory(engine)

    def init_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise SnapshotStoreError(f"schema init failed: {exc}") from exc

    def save(self, snapshot: ExchangeSymbols) -> None:
        row = SymbolsSnapshot(
            year=snapshot.year,
            month=snapshot.month,
            day=snapshot.day,
            exchange_id=snapshot.exchange_id,
            snapshot_time=snapshot.snapshot_time,
            symbols=[
                SnapshotSymbol(
                    position=position,
                    symbol=s.symbol,
                    status=s.status,
                    asset=s.base_asset,
                    asset_precision=s.base_asset_precision,
                    quote=s.quote_asset,
                    quote_precision=s.quote_precision,
                    order_types=list(s.order_types),
                    iceberg_allowed=s.iceberg_allowed,
                )
                for position, s in enumerate(snapshot.symbols)
            ],
        )
        try:
            with self.session_factory() as session:
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise SnapshotStoreError(
                f"cannot save snapshot exchange_id={snapshot.exchange_id}: {exc}"
            ) from exc

    def load_latest(self, year: int, month: int, day: int, exchange_id: int) -> ExchangeSymbols:
        stmt = (
            select(SymbolsSnapshot)
            .where(
                SymbolsSnapshot.year == year,
                SymbolsSnapshot.month == month,
                SymbolsSnapshot.day == day,
                SymbolsSnapshot.exchange_id == exchange_id,
            )
            .order_by(SymbolsSnapshot.snapshot_time.desc(), SymbolsSnapshot.id.desc())
            .limit(1)
            .options(selectinload(SymbolsSnapshot.symbols))
        )
        try:
            with self.session_factory() as session:
                row = session.execute(stmt).scalars().first()
                if row is None:
                    raise SnapshotNotFoundError(year, month, day, exchange_id)
                return self._to_record(row)
        except SQLAlchemyError as exc:
            raise SnapshotStoreError(
                f"cannot load snapshot exchange_id={exchange_id}: {exc}"
            ) from exc

    @staticmethod
    def _to_record(row: SymbolsSnapshot) -> ExchangeSymbols:
        try:
            calendar_key = year_month_day(row.snapshot_time)
        except ValueError as exc:
            raise SnapshotConsistencyError(f"snapshot id={row.id} has invalid snapshot_time: {exc}") from exc
        if calendar_key != (row.year, row.month, row.day):
            raise SnapshotConsistencyError(
                f"snapshot id={row.id} key {row.year}-{row.month}-{row.day} "
                f"does not match snapshot_time={row.snapshot_time}"
            )
        try:
            symbols = [
                SymbolInfo(
                    symbol=s.symbol,
                    status=s.status,
                    base_asset=s.asset,
                    base_asset_precision=s.asset_precision,
                    quote_asset=s.quote,
                    quote_precision=s.quote_precision,
                    order_types=s.order_types or [],
                    iceberg_allowed=s.iceberg_allowed,
                )
                for s in row.symbols
            ]
        except ValueError as exc:
            raise SnapshotConsistencyError(f"snapshot id={row.id} has invalid symbols: {exc}") from exc
        return ExchangeSymbols(
            exchange_id=row.exchange_id,
            snapshot_time=row.snapshot_time,
            symbols=symbols,
        )
