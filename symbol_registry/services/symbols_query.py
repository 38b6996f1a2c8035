from __future__ import annotations

from functools import partial

from symbol_registry.schemas.api_symbols import (
    APIExchangeSymbols,
    APIExchangesSymbols,
    APISymbolInfo,
)
from symbol_registry.schemas.symbols import ExchangeSymbols, ExchangesSymbols
from symbol_registry.services.dates import parse_date, today_utc
from symbol_registry.services.exchange_registry import (
    get_exchange_id,
    get_exchange_name,
    known_exchange_ids,
)
from symbol_registry.services.snapshot_resolver import SnapshotResolver


def convert_exchange_symbols(snapshot: ExchangeSymbols) -> APIExchangeSymbols:
    exchange = get_exchange_name(snapshot.exchange_id)
    return APIExchangeSymbols(
        exchange=exchange,
        snapshot_time=snapshot.snapshot_time,
        symbols=[
            APISymbolInfo(
                symbol=f"{exchange}-{s.symbol}",
                status=s.status,
                asset=s.base_asset,
                quote=s.quote_asset,
            )
            for s in snapshot.symbols
        ],
    )


def to_api_response(snapshots: ExchangesSymbols) -> APIExchangesSymbols:
    return APIExchangesSymbols(exchanges=[convert_exchange_symbols(e) for e in snapshots.exchanges])


class SymbolsQueryService:
    def __init__(self, *, resolver: SnapshotResolver) -> None:
        self.resolver = resolver

    def get_symbols_snapshot(
        self,
        exchange_names: list[str] | None = None,
        date: str | None = None,
    ) -> APIExchangesSymbols:
        names = [n.strip() for n in (exchange_names or []) if n and n.strip()]
        exchange_ids = [get_exchange_id(n) for n in names] if names else known_exchange_ids()
        date_fn = partial(parse_date, date) if date else today_utc
        return to_api_response(self.resolver.resolve(exchange_ids, date_fn))
