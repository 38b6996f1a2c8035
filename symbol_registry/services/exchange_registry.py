from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from symbol_registry.errors import UnknownExchangeError
from symbol_registry.integrations.binance_rest import BinanceRestClient
from symbol_registry.integrations.bitfinex_rest import BitfinexRestClient
from symbol_registry.schemas.symbols import ExchangeSymbols


class Fetcher(Protocol):
    def fetch_symbols(self) -> ExchangeSymbols: ...


@dataclass(frozen=True)
class ExchangeEntry:
    exchange_id: int
    name: str
    fetcher_cls: Callable[..., Fetcher]


_EXCHANGES: tuple[ExchangeEntry, ...] = (
    ExchangeEntry(1, "binance", BinanceRestClient),
    ExchangeEntry(2, "bitfinex", BitfinexRestClient),
)

_BY_ID = {e.exchange_id: e for e in _EXCHANGES}
_BY_NAME = {e.name: e for e in _EXCHANGES}


def known_exchange_ids() -> list[int]:
    return [e.exchange_id for e in _EXCHANGES]


def known_exchange_names() -> list[str]:
    return [e.name for e in _EXCHANGES]


def get_exchange_id(name: str) -> int:
    entry = _BY_NAME.get(name.strip().lower())
    if entry is None:
        raise UnknownExchangeError(f"exchange '{name}' is not known")
    return entry.exchange_id


def get_exchange_name(exchange_id: int) -> str:
    entry = _BY_ID.get(exchange_id)
    if entry is None:
        raise UnknownExchangeError(f"exchange id '{exchange_id}' is not known")
    return entry.name


def create_fetcher(
    exchange_id: int,
    *,
    timeout_sec: float = 10.0,
    session: Optional[Any] = None,
    base_urls: Optional[dict[str, str]] = None,
) -> Fetcher:
    entry = _BY_ID.get(exchange_id)
    if entry is None:
        raise UnknownExchangeError(f"exchange id '{exchange_id}' is not supported")
    base_url = (base_urls or {}).get(entry.name)
    return entry.fetcher_cls(
        exchange_id=entry.exchange_id,
        session=session,
        base_url=base_url,
        timeout_sec=timeout_sec,
    )
