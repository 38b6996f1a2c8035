from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from symbol_registry.schemas.symbols import ExchangeSymbols, SymbolInfo
from symbol_registry.services.dates import now_millis


def _to_int(value: Any, default: int = 0) -> int:
    try:
        if value is None or value == "" or isinstance(value, bool):
            return default
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_exchange_info(payload: Dict[str, Any]) -> List[SymbolInfo]:
    """Map a Binance ``exchangeInfo`` response into symbol records."""
    if not isinstance(payload, dict):
        raise ValueError("exchangeInfo payload must be an object")
    if "serverTime" not in payload:
        raise ValueError("missing serverTime in exchangeInfo payload")
    raw_symbols = payload.get("symbols")
    if not isinstance(raw_symbols, list):
        raise ValueError("missing symbols in exchangeInfo payload")

    symbols: List[SymbolInfo] = []
    for raw in raw_symbols:
        if not isinstance(raw, dict):
            continue
        name = raw.get("symbol")
        if not isinstance(name, str) or not name:
            print(f"[FETCH][binance_symbol_skip] reason=missing_symbol raw={raw}", flush=True)
            continue

        order_types = raw.get("orderTypes")
        symbols.append(
            SymbolInfo(
                symbol=name,
                status=_to_str(raw.get("status")),
                base_asset=_to_str(raw.get("baseAsset")),
                base_asset_precision=max(_to_int(raw.get("baseAssetPrecision")), 0),
                quote_asset=_to_str(raw.get("quoteAsset")),
                quote_precision=max(_to_int(raw.get("quotePrecision")), 0),
                order_types=[str(t) for t in order_types] if isinstance(order_types, list) else [],
                iceberg_allowed=raw.get("icebergAllowed") is True,
            )
        )
    return symbols


class BinanceRestClient:
    """Binance public REST client for the tradable symbol list."""

    _BASE_URL = "https://api.binance.com"

    def __init__(
        self,
        exchange_id: int = 1,
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        timeout_sec: float = 10.0,
    ) -> None:
        self.exchange_id = exchange_id
        self.session = session or requests
        self.base_url = (base_url or self._BASE_URL).rstrip("/")
        self.timeout_sec = timeout_sec

    def get_exchange_info(self) -> Dict[str, Any]:
        response = self.session.get(
            f"{self.base_url}/api/v1/exchangeInfo",
            timeout=self.timeout_sec,
        )
        response.raise_for_status()
        return response.json()

    def fetch_symbols(self) -> ExchangeSymbols:
        symbols = parse_exchange_info(self.get_exchange_info())
        return ExchangeSymbols(
            exchange_id=self.exchange_id,
            snapshot_time=now_millis(),
            symbols=symbols,
        )
