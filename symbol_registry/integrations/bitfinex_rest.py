from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from symbol_registry.schemas.symbols import ExchangeSymbols, SymbolInfo
from symbol_registry.services.dates import now_millis

_FUNDING_PRECISION = 8


def _split_pair(pair: str) -> tuple[str, str]:
    if ":" in pair:
        base, _, quote = pair.partition(":")
        return base.upper(), quote.upper()
    if len(pair) == 6:
        return pair[:3].upper(), pair[3:].upper()
    return "", ""


def convert_pairs(pairs: List[Dict[str, Any]]) -> List[SymbolInfo]:
    """Map Bitfinex ``symbols_details`` rows to trading and funding symbols.

    Trading pairs become ``t<PAIR>``. Margin pairs additionally expose one
    ``f<CURRENCY>`` funding symbol per currency, listed after all trading
    symbols in first-seen order.
    """
    symbols: List[SymbolInfo] = []
    funding: dict[str, None] = {}
    for row in pairs:
        if not isinstance(row, dict):
            continue
        pair = row.get("pair")
        if not isinstance(pair, str) or not pair:
            print(f"[FETCH][bitfinex_pair_skip] reason=missing_pair raw={row}", flush=True)
            continue

        try:
            precision = max(int(row.get("price_precision") or 0), 0)
        except (TypeError, ValueError):
            precision = 0
        base, quote = _split_pair(pair)
        symbols.append(
            SymbolInfo(
                symbol=f"t{pair.upper()}",
                base_asset=base,
                base_asset_precision=precision,
                quote_asset=quote,
                quote_precision=precision,
            )
        )

        if row.get("margin") is True and base and quote:
            funding.setdefault(f"f{base}", None)
            funding.setdefault(f"f{quote}", None)

    for name in funding:
        symbols.append(
            SymbolInfo(
                symbol=name,
                base_asset=name[1:],
                base_asset_precision=_FUNDING_PRECISION,
                quote_precision=_FUNDING_PRECISION,
            )
        )
    return symbols


class BitfinexRestClient:
    _BASE_URL = "https://api.bitfinex.com"

    def __init__(
        self,
        exchange_id: int = 2,
        session: Optional[Any] = None,
        base_url: Optional[str] = None,
        timeout_sec: float = 10.0,
    ) -> None:
        self.exchange_id = exchange_id
        self.session = session or requests
        self.base_url = (base_url or self._BASE_URL).rstrip("/")
        self.timeout_sec = timeout_sec

    def get_symbols_details(self) -> List[Dict[str, Any]]:
        response = self.session.get(
            f"{self.base_url}/v1/symbols_details",
            timeout=self.timeout_sec,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, list):
            raise ValueError("symbols_details payload must be a list")
        return payload

    def fetch_symbols(self) -> ExchangeSymbols:
        return ExchangeSymbols(
            exchange_id=self.exchange_id,
            snapshot_time=now_millis(),
            symbols=convert_pairs(self.get_symbols_details()),
        )
