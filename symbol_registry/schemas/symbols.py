from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from symbol_registry.services.dates import year_month_day


class SymbolInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    status: str = ""
    base_asset: str = ""
    base_asset_precision: int = Field(default=0, ge=0)
    quote_asset: str = ""
    quote_precision: int = Field(default=0, ge=0)
    order_types: tuple[str, ...] = ()
    iceberg_allowed: bool = False


class ExchangeSymbols(BaseModel):
    """One exchange's snapshot; the calendar key follows ``snapshot_time``."""

    model_config = ConfigDict(frozen=True)

    exchange_id: int = Field(gt=0)
    snapshot_time: int = Field(ge=0)
    year: int = 0
    month: int = 0
    day: int = 0
    symbols: tuple[SymbolInfo, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def derive_calendar_key(cls, data):
        if isinstance(data, dict) and data.get("snapshot_time") is not None:
            year, month, day = year_month_day(int(data["snapshot_time"]))
            data = {**data, "year": year, "month": month, "day": day}
        return data


class ExchangesSymbols(BaseModel):
    exchanges: list[ExchangeSymbols] = Field(default_factory=list)

    @model_validator(mode="after")
    def one_entry_per_exchange(self) -> "ExchangesSymbols":
        seen: set[int] = set()
        for entry in self.exchanges:
            if entry.exchange_id in seen:
                raise ValueError(f"duplicate exchange_id {entry.exchange_id} in snapshot set")
            seen.add(entry.exchange_id)
        return self

    def is_empty(self) -> bool:
        return not self.exchanges

    def exchange_ids(self) -> list[int]:
        return [e.exchange_id for e in self.exchanges]
