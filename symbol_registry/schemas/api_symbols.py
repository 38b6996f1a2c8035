from pydantic import BaseModel


class APISymbolInfo(BaseModel):
    symbol: str
    status: str
    asset: str
    quote: str


class APIExchangeSymbols(BaseModel):
    exchange: str
    snapshot_time: int
    symbols: list[APISymbolInfo]


class APIExchangesSymbols(BaseModel):
    exchanges: list[APIExchangeSymbols]
