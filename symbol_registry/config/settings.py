import os
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator

from symbol_registry.services.exchange_registry import known_exchange_names

_DEFAULT_EXCHANGES = "binance,bitfinex"


class Settings(BaseModel):
    REGISTRY_EXCHANGES: list[str]
    FETCH_INTERVAL_SEC: float = Field(default=300.0, gt=0)
    FETCH_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    ROUND_TIMEOUT_SEC: float = Field(default=60.0, gt=0)
    FETCH_MAX_WORKERS: int = Field(default=8, ge=1)
    DATABASE_URL: str = "sqlite:///./symbols_registry.db"
    IMPORT_MAX_RETRIES: int = Field(default=5, ge=1)
    IMPORT_BACKOFF_BASE_SEC: float = Field(default=1.0, ge=0)
    IMPORT_BACKOFF_CAP_SEC: float = Field(default=30.0, ge=0)
    BINANCE_BASE_URL: str | None = None
    BITFINEX_BASE_URL: str | None = None

    @field_validator("REGISTRY_EXCHANGES")
    @classmethod
    def validate_exchanges(cls, value: list[str]) -> list[str]:
        known = set(known_exchange_names())
        normalized = list(dict.fromkeys(v.strip().lower() for v in value if v.strip()))
        if not normalized:
            raise ValueError("at least one exchange is required")
        unknown = [v for v in normalized if v not in known]
        if unknown:
            raise ValueError(f"unknown exchanges: {','.join(unknown)}")
        return normalized

    def base_urls(self) -> dict[str, str]:
        urls = {"binance": self.BINANCE_BASE_URL, "bitfinex": self.BITFINEX_BASE_URL}
        return {name: url for name, url in urls.items() if url}

    @classmethod
    def from_env(cls) -> "Settings":
        raw_exchanges = os.getenv("REGISTRY_EXCHANGES", _DEFAULT_EXCHANGES)
        exchanges = [s.strip() for s in raw_exchanges.split(",") if s.strip()]

        raw = {
            "REGISTRY_EXCHANGES": exchanges,
            "FETCH_INTERVAL_SEC": os.getenv("FETCH_INTERVAL_SEC"),
            "FETCH_TIMEOUT_SEC": os.getenv("FETCH_TIMEOUT_SEC"),
            "ROUND_TIMEOUT_SEC": os.getenv("ROUND_TIMEOUT_SEC"),
            "FETCH_MAX_WORKERS": os.getenv("FETCH_MAX_WORKERS"),
            "DATABASE_URL": os.getenv("DATABASE_URL"),
            "IMPORT_MAX_RETRIES": os.getenv("IMPORT_MAX_RETRIES"),
            "IMPORT_BACKOFF_BASE_SEC": os.getenv("IMPORT_BACKOFF_BASE_SEC"),
            "IMPORT_BACKOFF_CAP_SEC": os.getenv("IMPORT_BACKOFF_CAP_SEC"),
            "BINANCE_BASE_URL": os.getenv("BINANCE_BASE_URL"),
            "BITFINEX_BASE_URL": os.getenv("BITFINEX_BASE_URL"),
        }
        # unset variables fall back to field defaults
        return cls.model_validate({k: v for k, v in raw.items() if v is not None})


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
