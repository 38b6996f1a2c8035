from __future__ import annotations

import queue
from contextlib import asynccontextmanager
from functools import partial
from typing import Callable

from fastapi import FastAPI

from symbol_registry.api.routes import router
from symbol_registry.config.settings import Settings, get_settings
from symbol_registry.db.session import build_engine
from symbol_registry.db.store import SqlSnapshotStore
from symbol_registry.services.exchange_registry import Fetcher, create_fetcher, get_exchange_id
from symbol_registry.services.fetch_dispatcher import FetchDispatcher
from symbol_registry.services.fetch_scheduler import FetchScheduler
from symbol_registry.services.snapshot_importer import SnapshotImporter
from symbol_registry.services.snapshot_resolver import SnapshotResolver
from symbol_registry.services.snapshot_store import SnapshotStore
from symbol_registry.services.symbols_query import SymbolsQueryService


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_schema = getattr(app.state.snapshot_store, "init_schema", None)
    if init_schema is not None:
        init_schema()

    app.state.snapshot_importer.start()
    app.state.fetch_scheduler.start()
    print("[APP][workers_start] threads=symbols-fetch-scheduler,symbols-importer", flush=True)

    try:
        yield
    finally:
        app.state.fetch_scheduler.stop()
        app.state.snapshot_importer.stop()
        print("[APP][workers_stop]", flush=True)


def create_app(
    *,
    settings: Settings | None = None,
    snapshot_store: SnapshotStore | None = None,
    fetcher_factory: Callable[[int], Fetcher] | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    if snapshot_store is None:
        snapshot_store = SqlSnapshotStore(build_engine(settings.DATABASE_URL))
    if fetcher_factory is None:
        fetcher_factory = partial(
            create_fetcher,
            timeout_sec=settings.FETCH_TIMEOUT_SEC,
            base_urls=settings.base_urls(),
        )

    # single-slot channel between the scheduler and the importer
    rounds: queue.Queue = queue.Queue(maxsize=1)
    dispatcher = FetchDispatcher(
        fetcher_factory=fetcher_factory,
        max_workers=settings.FETCH_MAX_WORKERS,
        round_timeout_sec=settings.ROUND_TIMEOUT_SEC,
    )
    resolver = SnapshotResolver(store=snapshot_store)

    app = FastAPI(title="Symbols Registry", version="0.1.0", lifespan=lifespan)
    app.include_router(router, prefix="/v1")

    app.state.settings = settings
    app.state.snapshot_store = snapshot_store
    app.state.fetch_scheduler = FetchScheduler(
        dispatcher=dispatcher,
        exchange_ids=[get_exchange_id(name) for name in settings.REGISTRY_EXCHANGES],
        results=rounds,
        interval_sec=settings.FETCH_INTERVAL_SEC,
    )
    app.state.snapshot_importer = SnapshotImporter(
        store=snapshot_store,
        results=rounds,
        max_retries=settings.IMPORT_MAX_RETRIES,
        backoff_base_sec=settings.IMPORT_BACKOFF_BASE_SEC,
        backoff_cap_sec=settings.IMPORT_BACKOFF_CAP_SEC,
    )
    app.state.snapshot_resolver = resolver
    app.state.symbols_query_service = SymbolsQueryService(resolver=resolver)
    return app


app = create_app()
