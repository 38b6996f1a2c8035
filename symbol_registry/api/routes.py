import re

from fastapi import APIRouter, HTTPException, Request

from symbol_registry.errors import InvalidDateError, UnknownExchangeError
from symbol_registry.schemas.api_symbols import APIExchangesSymbols

router = APIRouter()

_EXCHANGE_SEPARATORS = re.compile(r"[@,]")


def _parse_exchanges(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [s.strip() for s in _EXCHANGE_SEPARATORS.split(raw) if s.strip()]


@router.get('/symbols', response_model=APIExchangesSymbols)
def get_symbols(request: Request, exchanges: str | None = None, date: str | None = None):
    service = request.app.state.symbols_query_service
    try:
        return service.get_symbols_snapshot(_parse_exchanges(exchanges), date)
    except InvalidDateError as exc:
        raise HTTPException(status_code=400, detail='INVALID_DATE') from exc
    except UnknownExchangeError as exc:
        raise HTTPException(status_code=400, detail='UNKNOWN_EXCHANGE') from exc
    except Exception as exc:
        print(f"[API][symbols_error] error_type={type(exc).__name__} error={exc}", flush=True)
        raise HTTPException(status_code=500, detail='SYMBOLS_SNAPSHOT_UNAVAILABLE') from exc


@router.get('/metrics/fetch')
def fetch_metrics(request: Request):
    return request.app.state.fetch_scheduler.metrics()


@router.get('/metrics/import')
def import_metrics(request: Request):
    metrics = request.app.state.snapshot_importer.metrics()
    metrics['resolver'] = request.app.state.snapshot_resolver.metrics()
    return metrics


@router.get('/health')
def health(request: Request):
    importer = request.app.state.snapshot_importer.metrics()
    scheduler = request.app.state.fetch_scheduler.metrics()
    healthy = importer['healthy'] and scheduler['consecutive_empty_rounds'] == 0
    return {
        'status': 'ok' if healthy else 'degraded',
        'scheduler_state': scheduler['state'],
        'last_round_ts': scheduler['last_round_ts'],
        'fetch_consecutive_empty_rounds': scheduler['consecutive_empty_rounds'],
        'last_import_ts': importer['last_success_ts'],
        'import_consecutive_failures': importer['consecutive_failures'],
    }
