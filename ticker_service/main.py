import sys

import structlog
import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from ticker_service.api.routes.config_file import router as config_file_router
from ticker_service.api.routes.ticker import router as ticker_router
from ticker_service.core.config import Settings, get_settings
from ticker_service.core.http import close_async_client
from ticker_service.core.logging import configure_logging
from ticker_service.services.merger import validate_aliases
from ticker_service.services.quotes_client import QuotesClient
from ticker_service.services.supply_client import SupplyClient
from ticker_service.services.ticker_cache import TickerCache

logger = structlog.get_logger(__name__)


def build_ticker_cache(settings: Settings) -> TickerCache:
    validate_aliases(
        [s.lower() for s in settings.symbols],
        settings.currency_aliases,
        tracked=settings.tracked_code,
    )
    return TickerCache(
        SupplyClient(settings.supply_rpc_url, verbose=settings.debug),
        QuotesClient(settings.cmc_api_key, settings.quotes_base_url, verbose=settings.debug),
        symbols=settings.symbols,
        tracked=settings.tracked_code,
        reference=settings.reference_code,
        aliases=settings.currency_aliases,
        refresh_period=settings.refresh_period_seconds,
        refresh_timeout=settings.refresh_timeout_seconds,
        verbose=settings.debug,
    )


def create_app(settings: Settings, cache: TickerCache | None = None) -> FastAPI:
    app = FastAPI(title="Token Ticker API")
    app.state.settings = settings
    app.state.ticker_cache = cache or build_ticker_cache(settings)

    @app.on_event("startup")
    async def on_startup():
        app.state.ticker_cache.start()

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.ticker_cache.stop()
        await close_async_client()

    app.include_router(ticker_router)
    app.include_router(config_file_router)

    @app.get("/health")
    async def health():
        status = app.state.ticker_cache.status()
        return {"status": "ok" if status["has_snapshot"] else "warming_up", **status}

    return app


def run() -> None:
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging()
        logger.critical("invalid_configuration", error=str(e))
        sys.exit(1)

    configure_logging(
        "DEBUG" if settings.debug else settings.log_level,
        settings.log_format,
        service_name="ticker-service",
    )
    try:
        app = create_app(settings)
    except ValueError as e:
        logger.critical("invalid_currency_aliases", error=str(e))
        sys.exit(1)

    logger.info(
        "ticker_service_starting",
        host=settings.http_host,
        port=settings.http_port,
        rpc_url=settings.supply_rpc_url,
        symbols=settings.symbols,
    )
    uvicorn.run(app, host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    run()
