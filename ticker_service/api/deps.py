from fastapi import Request

from ticker_service.core.config import Settings
from ticker_service.services.ticker_cache import TickerCache


def get_ticker_cache(request: Request) -> TickerCache:
    return request.app.state.ticker_cache


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
