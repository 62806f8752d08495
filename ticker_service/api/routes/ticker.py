from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from ticker_service.api.deps import get_ticker_cache
from ticker_service.services.ticker_cache import TickerCache

router = APIRouter(tags=["ticker"])


@router.get("/ticker")
async def ticker(
    changes: bool = Query(True, description="Inclui os campos <code>_percent_change_24h"),
    cache: TickerCache = Depends(get_ticker_cache),
):
    """
    Retorna o snapshot completo do ticker.

    **Exemplo de resposta:**
    ```json
    {
      "total_supply": "2184319077.4129",
      "available_supply": "2184319077.4129",
      "price_usd": "0.012345",
      "price_btc": "0.00000019",
      "volume": "1523411",
      "volume_btc": "23.43709231",
      "last_refreshed_at": "2025-10-23T20:00:00+00:00",
      "usdt_price_usd": "1.00010000",
      "usdt_percent_change_24h": "0.01000000"
    }
    ```

    Campos vazios ("") significam dado ainda indisponível.
    """
    snapshot = await cache.get_snapshot()
    return snapshot.to_ticker(include_changes=changes)


@router.get("/asapi", response_class=PlainTextResponse)
async def available_supply(cache: TickerCache = Depends(get_ticker_cache)):
    snapshot = await cache.get_snapshot()
    return snapshot.available_supply


@router.get("/tsapi", response_class=PlainTextResponse)
async def total_supply(cache: TickerCache = Depends(get_ticker_cache)):
    snapshot = await cache.get_snapshot()
    return snapshot.total_supply


@router.get("/api/v1/stats/totalcoins", response_class=PlainTextResponse)
async def total_coins(cache: TickerCache = Depends(get_ticker_cache)):
    """Alias de /tsapi."""
    return await total_supply(cache)
