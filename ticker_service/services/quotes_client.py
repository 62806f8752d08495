from __future__ import annotations

from typing import Any, Iterable, Iterator

import httpx
import structlog
from httpx import Request

from ticker_service.core.http import get_async_client, send_request
from ticker_service.core.limits import get_limiter
from ticker_service.models import MarketQuote
from ticker_service.services.utils.numbers import normalize_numeric

logger = structlog.get_logger(__name__)


def _iter_entries(data: Any) -> Iterator[dict[str, Any]]:
    # quotes/latest v1 maps symbol -> entry, v2 maps symbol -> [entry, ...],
    # listings/latest returns a plain list.
    if isinstance(data, dict):
        for item in data.values():
            if isinstance(item, list):
                item = item[0] if item else None
            if isinstance(item, dict):
                yield item
    elif isinstance(data, list):
        for item in data:
            if isinstance(item, dict):
                yield item


def _extract_quotes(payload: dict[str, Any], wanted: set[str]) -> dict[str, MarketQuote]:
    out: dict[str, MarketQuote] = {}
    for entry in _iter_entries(payload.get("data")):
        symbol = str(entry.get("symbol") or "").upper()
        if symbol not in wanted:
            continue
        usd = (entry.get("quote") or {}).get("USD")
        if not isinstance(usd, dict):
            logger.warning("quote_entry_without_usd", symbol=symbol)
            continue
        code = symbol.lower()
        # first listing wins when several coins share a symbol
        out.setdefault(code, MarketQuote(
            price_usd=float(normalize_numeric(usd.get("price"))),
            volume_24h_usd=float(normalize_numeric(usd.get("volume_24h"))),
            percent_change_24h=float(normalize_numeric(usd.get("percent_change_24h"))),
        ))
    return out


class QuotesClient:
    """CoinMarketCap quotes client."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://pro-api.coinmarketcap.com",
        *,
        client: httpx.AsyncClient | None = None,
        verbose: bool = False,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client
        self.verbose = verbose

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "X-CMC_PRO_API_KEY": self.api_key,
        }

    async def fetch_quotes(self, symbols: Iterable[str]) -> dict[str, MarketQuote]:
        """Lowercase code -> quote for every requested symbol found; ``{}`` on any failure."""
        symbol_list = [s.strip().upper() for s in symbols if s and s.strip()]
        if not symbol_list:
            return {}

        client = self._client or await get_async_client()
        request = Request(
            "GET",
            f"{self.base_url}/v1/cryptocurrency/quotes/latest",
            params={"symbol": ",".join(symbol_list), "convert": "USD"},
            headers=self._headers(),
        )
        try:
            async with get_limiter("quotes"):
                response = await send_request(client, request)
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("quotes_fetch_http_error", status=e.response.status_code, body=e.response.text[:500])
            return {}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("quotes_fetch_failed", error=str(e))
            return {}

        if not isinstance(payload, dict):
            logger.warning("quotes_response_invalid", response=payload)
            return {}
        status = payload.get("status") or {}
        if isinstance(status, dict) and normalize_numeric(status.get("error_code")):
            logger.warning(
                "quotes_api_error",
                error_code=status.get("error_code"),
                message=status.get("error_message"),
            )
            return {}

        quotes = _extract_quotes(payload, set(symbol_list))
        if not quotes:
            logger.warning("quotes_response_empty", symbols=symbol_list)
        elif self.verbose:
            logger.info("quotes_fetched", symbols=sorted(quotes))
        return quotes
