from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

import httpx
import structlog
from httpx import Request

from ticker_service.core.http import get_async_client, send_request
from ticker_service.core.limits import get_limiter
from ticker_service.services.utils.numbers import normalize_numeric

logger = structlog.get_logger(__name__)

# Lamports-style base units per whole token
SUPPLY_DIVISOR = Decimal(10) ** 9


class SupplyClient:
    """JSON-RPC client for the chain's ``getSupply`` call."""

    def __init__(self, rpc_url: str, *, client: httpx.AsyncClient | None = None, verbose: bool = False):
        self.rpc_url = rpc_url
        self._client = client
        self.verbose = verbose

    def _payload(self) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": "getSupply",
            "params": [{"commitment": "max"}],
        }

    async def fetch_total_supply(self) -> Decimal:
        """Total supply in whole tokens, or ``Decimal(0)`` on any failure."""
        client = self._client or await get_async_client()
        request = Request(
            "POST",
            self.rpc_url,
            json=self._payload(),
            headers={"accept": "*/*", "cache-control": "no-cache"},
        )
        try:
            async with get_limiter("supply"):
                response = await send_request(client, request)
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("supply_fetch_http_error", status=e.response.status_code, url=self.rpc_url)
            return Decimal(0)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("supply_fetch_failed", error=str(e), url=self.rpc_url)
            return Decimal(0)

        result = body.get("result") if isinstance(body, dict) else None
        value = result.get("value") if isinstance(result, dict) else None
        total = value.get("total") if isinstance(value, dict) else None
        amount = normalize_numeric(total)
        if amount <= 0:
            logger.warning("supply_response_invalid", response=body)
            return Decimal(0)

        if self.verbose:
            logger.info("supply_fetched", total=str(total))
        return amount / SUPPLY_DIVISOR
