"""Shared HTTP client utilities."""
from __future__ import annotations

import asyncio
from typing import Optional

import httpx

_client: Optional[httpx.AsyncClient] = None
_client_lock = asyncio.Lock()

# Kept below the refresh ceiling so a slow upstream fails at the client first.
DEFAULT_TIMEOUT = httpx.Timeout(8.0, connect=4.0)


async def send_request(client: httpx.AsyncClient, request: httpx.Request) -> httpx.Response:
    """Send a single request (no retries) and raise on non-2xx."""
    response = await client.send(request)
    response.raise_for_status()
    return response


async def get_async_client() -> httpx.AsyncClient:
    """Return the shared AsyncClient instance."""
    global _client
    if _client is not None:
        return _client

    async with _client_lock:
        if _client is None:
            _client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
        return _client


async def close_async_client() -> None:
    global _client
    async with _client_lock:
        if _client is not None:
            await _client.aclose()
            _client = None
