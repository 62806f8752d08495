"""Async rate limiting helpers."""
from __future__ import annotations

from typing import Dict, Tuple

from aiolimiter import AsyncLimiter

_DEFAULT_LIMITS: Dict[str, AsyncLimiter] = {}

# (max_rate, time_period) per upstream resource
_BUDGETS: Dict[str, Tuple[float, float]] = {
    # CoinMarketCap basic plan allows 30 calls per minute
    "quotes": (30, 60),
    "supply": (5, 1),
}


def get_limiter(resource: str) -> AsyncLimiter:
    """Return (and cache) a limiter for given resource name."""
    if resource not in _DEFAULT_LIMITS:
        max_rate, period = _BUDGETS.get(resource, (3, 1))
        _DEFAULT_LIMITS[resource] = AsyncLimiter(max_rate=max_rate, time_period=period)
    return _DEFAULT_LIMITS[resource]
