from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarketQuote(BaseModel):
    """Raw USD quote for one currency as returned by the market-data API."""
    price_usd: float = 0.0
    volume_24h_usd: float = 0.0
    percent_change_24h: float = 0.0


class CurrencyQuote(BaseModel):
    price_usd: str = ""
    percent_change_24h: str = ""

    class Config:
        frozen = True


class Snapshot(BaseModel):
    """
    Merged ticker state. Immutable: each refresh builds a new instance.

    ``last_refreshed_at`` is the time of the last applied merge; cycles that
    time out or bring no quote for the tracked token leave it untouched (see
    ``TickerCache.status()["last_attempt_at"]`` for the latest attempt).
    """
    total_supply: str = "0"
    price_usd: str = ""
    price_btc: str = ""
    volume_usd: str = ""
    volume_btc: str = ""
    per_currency: Dict[str, CurrencyQuote] = Field(default_factory=dict)
    last_refreshed_at: Optional[datetime] = None

    class Config:
        frozen = True

    @property
    def available_supply(self) -> str:
        return self.total_supply

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    def to_ticker(self, include_changes: bool = True) -> dict[str, Any]:
        """Public JSON shape served on /ticker."""
        out: dict[str, Any] = {
            "total_supply": self.total_supply,
            "available_supply": self.available_supply,
            "price_usd": self.price_usd,
            "price_btc": self.price_btc,
            "volume": self.volume_usd,
            "volume_btc": self.volume_btc,
            "last_refreshed_at": self.last_refreshed_at.isoformat() if self.last_refreshed_at else None,
        }
        for code in sorted(self.per_currency):
            entry = self.per_currency[code]
            out[f"{code}_price_usd"] = entry.price_usd
            if include_changes:
                out[f"{code}_percent_change_24h"] = entry.percent_change_24h
        return out
