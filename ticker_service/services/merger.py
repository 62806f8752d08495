"""Combine supply and quote fetch results with the previous snapshot."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from ticker_service.models import CurrencyQuote, MarketQuote, Snapshot, utcnow
from ticker_service.services.utils.numbers import (
    format_supply,
    ratio,
    round_btc,
    round_usd,
    round_whole,
)


def _keep(new: str, old: str, empty: str = "") -> str:
    """Fresh value when non-empty, else the previous one, else the field's empty form."""
    return new or old or empty


def _merge_currency(quote: MarketQuote, old: Optional[CurrencyQuote]) -> CurrencyQuote:
    old = old or CurrencyQuote()
    return CurrencyQuote(
        price_usd=_keep(round_btc(quote.price_usd), old.price_usd),
        percent_change_24h=_keep(round_btc(quote.percent_change_24h), old.percent_change_24h),
    )


def merge(
    previous: Optional[Snapshot],
    supply: Decimal,
    quotes: Mapping[str, MarketQuote],
    *,
    tracked: str = "vlx",
    reference: str = "btc",
    aliases: Optional[Mapping[str, Sequence[str]]] = None,
    now: Optional[datetime] = None,
) -> Snapshot:
    """
    Build the next snapshot. Never raises.

    Every field falls back to its previous value when the fresh one is empty
    (zero or missing), so a populated field never regresses. When the tracked
    token has no quote at all the previous snapshot is returned untouched.
    """
    tracked_quote = quotes.get(tracked)
    if tracked_quote is None:
        return previous if previous is not None else Snapshot.empty()

    prev = previous or Snapshot.empty()
    reference_quote = quotes.get(reference) or MarketQuote()

    currencies: dict[str, CurrencyQuote] = {}
    for code, quote in quotes.items():
        if code == tracked:
            continue
        currencies[code] = _merge_currency(quote, prev.per_currency.get(code))
    for code, old in prev.per_currency.items():
        currencies.setdefault(code, old)

    for code, alias_keys in (aliases or {}).items():
        entry = currencies.get(code)
        if entry is None:
            continue
        for alias in alias_keys:
            currencies[alias] = entry

    return Snapshot(
        total_supply=_keep(format_supply(supply), prev.total_supply, empty="0"),
        price_usd=_keep(round_usd(tracked_quote.price_usd), prev.price_usd),
        price_btc=_keep(round_btc(ratio(tracked_quote.price_usd, reference_quote.price_usd)), prev.price_btc),
        volume_usd=_keep(round_whole(tracked_quote.volume_24h_usd), prev.volume_usd),
        volume_btc=_keep(
            round_btc(ratio(tracked_quote.volume_24h_usd, reference_quote.price_usd)),
            prev.volume_btc,
        ),
        per_currency=currencies,
        last_refreshed_at=now or utcnow(),
    )


def validate_aliases(
    currencies: Iterable[str],
    aliases: Mapping[str, Sequence[str]],
    *,
    tracked: str,
) -> None:
    """Reject alias tables that point at unknown currencies or shadow real ones."""
    known = {c.lower() for c in currencies}
    seen: set[str] = set()
    for code, alias_keys in aliases.items():
        if code not in known or code == tracked:
            raise ValueError(f"alias source '{code}' is not a quoted currency")
        for alias in alias_keys:
            if alias in known or alias == tracked:
                raise ValueError(f"alias '{alias}' shadows a configured currency")
            if alias in seen:
                raise ValueError(f"alias '{alias}' declared more than once")
            seen.add(alias)
