"""
Refresh coordinator and query surface for the cached ticker snapshot.

One ``TickerCache`` owns the snapshot. It refreshes it on a fixed-delay
background loop, lets concurrent callers share a single in-flight cycle and
bounds every cycle with a timeout. Readers get whatever is cached; only the
very first read (before any snapshot exists) waits for a fetch.
"""
from __future__ import annotations

import asyncio
import contextlib
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Protocol, Sequence

import structlog

from ticker_service.models import MarketQuote, Snapshot, utcnow
from ticker_service.services.merger import merge

logger = structlog.get_logger(__name__)


class SupplyFetcher(Protocol):
    async def fetch_total_supply(self) -> Decimal: ...


class QuotesFetcher(Protocol):
    async def fetch_quotes(self, symbols: Sequence[str]) -> dict[str, MarketQuote]: ...


class TickerCache:
    def __init__(
        self,
        supply_client: SupplyFetcher,
        quotes_client: QuotesFetcher,
        *,
        symbols: Sequence[str],
        tracked: str,
        reference: str,
        aliases: Optional[Mapping[str, Sequence[str]]] = None,
        refresh_period: float = 30.0,
        refresh_timeout: float = 10.0,
        verbose: bool = False,
    ):
        self._supply_client = supply_client
        self._quotes_client = quotes_client
        self._symbols = list(symbols)
        self._tracked = tracked
        self._reference = reference
        self._aliases = dict(aliases or {})
        self.refresh_period = refresh_period
        self.refresh_timeout = refresh_timeout
        self.verbose = verbose

        self._snapshot: Optional[Snapshot] = None
        self._inflight: Optional[asyncio.Task] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._cycles_started = 0
        self._cycles_applied = 0
        self._cycles_timed_out = 0
        self._last_applied_cycle = 0
        self._last_attempt_at: Optional[datetime] = None

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    async def get_snapshot(self) -> Snapshot:
        """Cached snapshot; waits for one refresh only when nothing is cached yet."""
        if self._snapshot is not None:
            return self._snapshot
        snapshot = await self.refresh_once()
        return snapshot if snapshot is not None else Snapshot.empty()

    async def refresh_once(self) -> Optional[Snapshot]:
        """Run a refresh cycle, or join the one already in flight."""
        if self._inflight is None:
            self._cycles_started += 1
            self._inflight = asyncio.create_task(self._run_cycle(self._cycles_started))
        # shield: a cancelled waiter must not cancel the shared cycle
        return await asyncio.shield(self._inflight)

    async def _fetch(self) -> tuple[Decimal, dict[str, MarketQuote]]:
        supply, quotes = await asyncio.gather(
            self._supply_client.fetch_total_supply(),
            self._quotes_client.fetch_quotes(self._symbols),
        )
        return supply, quotes

    async def _run_cycle(self, cycle: int) -> Optional[Snapshot]:
        started_at = time.monotonic()
        self._last_attempt_at = utcnow()
        try:
            try:
                supply, quotes = await asyncio.wait_for(self._fetch(), timeout=self.refresh_timeout)
                merged = merge(
                    self._snapshot,
                    supply,
                    quotes,
                    tracked=self._tracked,
                    reference=self._reference,
                    aliases=self._aliases,
                )
                self._apply(cycle, merged)
            except asyncio.TimeoutError:
                self._cycles_timed_out += 1
                logger.warning("ticker_refresh_timed_out", cycle=cycle, timeout=self.refresh_timeout)
                return self._snapshot
            except Exception:
                logger.exception("ticker_refresh_failed", cycle=cycle)
                return self._snapshot

            if self.verbose:
                logger.info(
                    "ticker_refreshed",
                    cycle=cycle,
                    duration_ms=round((time.monotonic() - started_at) * 1000),
                    total_supply=merged.total_supply,
                    price_usd=merged.price_usd,
                )
            return self._snapshot
        finally:
            self._inflight = None

    def _apply(self, cycle: int, snapshot: Snapshot) -> None:
        if cycle <= self._last_applied_cycle:
            logger.warning("ticker_stale_cycle_discarded", cycle=cycle, last_applied=self._last_applied_cycle)
            return
        self._last_applied_cycle = cycle
        self._cycles_applied += 1
        self._snapshot = snapshot

    async def _run_forever(self) -> None:
        while True:
            try:
                await self.refresh_once()
            except Exception:
                # only cancellation ends the loop
                logger.exception("ticker_refresh_loop_error")
            await asyncio.sleep(self.refresh_period)

    def start(self) -> None:
        """Start the background refresh loop (idempotent)."""
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._run_forever())
            logger.info("ticker_refresh_loop_started", period=self.refresh_period, timeout=self.refresh_timeout)

    async def stop(self) -> None:
        """Cancel the background loop and any in-flight cycle."""
        tasks = [t for t in (self._loop_task, self._inflight) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._loop_task = None
        self._inflight = None
        logger.info("ticker_refresh_loop_stopped")

    def status(self) -> dict[str, Any]:
        snapshot = self._snapshot
        return {
            "has_snapshot": snapshot is not None,
            "last_refreshed_at": snapshot.last_refreshed_at.isoformat()
            if snapshot is not None and snapshot.last_refreshed_at
            else None,
            "last_attempt_at": self._last_attempt_at.isoformat() if self._last_attempt_at else None,
            "refreshing": self._inflight is not None,
            "loop_running": self._loop_task is not None and not self._loop_task.done(),
            "cycles_started": self._cycles_started,
            "cycles_applied": self._cycles_applied,
            "cycles_timed_out": self._cycles_timed_out,
        }
