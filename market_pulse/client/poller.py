"""
MARKET PULSE — Market Prices Poller
Periodic crypto + forex polling that owns one MarketState.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from market_pulse.config.settings import ClientSettings, get_settings
from market_pulse.utils.helpers import utc_now
from market_pulse.utils.logger import get_logger

logger = get_logger("poller")

FETCH_ERROR = "Failed to fetch market data"


class PriceApi(Protocol):
    async def get_crypto(
        self, ids: Optional[List[str]] = None, page: Optional[int] = None, per_page: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        ...

    async def get_forex(self) -> Optional[Dict[str, Any]]:
        ...


@dataclass
class MarketState:
    """Authoritative market data for one poller instance."""
    crypto: List[Dict[str, Any]] = field(default_factory=list)
    forex: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    loading: bool = True
    error: Optional[str] = None
    last_updated: Optional[datetime] = None


class MarketPricesPoller:
    """
    Polls the crypto and forex endpoints on a fixed interval.

    The first cycle fires immediately on start(). `loading` is only true until
    the first cycle completes; background refreshes never flip it back.
    Each source degrades independently: a failed crypto fetch keeps the last
    crypto list and vice versa. `error` is set only when both fetches fail in
    the same cycle, and existing data stays in place.

    Cycles are numbered. A cycle is discarded when a newer cycle has already
    been applied, when reconfigure() ran after it started, or when it finishes
    after stop(). Overlapping cycles are fine: a slow cycle still lands as long
    as nothing newer has landed first.

    Instances are independent; nothing is shared between pollers.
    """

    def __init__(
        self,
        client: PriceApi,
        refresh_interval: Optional[float] = None,
        crypto_ids: Optional[List[str]] = None,
        crypto_per_page: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
        settings: Optional[ClientSettings] = None,
    ):
        settings = settings or get_settings().client
        self.client = client
        self.refresh_interval = refresh_interval or settings.refresh_interval_seconds
        self.crypto_ids = list(crypto_ids if crypto_ids is not None else settings.crypto_ids)
        self.crypto_per_page = crypto_per_page or len(self.crypto_ids) or None
        self.clock = clock
        self.state = MarketState()

        self._seq = 0
        self._applied_seq = 0
        self._config_seq = 0
        self._stopped = False
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self.cycles_applied = 0
        self.cycles_discarded = 0

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ─── Poll cycle ─────────────────────────────────────────────

    async def refresh(self) -> MarketState:
        """Run one poll cycle and merge its results into state."""
        self._seq += 1
        seq = self._seq

        crypto_payload, forex_payload = await asyncio.gather(
            self.client.get_crypto(ids=self.crypto_ids or None, per_page=self.crypto_per_page),
            self.client.get_forex(),
            return_exceptions=True,
        )

        if self._stopped or seq <= self._applied_seq or seq < self._config_seq:
            self.cycles_discarded += 1
            logger.debug("poll_cycle_discarded", seq=seq, applied=self._applied_seq, config=self._config_seq)
            return self.state

        self._applied_seq = seq
        self._apply(
            None if isinstance(crypto_payload, BaseException) else crypto_payload,
            None if isinstance(forex_payload, BaseException) else forex_payload,
        )
        self.cycles_applied += 1
        return self.state

    def _apply(self, crypto_payload: Optional[Dict[str, Any]], forex_payload: Optional[Dict[str, Any]]) -> None:
        state = self.state
        try:
            if crypto_payload is None and forex_payload is None:
                state.error = FETCH_ERROR
                logger.warning("market_data_unavailable")
                return

            if crypto_payload is not None:
                rows = crypto_payload.get("data")
                if crypto_payload.get("success") and isinstance(rows, list) and rows:
                    state.crypto = rows

            if forex_payload is not None:
                quotes = forex_payload.get("data")
                if isinstance(quotes, dict) and quotes:
                    # A failed envelope still carries the fallback table; only
                    # use it when there is nothing better to show.
                    if forex_payload.get("success") or not state.forex:
                        state.forex = quotes

            state.last_updated = self.clock()
            state.error = None
        finally:
            state.loading = False

    # ─── Lifecycle ──────────────────────────────────────────────

    def _spawn_cycle(self) -> None:
        task = asyncio.create_task(self.refresh())
        self._inflight.add(task)
        task.add_done_callback(self._cycle_done)

    def _cycle_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("poll_cycle_exception", error=str(task.exception()))

    async def _run_timer(self) -> None:
        while True:
            self._spawn_cycle()
            await asyncio.sleep(self.refresh_interval)

    def start(self) -> asyncio.Task:
        """Fire an immediate cycle and schedule the repeating timer. Returns the timer handle."""
        if self.running:
            return self._timer
        self._stopped = False
        self._timer = asyncio.create_task(self._run_timer())
        logger.info("poller_started", interval=self.refresh_interval, crypto_ids=self.crypto_ids)
        return self._timer

    async def stop(self) -> None:
        """Cancel the timer. In-flight cycles may finish but their results are discarded."""
        self._stopped = True
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
            logger.info("poller_stopped", cycles=self.cycles_applied)

    async def wait_idle(self) -> None:
        """Wait for in-flight cycles to settle."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def reconfigure(self, crypto_ids: Optional[List[str]] = None, crypto_per_page: Optional[int] = None) -> None:
        """Change the crypto query; any cycle already in flight becomes stale."""
        if crypto_ids is not None:
            self.crypto_ids = list(crypto_ids)
        if crypto_per_page is not None:
            self.crypto_per_page = crypto_per_page
        self._seq += 1
        self._config_seq = self._seq
        if self.running:
            self._spawn_cycle()

    async def __aenter__(self) -> "MarketPricesPoller":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
        await self.wait_idle()
