"""
MARKET PULSE — Crypto Listing Pager
"Load more" pagination over /prices/crypto for the bulk market table.
"""
import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from market_pulse.client.poller import PriceApi
from market_pulse.config.settings import ClientSettings, get_settings
from market_pulse.utils.helpers import utc_now
from market_pulse.utils.logger import get_logger

logger = get_logger("listing")


def merge_unique(existing: List[Dict[str, Any]], incoming: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Append incoming rows whose id is not already present; never yields duplicate ids."""
    seen = set()
    merged = []
    for row in list(existing) + list(incoming):
        row_id = row.get("id")
        if row_id in seen:
            continue
        seen.add(row_id)
        merged.append(row)
    return merged


class CryptoListingPager:
    """
    Append-mode listing state.

    load_more() fetches the next page and appends only unseen ids. A page with
    fewer rows than per_page, or a success:false envelope, ends pagination.
    An unreachable endpoint leaves has_more as it was, so the next call
    retries. refresh() reloads page 1 on the timer and keeps the rows
    appended after it.
    """

    def __init__(
        self,
        client: PriceApi,
        per_page: Optional[int] = None,
        refresh_interval: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
        settings: Optional[ClientSettings] = None,
    ):
        settings = settings or get_settings().client
        self.client = client
        self.per_page = per_page or settings.listing_per_page
        self.refresh_interval = refresh_interval or settings.listing_refresh_interval_seconds
        self.clock = clock

        self.coins: List[Dict[str, Any]] = []
        self.page = 1
        self.has_more = True
        self.loading = True
        self.loading_more = False
        self.last_updated: Optional[datetime] = None
        self._head_len = 0
        self._timer: Optional[asyncio.Task] = None

    @property
    def total_loaded(self) -> int:
        return len(self.coins)

    async def _fetch_page(self, page: int) -> Tuple[bool, Optional[List[Dict[str, Any]]]]:
        """(reachable, rows). rows is None when the envelope reports failure."""
        payload = await self.client.get_crypto(page=page, per_page=self.per_page)
        if payload is None:
            return False, None
        rows = payload.get("data")
        if not payload.get("success") or not isinstance(rows, list):
            return True, None
        return True, [row for row in rows if isinstance(row, dict) and row.get("id")]

    async def refresh(self) -> None:
        """Reload page 1, keeping previously appended pages behind it."""
        try:
            reachable, rows = await self._fetch_page(1)
        finally:
            self.loading = False

        if rows is None:
            logger.warning("listing_refresh_failed", reachable=reachable)
            return
        if not rows:
            self.has_more = False
            return

        head = merge_unique([], rows)
        tail = self.coins[self._head_len:]
        self.coins = merge_unique(head, tail)
        self._head_len = len(head)
        if self.page == 1:
            self.has_more = len(rows) >= self.per_page
        self.last_updated = self.clock()

    async def load_more(self) -> int:
        """Fetch the next page and append unseen rows. Returns how many were added."""
        if self.loading_more or not self.has_more:
            return 0

        self.loading_more = True
        next_page = self.page + 1
        try:
            reachable, rows = await self._fetch_page(next_page)
        finally:
            self.loading_more = False

        if not reachable:
            logger.warning("listing_page_unreachable", page=next_page)
            return 0
        if not rows:
            self.has_more = False
            logger.info("listing_exhausted", page=next_page)
            return 0

        before = len(self.coins)
        self.coins = merge_unique(self.coins, rows)
        self.page = next_page
        self.has_more = len(rows) >= self.per_page
        self.last_updated = self.clock()
        return len(self.coins) - before

    async def _run_timer(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception as e:
                logger.error("listing_refresh_exception", error=str(e))
            await asyncio.sleep(self.refresh_interval)

    def start(self) -> asyncio.Task:
        if self._timer is None or self._timer.done():
            self._timer = asyncio.create_task(self._run_timer())
        return self._timer

    async def stop(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "CryptoListingPager":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
