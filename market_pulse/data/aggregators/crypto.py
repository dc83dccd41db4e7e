"""
MARKET PULSE — Crypto Listing Aggregator
Paginated market listing with id filtering, de-duplication and a short
revalidation cache to absorb bursts of concurrent polls.
"""
from typing import Any, Dict, List, Optional, Protocol, Tuple

from cachetools import TTLCache

from market_pulse.data.models import AssetRecord, CryptoPage
from market_pulse.utils.logger import get_logger

logger = get_logger("crypto_aggregator")

FETCH_FAILED = "Failed to fetch prices"


class MarketListAdapter(Protocol):
    async def get_markets(
        self,
        page: int = 1,
        per_page: int = 100,
        ids: Optional[List[str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[List[AssetRecord]]:
        ...


def dedupe_by_id(records: List[AssetRecord]) -> List[AssetRecord]:
    """Drop later duplicates, keeping upstream order."""
    seen = set()
    unique = []
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


class CryptoAggregator:
    """
    Thin layer over the market-list adapter.

    Never raises: any failure becomes CryptoPage(success=False, data=[]).
    A page is "the last one" when it returns fewer rows than requested.
    """

    def __init__(self, adapter: MarketListAdapter, cache_ttl_seconds: int = 30, cache_maxsize: int = 256):
        self.adapter = adapter
        self._cache: Optional[TTLCache] = (
            TTLCache(maxsize=cache_maxsize, ttl=cache_ttl_seconds) if cache_ttl_seconds > 0 else None
        )
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _cache_key(page: int, per_page: int, ids: Optional[List[str]]) -> Tuple[int, int, Tuple[str, ...]]:
        return page, per_page, tuple(ids or ())

    async def get_markets(
        self,
        page: int = 1,
        per_page: int = 100,
        ids: Optional[List[str]] = None,
        timeout: Optional[float] = None,
    ) -> CryptoPage:
        key = self._cache_key(page, per_page, ids)
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                self._hits += 1
                return cached
            self._misses += 1

        try:
            records = await self.adapter.get_markets(page=page, per_page=per_page, ids=ids, timeout=timeout)
        except Exception as e:
            logger.error("crypto_aggregation_exception", page=page, error=str(e))
            records = None

        if records is None:
            return CryptoPage(success=False, data=[], page=page, per_page=per_page, has_more=False, error=FETCH_FAILED)

        # Page size is judged on what upstream returned, before local filtering
        upstream_count = len(records)
        records = dedupe_by_id(records)
        if ids:
            wanted = set(ids)
            records = [r for r in records if r.id in wanted]

        result = CryptoPage(
            success=True,
            data=records,
            page=page,
            per_page=per_page,
            has_more=upstream_count >= per_page,
        )
        if self._cache is not None:
            self._cache[key] = result
        logger.debug("crypto_page_fetched", page=page, per_page=per_page, count=len(records))
        return result

    @property
    def stats(self) -> Dict[str, Any]:
        """Return cache statistics."""
        return {
            "cache_entries": len(self._cache) if self._cache is not None else 0,
            "cache_hits": self._hits,
            "cache_misses": self._misses,
        }
