"""
MARKET PULSE — CoinGecko Market Listing Adapter
Bulk, market-cap ordered crypto listing for tables and cards.
"""
import asyncio
from typing import Optional, List

import aiohttp
from pydantic import ValidationError

from market_pulse.config.settings import DataSourceSettings, get_settings
from market_pulse.data.adapters.base import BaseDataAdapter, describe_error
from market_pulse.data.models import AssetRecord, DataSource
from market_pulse.utils.logger import get_logger

logger = get_logger("coingecko_adapter")


class CoinGeckoMarketAdapter(BaseDataAdapter):
    """CoinGecko /coins/markets adapter — one page per call."""

    def __init__(
        self,
        settings: Optional[DataSourceSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        settings = settings or get_settings().data
        super().__init__(
            source=DataSource.COINGECKO,
            base_url=settings.coingecko_base_url,
            timeout_seconds=settings.coingecko_timeout_seconds,
            user_agent=settings.user_agent,
            session=session,
        )

    async def get_markets(
        self,
        page: int = 1,
        per_page: int = 100,
        ids: Optional[List[str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[List[AssetRecord]]:
        """
        Fetch one page of the USD market listing in upstream rank order.

        Returns None when the page could not be fetched or is not a JSON list.
        Rows that do not validate are skipped; an empty list is a valid page.
        """
        try:
            session = await self._ensure_session()
            url = f"{self.base_url}/coins/markets"
            params = {
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": str(per_page),
                "page": str(page),
                "sparkline": "false",
                "price_change_percentage": "24h",
            }
            if ids:
                params["ids"] = ",".join(ids)

            async with session.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self._timeout(timeout),
            ) as resp:
                if resp.status != 200:
                    logger.warning("coingecko_markets_error", status=resp.status, page=page)
                    return None
                content_type = resp.headers.get("Content-Type", "")
                if "application/json" not in content_type:
                    logger.warning("coingecko_unexpected_content_type", content_type=content_type, page=page)
                    return None
                data = await resp.json()

            if not isinstance(data, list):
                logger.warning("coingecko_unexpected_body", body_type=type(data).__name__, page=page)
                return None

            records: List[AssetRecord] = []
            for item in data:
                try:
                    records.append(AssetRecord.model_validate(item))
                except ValidationError as e:
                    logger.warning("coingecko_invalid_row", page=page, error=str(e.errors()[:1]))
            return records
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("coingecko_markets_unavailable", page=page, error=describe_error(e))
            return None
        except Exception as e:
            logger.error("coingecko_markets_exception", page=page, error=describe_error(e))
            return None
