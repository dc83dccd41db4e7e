"""
MARKET PULSE — Yahoo Finance Chart Snapshot Adapter
Equities from the chart endpoint's `meta` block.
"""
import asyncio
from typing import Any, Optional, Tuple
from urllib.parse import quote

import aiohttp

from market_pulse.config.settings import DataSourceSettings, get_settings
from market_pulse.data.adapters.base import BaseDataAdapter, describe_error
from market_pulse.data.models import PriceQuote, DataSource
from market_pulse.utils.helpers import pct_change, to_float
from market_pulse.utils.logger import get_logger

logger = get_logger("yahoo_adapter")


def _extract_meta(payload: Any) -> Optional[dict]:
    if not isinstance(payload, dict):
        return None
    chart = payload.get("chart")
    if not isinstance(chart, dict):
        return None
    results = chart.get("result")
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        return None
    meta = results[0].get("meta")
    return meta if isinstance(meta, dict) else None


def parse_chart_snapshot(payload: Any) -> Optional[Tuple[float, float]]:
    """
    Read (price, change%) from chart.result[0].meta.

    Previous close comes from chartPreviousClose, then previousClose, then the
    price itself (zero change). Missing meta or a non-positive price is None.
    """
    meta = _extract_meta(payload)
    if meta is None:
        return None

    price = to_float(meta.get("regularMarketPrice"))
    if price is None or price <= 0:
        return None

    prev_close = (
        to_float(meta.get("chartPreviousClose"))
        or to_float(meta.get("previousClose"))
        or price
    )
    return price, round(pct_change(prev_close, price), 2)


class YahooChartAdapter(BaseDataAdapter):
    """Yahoo chart-snapshot adapter — equities."""

    def __init__(
        self,
        settings: Optional[DataSourceSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        settings = settings or get_settings().data
        super().__init__(
            source=DataSource.YAHOO,
            base_url=settings.yahoo_base_url,
            timeout_seconds=settings.yahoo_timeout_seconds,
            user_agent=settings.user_agent,
            session=session,
        )

    async def get_quote(self, symbol: str, timeout: Optional[float] = None) -> Optional[PriceQuote]:
        """
        Fetch the latest daily chart snapshot for a ticker (e.g. 'AAPL').
        A `timeout` hint can only shorten the configured limit.
        """
        try:
            session = await self._ensure_session()
            url = f"{self.base_url}/v8/finance/chart/{quote(symbol, safe='')}"
            params = {"interval": "1d", "range": "1d"}

            async with session.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self._timeout(timeout),
            ) as resp:
                if resp.status != 200:
                    logger.warning("yahoo_chart_error", status=resp.status, symbol=symbol)
                    return None
                data = await resp.json(content_type=None)

            parsed = parse_chart_snapshot(data)
            if parsed is None:
                logger.warning("yahoo_chart_missing_meta", symbol=symbol)
                return None

            price, change = parsed
            return PriceQuote(symbol=symbol, price=price, change=change, source=DataSource.YAHOO)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("yahoo_chart_unavailable", symbol=symbol, error=describe_error(e))
            return None
        except Exception as e:
            logger.error("yahoo_chart_exception", symbol=symbol, error=describe_error(e))
            return None
