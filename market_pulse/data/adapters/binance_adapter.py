"""
MARKET PULSE — Binance Ticker Adapter
Single-symbol venue ticker: last price plus 24h change.
"""
import asyncio
from typing import Optional

import aiohttp

from market_pulse.config.settings import DataSourceSettings, get_settings
from market_pulse.data.adapters.base import BaseDataAdapter, describe_error
from market_pulse.data.models import PriceQuote, DataSource
from market_pulse.utils.helpers import to_float
from market_pulse.utils.logger import get_logger

logger = get_logger("binance_adapter")


class BinanceTickerAdapter(BaseDataAdapter):
    """Binance spot ticker adapter — price call + 24h stats call."""

    def __init__(
        self,
        settings: Optional[DataSourceSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        settings = settings or get_settings().data
        super().__init__(
            source=DataSource.BINANCE,
            base_url=settings.binance_base_url,
            timeout_seconds=settings.binance_timeout_seconds,
            user_agent=settings.user_agent,
            session=session,
        )

    async def _get_ticker_field(
        self, path: str, symbol: str, field: str, timeout: Optional[float] = None
    ) -> Optional[float]:
        session = await self._ensure_session()
        url = f"{self.base_url}{path}"
        async with session.get(
            url,
            params={"symbol": symbol},
            headers=self._headers(),
            timeout=self._timeout(timeout),
        ) as resp:
            if resp.status != 200:
                logger.warning("binance_ticker_error", path=path, status=resp.status, symbol=symbol)
                return None
            data = await resp.json(content_type=None)
        if not isinstance(data, dict):
            return None
        return to_float(data.get(field))

    async def get_quote(self, symbol: str, timeout: Optional[float] = None) -> Optional[PriceQuote]:
        """
        Fetch the last price and the 24h change concurrently.

        The price call decides success. A failed stats call still yields a
        quote, with change 0.0.
        """
        symbol = symbol.strip().upper()
        try:
            price_result, change_result = await asyncio.gather(
                self._get_ticker_field("/api/v3/ticker/price", symbol, "price", timeout),
                self._get_ticker_field("/api/v3/ticker/24hr", symbol, "priceChangePercent", timeout),
                return_exceptions=True,
            )

            if isinstance(price_result, BaseException):
                logger.warning("binance_price_unavailable", symbol=symbol, error=describe_error(price_result))
                return None
            if price_result is None or price_result <= 0:
                return None

            if isinstance(change_result, BaseException):
                logger.warning("binance_stats_unavailable", symbol=symbol, error=describe_error(change_result))
                change_result = None

            return PriceQuote(
                symbol=symbol,
                price=price_result,
                change=change_result if change_result is not None else 0.0,
                source=DataSource.BINANCE,
            )
        except Exception as e:
            logger.error("binance_ticker_exception", symbol=symbol, error=describe_error(e))
            return None
