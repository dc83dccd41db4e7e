"""
MARKET PULSE — Stooq CSV Quote Adapter
Forex pairs and commodities from the Stooq light quote CSV.
"""
import asyncio
from typing import Optional, Tuple

import aiohttp

from market_pulse.config.settings import DataSourceSettings, get_settings
from market_pulse.data.adapters.base import BaseDataAdapter, CSV_ACCEPT, describe_error
from market_pulse.data.models import PriceQuote, DataSource
from market_pulse.utils.helpers import pct_change, to_float
from market_pulse.utils.logger import get_logger

logger = get_logger("stooq_adapter")

# Symbol,Date,Time,Open,High,Low,Close,Volume
OPEN_FIELD = 3
CLOSE_FIELD = 6
MIN_FIELDS = 7


def parse_quote_csv(text: str) -> Optional[Tuple[float, float]]:
    """
    Parse the trailing data line of a Stooq quote CSV into (price, change%).

    Change is open-to-close, rounded to 2 decimals, and 0.0 when the open is
    missing or not positive. Returns None for short/malformed CSV or a
    non-positive close.
    """
    if not text:
        return None
    lines = [line for line in text.strip().splitlines() if line.strip()]
    if len(lines) < 2:
        return None

    parts = [p.strip() for p in lines[-1].split(",")]
    if len(parts) < MIN_FIELDS:
        return None

    close = to_float(parts[CLOSE_FIELD])
    if close is None or close <= 0:
        return None

    open_ = to_float(parts[OPEN_FIELD])
    change = round(pct_change(open_, close), 2) if open_ is not None else 0.0
    return close, change


class StooqQuoteAdapter(BaseDataAdapter):
    """Stooq CSV adapter — forex and commodities."""

    def __init__(
        self,
        settings: Optional[DataSourceSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        settings = settings or get_settings().data
        super().__init__(
            source=DataSource.STOOQ,
            base_url=settings.stooq_base_url,
            timeout_seconds=settings.stooq_timeout_seconds,
            user_agent=settings.user_agent,
            session=session,
        )

    async def get_quote(self, symbol: str, timeout: Optional[float] = None) -> Optional[PriceQuote]:
        """Fetch a single quote (e.g. 'eurusd', 'xauusd'). `timeout` can only shorten the limit."""
        try:
            session = await self._ensure_session()
            url = f"{self.base_url}/q/l/"
            params = {"s": symbol.lower(), "f": "sd2t2ohlcv", "h": "", "e": "csv"}

            async with session.get(
                url,
                params=params,
                headers=self._headers(CSV_ACCEPT),
                timeout=self._timeout(timeout),
            ) as resp:
                if resp.status != 200:
                    logger.warning("stooq_quote_error", status=resp.status, symbol=symbol)
                    return None
                text = await resp.text()

            parsed = parse_quote_csv(text)
            if parsed is None:
                logger.warning("stooq_malformed_csv", symbol=symbol)
                return None

            price, change = parsed
            return PriceQuote(symbol=symbol, price=price, change=change, source=DataSource.STOOQ)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("stooq_quote_unavailable", symbol=symbol, error=describe_error(e))
            return None
        except Exception as e:
            logger.error("stooq_quote_exception", symbol=symbol, error=describe_error(e))
            return None
