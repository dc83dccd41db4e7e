"""
MARKET PULSE — Service Container
Explicitly constructed adapters and aggregators sharing one HTTP session.
"""
from dataclasses import dataclass
from typing import Optional

import aiohttp

from market_pulse.config.settings import DataSourceSettings, get_settings
from market_pulse.data.adapters.binance_adapter import BinanceTickerAdapter
from market_pulse.data.adapters.coingecko_adapter import CoinGeckoMarketAdapter
from market_pulse.data.adapters.stooq_adapter import StooqQuoteAdapter
from market_pulse.data.adapters.yahoo_adapter import YahooChartAdapter
from market_pulse.data.aggregators.crypto import CryptoAggregator
from market_pulse.data.aggregators.forex import ForexAggregator


@dataclass
class MarketServices:
    crypto: CryptoAggregator
    forex: ForexAggregator
    ticker: BinanceTickerAdapter


def build_services(
    session: aiohttp.ClientSession,
    settings: Optional[DataSourceSettings] = None,
) -> MarketServices:
    """Wire every adapter onto the given session. The caller owns and closes it."""
    settings = settings or get_settings().data
    return MarketServices(
        crypto=CryptoAggregator(
            CoinGeckoMarketAdapter(settings, session=session),
            cache_ttl_seconds=settings.crypto_cache_ttl_seconds,
            cache_maxsize=settings.crypto_cache_maxsize,
        ),
        forex=ForexAggregator(
            csv_adapter=StooqQuoteAdapter(settings, session=session),
            chart_adapter=YahooChartAdapter(settings, session=session),
        ),
        ticker=BinanceTickerAdapter(settings, session=session),
    )
