"""
MARKET PULSE — Forex / Commodities / Equities Aggregator
Fans out to the CSV and chart adapters concurrently, rounds each instrument to
its fixed precision, and fills every failed key from the fallback table.
"""
import asyncio
from typing import Dict, Iterable, Optional, Protocol, Sequence

from market_pulse.data.instruments import (
    CSV_INSTRUMENTS,
    CHART_INSTRUMENTS,
    FALLBACK_QUOTES,
    InstrumentSpec,
)
from market_pulse.data.models import DataSource, ForexQuote, ForexSnapshot, PriceQuote
from market_pulse.utils.helpers import round_to
from market_pulse.utils.logger import get_logger

logger = get_logger("forex_aggregator")


class QuoteAdapter(Protocol):
    async def get_quote(self, symbol: str, timeout: Optional[float] = None) -> Optional[PriceQuote]:
        ...


class ForexAggregator:
    """
    Total function over its two lookup tables.

    Both tables and every lookup inside them run concurrently with a
    settle-all join, so one slow or broken source never blocks the others.
    The result always holds every key of both tables: a live quote where the
    adapter succeeded, the fallback quote otherwise. Nothing here raises.
    """

    def __init__(
        self,
        csv_adapter: QuoteAdapter,
        chart_adapter: QuoteAdapter,
        csv_instruments: Sequence[InstrumentSpec] = CSV_INSTRUMENTS,
        chart_instruments: Sequence[InstrumentSpec] = CHART_INSTRUMENTS,
        fallback_quotes: Optional[Dict[str, tuple]] = None,
    ):
        self.csv_adapter = csv_adapter
        self.chart_adapter = chart_adapter
        self.csv_instruments = tuple(csv_instruments)
        self.chart_instruments = tuple(chart_instruments)
        self.fallback_quotes = dict(FALLBACK_QUOTES if fallback_quotes is None else fallback_quotes)

    @property
    def instruments(self) -> tuple:
        return self.csv_instruments + self.chart_instruments

    async def _resolve_table(
        self, adapter: QuoteAdapter, table: Iterable[InstrumentSpec], timeout: Optional[float] = None
    ) -> Dict[str, ForexQuote]:
        table = list(table)
        results = await asyncio.gather(
            *(adapter.get_quote(spec.upstream, timeout=timeout) for spec in table),
            return_exceptions=True,
        )

        resolved: Dict[str, ForexQuote] = {}
        for spec, result in zip(table, results):
            if isinstance(result, BaseException):
                logger.warning("instrument_lookup_failed", key=spec.key, upstream=spec.upstream, error=str(result))
                continue
            if result is None or result.price <= 0:
                continue
            resolved[spec.key] = ForexQuote(
                symbol=spec.key,
                price=round_to(result.price, spec.decimals),
                change=result.change,
                source=result.source,
            )
        return resolved

    def _fallback_quote(self, spec: InstrumentSpec) -> Optional[ForexQuote]:
        fallback = self.fallback_quotes.get(spec.key)
        if fallback is None:
            return None
        price, change = fallback
        return ForexQuote(
            symbol=spec.key,
            price=round_to(price, spec.decimals),
            change=change,
            source=DataSource.FALLBACK,
        )

    def fallback_snapshot(self) -> ForexSnapshot:
        """The complete fallback table, used when aggregation fails outright."""
        quotes = {}
        for spec in self.instruments:
            quote = self._fallback_quote(spec)
            if quote is not None:
                quotes[spec.key] = quote
        return ForexSnapshot(quotes=quotes, live=0, fallback=len(quotes))

    async def get_prices(self, timeout: Optional[float] = None) -> ForexSnapshot:
        """Resolve every instrument; live where possible, fallback everywhere else."""
        try:
            waves = await asyncio.gather(
                self._resolve_table(self.csv_adapter, self.csv_instruments, timeout),
                self._resolve_table(self.chart_adapter, self.chart_instruments, timeout),
                return_exceptions=True,
            )

            live: Dict[str, ForexQuote] = {}
            for wave in waves:
                if isinstance(wave, BaseException):
                    logger.error("instrument_wave_failed", error=str(wave))
                    continue
                live.update(wave)

            quotes: Dict[str, ForexQuote] = {}
            fallback_count = 0
            for spec in self.instruments:
                if spec.key in live:
                    quotes[spec.key] = live[spec.key]
                    continue
                quote = self._fallback_quote(spec)
                if quote is not None:
                    quotes[spec.key] = quote
                    fallback_count += 1

            if fallback_count:
                logger.info(
                    "forex_fallback_applied",
                    fallback=fallback_count,
                    live=len(live),
                    keys=[k for k, q in quotes.items() if q.source == DataSource.FALLBACK],
                )
            return ForexSnapshot(quotes=quotes, live=len(live), fallback=fallback_count)
        except Exception as e:
            logger.error("forex_aggregation_exception", error=str(e))
            return self.fallback_snapshot()
