"""
MARKET PULSE — Instrument Tables
Fixed lookup tables for the forex/commodities/equities map, with per-instrument
display precision and last-known-good fallback quotes.
"""
from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class InstrumentSpec:
    """One row of a lookup table: instrument key -> upstream symbol."""
    key: str
    upstream: str
    decimals: int


# Instrument key -> Stooq CSV symbol
CSV_INSTRUMENTS: Tuple[InstrumentSpec, ...] = (
    InstrumentSpec("EUR/USD", "eurusd", 4),
    InstrumentSpec("GBP/USD", "gbpusd", 4),
    InstrumentSpec("USD/JPY", "usdjpy", 2),
    InstrumentSpec("Gold", "xauusd", 2),
    InstrumentSpec("Silver", "xagusd", 3),
    InstrumentSpec("Crude Oil", "cl.f", 2),
)

# Instrument key -> Yahoo chart symbol
CHART_INSTRUMENTS: Tuple[InstrumentSpec, ...] = (
    InstrumentSpec("AAPL", "AAPL", 2),
    InstrumentSpec("MSFT", "MSFT", 2),
    InstrumentSpec("TSLA", "TSLA", 2),
    InstrumentSpec("NVDA", "NVDA", 2),
)

# Last-known-good (price, change%) per instrument key, as of Feb 2026.
# No expiry policy: served as-is whenever live lookups fail.
FALLBACK_QUOTES: Dict[str, Tuple[float, float]] = {
    "EUR/USD": (1.0450, 0.12),
    "GBP/USD": (1.2634, 0.08),
    "USD/JPY": (151.87, -0.15),
    "Gold": (5232.00, 0.97),
    "Silver": (33.50, 0.31),
    "Crude Oil": (70.50, -0.55),
    "AAPL": (227.50, 0.28),
    "MSFT": (415.00, 0.35),
    "TSLA": (285.00, 1.20),
    "NVDA": (875.00, 2.10),
}

FALLBACK_AS_OF = "2026-02"


def all_instruments() -> Tuple[InstrumentSpec, ...]:
    return CSV_INSTRUMENTS + CHART_INSTRUMENTS


def decimals_for(key: str, default: int = 2) -> int:
    """Display precision for an instrument key."""
    for spec in all_instruments():
        if spec.key == key:
            return spec.decimals
    return default
