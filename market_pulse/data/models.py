"""
MARKET PULSE — Data Models for Market Data
Canonical data structures shared by adapters, aggregators and the API.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict
from enum import Enum


class DataSource(str, Enum):
    COINGECKO = "coingecko"
    BINANCE = "binance"
    STOOQ = "stooq"
    YAHOO = "yahoo"
    FALLBACK = "fallback"


class PriceQuote(BaseModel):
    """Normalized price observation. Non-positive prices never make it into a quote."""
    symbol: str
    price: float = Field(gt=0)
    change: float = 0.0
    source: DataSource


class AssetRecord(BaseModel):
    """One row of the crypto market listing, in upstream rank order."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    symbol: str = ""
    name: str = ""
    image: Optional[str] = None
    current_price: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    market_cap: Optional[float] = None
    total_volume: Optional[float] = None
    market_cap_rank: Optional[int] = None
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None
    circulating_supply: Optional[float] = None


class ForexQuote(BaseModel):
    """Instrument-keyed quote served by the forex endpoint."""
    symbol: str
    price: float
    change: float
    source: DataSource


class ForexSnapshot(BaseModel):
    """Complete forex/commodities/equities map plus how much of it is live."""
    quotes: Dict[str, ForexQuote]
    live: int = 0
    fallback: int = 0

    @property
    def all_fallback(self) -> bool:
        return self.live == 0


class CryptoPage(BaseModel):
    """One page of the crypto listing as produced by the aggregator."""
    success: bool
    data: List[AssetRecord] = []
    page: int = 1
    per_page: int = 100
    has_more: bool = False
    error: Optional[str] = None
