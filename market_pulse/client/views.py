"""
MARKET PULSE — Display Helpers
Formatting rules and derived views over MarketState. Formatting is fixed per
instrument so successive polls render comparable strings.
"""
from typing import Any, Dict, List

from market_pulse.data.instruments import decimals_for


def format_price(price: float) -> str:
    if price >= 1000:
        return f"${price:,.2f}"
    if price >= 1:
        return f"${price:.2f}"
    return f"${price:.4f}"


def format_change(change: float) -> str:
    sign = "+" if change >= 0 else ""
    return f"{sign}{change:.2f}%"


def format_instrument_price(key: str, price: float) -> str:
    """Forex/commodity/equity price at the instrument's fixed precision."""
    return f"{price:,.{decimals_for(key)}f}"


def top_movers(crypto: List[Dict[str, Any]], limit: int = 5) -> List[Dict[str, Any]]:
    """Largest absolute 24h moves first."""
    def magnitude(row: Dict[str, Any]) -> float:
        return abs(row.get("price_change_percentage_24h") or 0.0)

    return sorted(crypto, key=magnitude, reverse=True)[:limit]
