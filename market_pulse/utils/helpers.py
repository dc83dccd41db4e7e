"""
MARKET PULSE — Common Utility Functions
"""
import math
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def utc_timestamp() -> str:
    """Return current UTC timestamp as ISO string."""
    return utc_now().isoformat()


def pct_change(old_val: float, new_val: float) -> float:
    """Percentage change from old_val to new_val, 0.0 when old_val is not positive."""
    if old_val <= 0:
        return 0.0
    return ((new_val - old_val) / old_val) * 100.0


def to_float(value: Any) -> Optional[float]:
    """Parse a numeric value from JSON/CSV; None for missing, non-numeric or non-finite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def round_to(value: float, decimals: int) -> float:
    """Round a price to a fixed number of decimals."""
    return round(float(value), decimals)


def parse_positive_int(raw: Optional[str], default: int, maximum: Optional[int] = None) -> int:
    """Lenient query-string integer parsing: anything invalid falls back to default."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if value < 1:
        return default
    if maximum is not None and value > maximum:
        return maximum
    return value


def parse_csv_list(raw: Optional[str]) -> list:
    """Split a comma-separated query value into trimmed, non-empty, unique items."""
    if not raw:
        return []
    items = []
    for part in raw.split(","):
        value = part.strip()
        if value and value not in items:
            items.append(value)
    return items
