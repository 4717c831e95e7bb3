"""
HomelyEats - Shared Helpers
=============================
Pure utility functions with NO database or module dependencies.
"""

from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def safe_int(value: Optional[str]) -> Optional[int]:
    """Safely convert a string to int. Returns None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def format_money(cents, symbol: str = "$") -> str:
    """Format integer minor units as a currency string (1250 -> "$12.50")."""
    if cents is None:
        return f"{symbol}0.00"
    try:
        v = int(cents)
    except (ValueError, TypeError):
        return str(cents)
    sign = "-" if v < 0 else ""
    return f"{sign}{symbol}{abs(v) // 100:,}.{abs(v) % 100:02d}"


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip whitespace; blank strings become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None
