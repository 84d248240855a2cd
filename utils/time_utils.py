"""
utils/time_utils.py

Purpose: Time helpers

- Date formatting for customer-facing text
- UTC now
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_date(dt: Optional[datetime], format_str: str = "%Y-%m-%d") -> str:
    """
    Formats a datetime as a date for order listings.
    """
    if not dt:
        return "N/A"
    return dt.strftime(format_str)

