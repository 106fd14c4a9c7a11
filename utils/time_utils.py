"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Wizard session TTL calculations
- Temporary credential expiry checks
- Backend timestamp parsing
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Returns the current time as an aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def calculate_session_expiry(start: datetime, timeout_minutes: int = 60) -> datetime:
    """
    Calculates when an idle wizard session should be dropped.
    """
    return start + timedelta(minutes=timeout_minutes)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parses an ISO-8601 timestamp from the backend.

    Accepts a trailing "Z". Naive values are taken as UTC.

    Returns:
        Aware datetime, or None when value is empty
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_expired(expiry: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Checks an expiry instant. A missing expiry never expires.
    """
    if expiry is None:
        return False
    return (now or utc_now()) >= expiry
