"""Datetime helpers for API output."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from fulfillment.config import settings

API_TIMEZONE = ZoneInfo(settings.timezone)


def to_api_timezone(dt: datetime | None) -> datetime | None:
    """Convert to the configured API timezone. Naive values are taken as UTC (SQLite drops tzinfo)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(API_TIMEZONE)


def api_isoformat(dt: datetime | None) -> str | None:
    localized = to_api_timezone(dt)
    return localized.isoformat() if localized is not None else None
