import calendar
import email.utils
from datetime import datetime
from typing import Any, Optional

import pytz
from loguru import logger


def utc_now() -> datetime:
    """Gets the current time as a timezone-aware UTC datetime."""
    return datetime.now(pytz.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Returns ``dt`` in UTC. Naive datetimes are assumed to already be UTC."""
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def from_iso(value: Optional[Any]) -> Optional[datetime]:
    """Parses an ISO-8601 timestamp into an aware UTC datetime.

    Args:
        value: The timestamp string. Empty values yield None.

    Returns:
        The parsed datetime, or None if the value is empty or unparseable.
    """
    if not value:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        logger.warning(f"Could not parse ISO timestamp: {value}")
        return None


def seconds_since(dt: Optional[datetime], now: Optional[datetime] = None) -> Optional[float]:
    if dt is None:
        return None
    now = now or utc_now()
    return (ensure_utc(now) - ensure_utc(dt)).total_seconds()


def parse_feed_date(parsed: Any = None, raw: Optional[str] = None) -> datetime:
    """Resolves a feed item's publication date.

    Tries the time tuple feedparser produced, then the raw string as RFC 2822
    and as ISO-8601. Falls back to the current UTC time.

    Args:
        parsed: A ``time.struct_time`` in UTC as produced by feedparser.
        raw: The raw date string from the feed.

    Returns:
        A timezone-aware UTC datetime.
    """
    if parsed:
        try:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=pytz.utc)
        except (TypeError, ValueError, OverflowError):
            pass

    if raw and raw.strip():
        try:
            return ensure_utc(email.utils.parsedate_to_datetime(raw.strip()))
        except (TypeError, ValueError, IndexError):
            pass
        try:
            return ensure_utc(datetime.fromisoformat(raw.strip().replace("Z", "+00:00")))
        except ValueError:
            pass
        logger.debug(f"Unparseable publication date '{raw}', using current time")

    return utc_now()
