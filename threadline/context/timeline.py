"""Relative-age labels and tiers for conversation records."""

from datetime import date, datetime, timedelta, tzinfo
from enum import Enum

from threadline.history.records import parse_timestamp

TODAY = "today"
YESTERDAY = "yesterday"

DEFAULT_TODAY_WINDOW = timedelta(hours=24)

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class Tier(str, Enum):
    """Priority buckets, in fill order."""

    ACTIVE_THREAD = "active_thread"
    TODAY = "today"
    YESTERDAY = "yesterday"
    OLDER = "older"


TIER_ORDER = (Tier.ACTIVE_THREAD, Tier.TODAY, Tier.YESTERDAY, Tier.OLDER)


def to_local(value: str | datetime, tz: tzinfo | None = None) -> datetime:
    """Convert a timestamp to *tz* (system local zone when None).

    Raises:
        ValueError: If the value is invalid or falls outside the datetime
            range once shifted into *tz*.
    """
    dt = parse_timestamp(value)
    try:
        return dt.astimezone(tz)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Timestamp out of range in target zone: {value!r}") from e


def local_date(value: str | datetime, tz: tzinfo | None = None) -> date:
    return to_local(value, tz).date()


def relative_label(ended_at: str | datetime, now: datetime, tz: tzinfo | None = None) -> str:
    """
    Label a timestamp relative to *now* by calendar day.

    Two timestamps an hour apart on either side of local midnight are
    "today" and "yesterday", not the same day.

    Returns:
        "today", "yesterday", or the English weekday name.
    """
    ended_day = local_date(ended_at, tz)
    days = (local_date(now, tz) - ended_day).days
    if days == 0:
        return TODAY
    if days == 1:
        return YESTERDAY
    return _WEEKDAYS[ended_day.weekday()]


def age_bucket(
    ended_at: str | datetime,
    now: datetime,
    tz: tzinfo | None = None,
    today_window: timedelta = DEFAULT_TODAY_WINDOW,
) -> Tier:
    """Age tier of a record outside the active thread."""
    if parse_timestamp(now) - parse_timestamp(ended_at) < today_window:
        return Tier.TODAY
    if relative_label(ended_at, now, tz) == YESTERDAY:
        return Tier.YESTERDAY
    return Tier.OLDER
