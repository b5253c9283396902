import logging
from datetime import date, datetime, time, timezone
from typing import Optional, Tuple, Union

from crewplan.config.settings import get_settings
from crewplan.models.errors import InvalidWindowError

logger = logging.getLogger(__name__)

Timestamp = Union[str, datetime, None]


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Timestamp) -> datetime:
    """Parse an ISO 8601 string (a trailing ``Z`` is accepted) into an aware UTC datetime."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidWindowError(f"missing or non-string timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError as exc:
        raise InvalidWindowError(f"unparseable timestamp: {value!r}") from exc


def default_window(day: date, start_hour: Optional[int] = None, end_hour: Optional[int] = None) -> Tuple[datetime, datetime]:
    settings = get_settings()
    start_hour = settings.default_day_start_hour if start_hour is None else start_hour
    end_hour = settings.default_day_end_hour if end_hour is None else end_hour
    return (
        datetime.combine(day, time(hour=start_hour), tzinfo=timezone.utc),
        datetime.combine(day, time(hour=end_hour), tzinfo=timezone.utc),
    )


def parse_window(start: Timestamp, end: Timestamp, lenient: Optional[bool] = None) -> Tuple[datetime, datetime]:
    """
    Parse a (start, end) pair into aware UTC datetimes.

    Strict mode raises InvalidWindowError for unparseable bounds or when end
    is not after start. Lenient mode replaces an unparseable window with the
    default working day (09:00-17:00) on the date of whichever bound parsed,
    or today, and logs the substitution.
    """
    if lenient is None:
        lenient = get_settings().lenient_dates

    try:
        start_dt = parse_timestamp(start)
        end_dt = parse_timestamp(end)
    except InvalidWindowError as exc:
        if not lenient:
            raise
        day = _first_parseable_day(start, end) or datetime.now(timezone.utc).date()
        fallback = default_window(day)
        logger.error(f"Invalid window ({start!r}, {end!r}): {exc}; using default {fallback[0]} - {fallback[1]}")
        return fallback

    if end_dt <= start_dt:
        raise InvalidWindowError(f"window end {end_dt.isoformat()} must be after start {start_dt.isoformat()}")
    return start_dt, end_dt


def _first_parseable_day(*values: Timestamp) -> Optional[date]:
    for value in values:
        try:
            return parse_timestamp(value).date()
        except InvalidWindowError:
            continue
    return None
