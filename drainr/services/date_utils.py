# drainr/services/date_utils.py
import pytz
import logging
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'Australia/Sydney'


def utcnow():
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(pytz.utc).replace(tzinfo=None)


def format_timestamp(dt):
    """
    Format a stored timestamp for API responses.

    Stored values are naive UTC, so they are rendered as ISO 8601 with a
    trailing 'Z'. Aware datetimes are converted to UTC first.

    Args:
        dt (datetime): The timestamp to format

    Returns:
        str: ISO formatted string, or None
    """
    if not dt:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(pytz.utc).replace(tzinfo=None)
    return dt.isoformat() + 'Z'


def get_timezone(name=None):
    try:
        return pytz.timezone(name or DEFAULT_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone '{name}', falling back to {DEFAULT_TIMEZONE}")
        return pytz.timezone(DEFAULT_TIMEZONE)


def local_now(tz_name=None):
    """Current time in the business timezone"""
    return datetime.now(pytz.utc).astimezone(get_timezone(tz_name))


def to_local(dt, tz_name=None):
    """Convert a stored naive UTC timestamp to the business timezone"""
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(get_timezone(tz_name))


def valid_until(days, tz_name=None):
    """Expiry date shown on documents sent to customers"""
    return local_now(tz_name) + timedelta(days=days)


def format_document_date(dt, tz_name=None):
    """Long-form date for PDFs, e.g. '19 October 2026'"""
    local = to_local(dt, tz_name) if dt else local_now(tz_name)
    return f"{local.day} {local.strftime('%B %Y')}"
