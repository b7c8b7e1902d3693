"""
Shared date/time helpers for the SmartForm backend.

All calendar values are handled in one configured timezone: aware
datetimes are converted into it before their date and time components are
read, naive datetimes are taken as already local. This keeps the prompt
anchor, the date/time split and the stored form values on the same
calendar.
"""

from datetime import datetime, tzinfo

from dateutil import parser as dateutil_parser
from dateutil import tz

DEFAULT_TIMEZONE = "Asia/Bangkok"

FORM_DATE_FORMAT = "%Y-%m-%d"
FORM_TIME_FORMAT = "%H:%M"
FORM_DATETIME_FORMAT = "%Y-%m-%dT%H:%M"

# Two unrelated fill-in values: a component the text does not mention
# comes out different under each of them
_FILL_A = datetime(2000, 1, 1, 0, 0)
_FILL_B = datetime(2001, 2, 2, 1, 1)


def get_timezone(name: str = DEFAULT_TIMEZONE) -> tzinfo:
    """Resolve an IANA timezone name.

    Raises:
        ValueError: If the name is unknown.
    """
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone: '{name}'")
    return zone


def parse_datetime(value: str, default: datetime | None = None) -> datetime | None:
    """Parse a datetime string, returning None if it cannot be parsed."""
    if not value or not isinstance(value, str):
        return None

    try:
        return dateutil_parser.parse(value, default=default)
    except (ValueError, TypeError, OverflowError):
        return None


def parse_datetime_parts(value: str) -> tuple[datetime | None, bool, bool]:
    """Parse a datetime string and report which parts it actually states.

    dateutil fills missing components from a default, so "13:00" would
    silently pick up some date. Parsing twice with different defaults shows
    which components came from the text.

    Returns:
        (parsed, has_date, has_time). `parsed` uses midnight and 00 minutes
        for anything missing, or is None if the value is not a datetime.
    """
    first = parse_datetime(value, default=_FILL_A)
    if first is None:
        return None, False, False
    second = parse_datetime(value, default=_FILL_B)
    if second is None:
        return first, False, False

    has_date = first.date() == second.date()
    has_time = first.hour == second.hour
    return first, has_date, has_time


def parse_form_value(value: str, fmt: str) -> datetime | None:
    """Parse a stored form value that must be exactly in `fmt`.

    "2025-6-7" is rejected for FORM_DATE_FORMAT even though strptime
    would read it.
    """
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.strptime(value, fmt)
    except ValueError:
        return None
    return parsed if parsed.strftime(fmt) == value else None


def to_local(value: datetime, zone: tzinfo) -> datetime:
    """Express a datetime on the local calendar of `zone`, as a naive value."""
    if value.tzinfo is not None:
        value = value.astimezone(zone)
    return value.replace(tzinfo=None)


def split_datetime(value: str, zone: tzinfo) -> tuple[str, str | None] | None:
    """Split a combined datetime into form date and time strings.

    Args:
        value: A datetime string such as "2025-06-27T13:00" or
            "2025-06-27T06:00:00Z".
        zone: The calendar the form is displayed in.

    Returns:
        ("YYYY-MM-DD", "HH:MM") using local components, or None if the
        value is not a parseable datetime or states no date. The time is
        None when the value carries a date only.
    """
    parsed, has_date, has_time = parse_datetime_parts(value)
    if parsed is None or not has_date:
        return None
    if not has_time:
        return parsed.strftime(FORM_DATE_FORMAT), None
    local = to_local(parsed, zone)
    return local.strftime(FORM_DATE_FORMAT), local.strftime(FORM_TIME_FORMAT)


def normalize_datetime(value: str, zone: tzinfo) -> str | None:
    """Normalize a datetime string to the form's "YYYY-MM-DDTHH:MM" format.

    Both a date and a time must be stated; None otherwise.
    """
    parsed, has_date, has_time = parse_datetime_parts(value)
    if parsed is None or not (has_date and has_time):
        return None
    return to_local(parsed, zone).strftime(FORM_DATETIME_FORMAT)
