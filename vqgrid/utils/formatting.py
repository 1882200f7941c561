"""Display formatting for well-known column values."""

import re
from datetime import date, datetime
from typing import Any, Optional

TIMESTAMP_COLUMNS = ("created", "modified")
DATE_COLUMNS = (
    "due_date",
    "scheduled_date",
    "start_date",
    "created_date",
    "done_date",
    "cancelled_date",
)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MS_TIMESTAMP = re.compile(r"^\d{13}$")


def format_timestamp(value: Any) -> str:
    """Format an epoch-milliseconds value as a local date and time.

    Returns an empty string for empty values and "N/A" when the value is
    not a positive number.
    """
    if value is None or value == "":
        return ""
    try:
        stamp = float(value)
    except (TypeError, ValueError):
        return "N/A"
    if stamp != stamp or stamp <= 0:
        return "N/A"
    try:
        return datetime.fromtimestamp(stamp / 1000).strftime("%x %X")
    except (OverflowError, OSError, ValueError):
        return "Invalid Date"


def parse_iso_date(text: str) -> Optional[date]:
    """Parse a `YYYY-MM-DD` string, returning None if it is not one."""
    if not _ISO_DATE.match(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def format_date_string(value: Any) -> str:
    """Format a `YYYY-MM-DD` value as a local date; other values pass
    through unchanged.
    """
    if value is None or value == "":
        return ""
    text = str(value)
    parsed = parse_iso_date(text)
    if parsed is None:
        return text
    return parsed.strftime("%x")


def format_by_field(value: Any, field_name: str) -> str:
    """Format a value according to the name of the column it belongs to."""
    if value is None or value == "":
        return ""
    if field_name in TIMESTAMP_COLUMNS:
        return format_timestamp(value)
    if field_name in DATE_COLUMNS:
        return format_date_string(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_for_markdown(value: Any) -> str:
    """Format a value for a markdown table cell.

    Thirteen-digit numbers are taken to be millisecond timestamps and ISO
    dates are localised; everything else is converted with `str`.
    """
    text = str(value)
    if _MS_TIMESTAMP.match(text):
        return format_timestamp(text)
    parsed = parse_iso_date(text)
    if parsed is not None:
        return parsed.strftime("%x")
    return text
