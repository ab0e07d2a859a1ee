"""Date parsing utilities."""

from datetime import date, datetime, time, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", "2024/1/15", etc.
    - Relative dates: "today", "yesterday", "tomorrow"
    - Offsets: "3 days ago", "2 weeks ago", "1 month ago"

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    # Handle "<n> <unit> ago"
    parts = date_str.split()
    if len(parts) == 3 and parts[2] == "ago" and parts[0].isdigit():
        count = int(parts[0])
        unit = parts[1].rstrip("s")
        offsets = {
            "day": relativedelta(days=count),
            "week": relativedelta(weeks=count),
            "month": relativedelta(months=count),
            "year": relativedelta(years=count),
        }
        if unit in offsets:
            return today - offsets[unit]

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def start_of_day(day: date) -> datetime:
    """First instant of a day, for inclusive lower bounds."""
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """Last instant of a day, for inclusive upper bounds."""
    return datetime.combine(day, time.max)
