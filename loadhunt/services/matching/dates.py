"""Calendar-date parsing for pickup/available dates as they arrive from parsed emails."""
import re
from datetime import date, datetime

# "2025-12-19", "2025-12-19 08:00 CST", "2025-12-19T08:00:00Z"
_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
# "12/19/25", "12/19/2025", "12/19/2025 08:00"
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})\b")


def parse_calendar_date(value: object) -> date | None:
    """
    Truncate a date-ish value to a calendar date. Returns None when the value is
    missing or cannot be parsed (callers treat None from a present value as invalid).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    m = _ISO_PREFIX.match(s)
    if m:
        y, mo, d = (int(g) for g in m.groups())
    else:
        m = _US_DATE.match(s)
        if not m:
            return None
        mo, d = int(m.group(1)), int(m.group(2))
        y = int(m.group(3))
        if y < 100:
            y += 2000
    try:
        return date(y, mo, d)
    except ValueError:
        return None


def is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
