from datetime import datetime
from typing import Optional

DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d.%m.%Y")
DISPLAY_FORMAT = "%Y-%m-%d %H:%M"


def parse_date(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    s = s.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            pass
    # полная ISO-дата (2024-05-01T10:00:00)
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def end_of_day(dt: datetime) -> datetime:
    return datetime(dt.year, dt.month, dt.day, 23, 59, 59)


def to_display(dt: Optional[datetime]) -> Optional[str]:
    return dt.strftime(DISPLAY_FORMAT) if dt else None
