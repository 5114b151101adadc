from datetime import datetime
from typing import Optional

from backoffice.errors import ValidationFailed
from backoffice.utils.dates import parse_date


def parse_date_param(name: str, value: Optional[str]) -> Optional[datetime]:
    """Дата из query-параметра; мусор -> 400, пусто -> None."""
    if not value or not value.strip():
        return None
    dt = parse_date(value)
    if dt is None:
        raise ValidationFailed(
            f"Invalid {name} format",
            "Use YYYY-MM-DD (also accepted: YYYY/MM/DD, DD.MM.YYYY, ISO 8601)",
        )
    return dt
