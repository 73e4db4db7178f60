from datetime import date, datetime
from typing import Optional

DISPLAY_FORMAT = "%d/%m/%Y"
VENDOR_FORMAT = "%Y-%m-%d"


def parse_display_date(value) -> Optional[date]:
    """Parse a ``dd/mm/yyyy`` string, rejecting anything that does not round-trip.

    ``strptime`` already refuses impossible days such as 32/01 or 31/02; the
    round-trip check additionally rejects unpadded forms like ``1/2/2024``.
    """
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.strptime(value, DISPLAY_FORMAT).date()
    except ValueError:
        return None
    if format_display_date(parsed) != value:
        return None
    return parsed


def format_display_date(value: date) -> str:
    return value.strftime(DISPLAY_FORMAT)


def to_vendor_date(value: str) -> str:
    return datetime.strptime(value, DISPLAY_FORMAT).strftime(VENDOR_FORMAT)


def calculate_nights(arrival: str, departure: str) -> int:
    a = parse_display_date(arrival)
    d = parse_display_date(departure)
    if a is None or d is None:
        return 1
    return max(1, (d - a).days)
