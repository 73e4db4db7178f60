import math
from typing import Optional


def as_number(value) -> Optional[float]:
    """Return ``value`` as a float when it is numeric, else ``None``.

    Numeric strings count, booleans do not.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def as_int(value) -> Optional[int]:
    """Return ``value`` as an int when it is an integral number, else ``None``."""
    number = as_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)
