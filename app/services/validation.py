from typing import Mapping

from app.utils.coercion import as_int, as_number
from app.utils.dates import parse_display_date

REQUIRED_FIELDS = ("Unit Name", "Arrival", "Departure", "Occupants", "Ages")
STRING_FIELDS = ("Unit Name", "Arrival", "Departure")
MIN_AGE = 0
MAX_AGE = 150


def _is_blank(value) -> bool:
    return value is None or value == "" or value == []


def validate_rate_request(payload, unit_catalog: Mapping[str, int]) -> list:
    """Check a raw rates request and return every violation found.

    An empty list means the payload can be handed to the transformer.
    """
    if not isinstance(payload, dict):
        return ["Request body must be a JSON object"]

    errors = []

    for field in REQUIRED_FIELDS:
        if _is_blank(payload.get(field)):
            errors.append(f"{field} is required")

    for field in STRING_FIELDS:
        value = payload.get(field)
        if not _is_blank(value) and not isinstance(value, str):
            errors.append(f"{field} must be a string")

    unit_name = payload.get("Unit Name")
    if isinstance(unit_name, str) and unit_name and unit_name not in unit_catalog:
        errors.append("Unit Name must be one of: " + ", ".join(unit_catalog))

    arrival = departure = None
    if isinstance(payload.get("Arrival"), str) and payload["Arrival"]:
        arrival = parse_display_date(payload["Arrival"])
        if arrival is None:
            errors.append("Arrival date must be in dd/mm/yyyy format")
    if isinstance(payload.get("Departure"), str) and payload["Departure"]:
        departure = parse_display_date(payload["Departure"])
        if departure is None:
            errors.append("Departure date must be in dd/mm/yyyy format")
    if arrival and departure and arrival >= departure:
        errors.append("Departure date must be after arrival date")

    occupants = None
    if not _is_blank(payload.get("Occupants")):
        occupants = as_int(payload["Occupants"])
        if occupants is None or occupants <= 0:
            errors.append("Occupants must be a positive integer")
            occupants = None

    ages = payload.get("Ages")
    if ages is not None and ages != "":
        if not isinstance(ages, list):
            errors.append("Ages must be an array")
        else:
            for age in ages:
                number = as_number(age)
                if number is None or number < MIN_AGE or number > MAX_AGE:
                    errors.append(f"All ages must be numbers between {MIN_AGE} and {MAX_AGE}")
                    break
            if occupants is not None and len(ages) != occupants:
                errors.append("Number of ages must match number of occupants")

    return errors
