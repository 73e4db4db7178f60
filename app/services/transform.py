from typing import Mapping

from app.core.enums import AgeGroup
from app.schemas.quote import Guest, VendorRequest
from app.utils.coercion import as_number
from app.utils.dates import to_vendor_date

ADULT_AGE = 18


def classify_age(age) -> AgeGroup:
    number = as_number(age)
    if number is not None and int(number) >= ADULT_AGE:
        return AgeGroup.ADULT
    return AgeGroup.CHILD


def resolve_unit_type_id(unit_name: str, unit_catalog: Mapping[str, int]) -> int:
    """Look up the vendor unit code, falling back to the first catalog entry."""
    if unit_name in unit_catalog:
        return unit_catalog[unit_name]
    return next(iter(unit_catalog.values()))


def transform_payload(payload: dict, unit_catalog: Mapping[str, int]) -> VendorRequest:
    """Convert a validated rates request into the vendor's request schema"""
    return VendorRequest(
        unit_type_id=resolve_unit_type_id(payload["Unit Name"], unit_catalog),
        arrival=to_vendor_date(payload["Arrival"]),
        departure=to_vendor_date(payload["Departure"]),
        guests=[Guest(age_group=classify_age(age)) for age in payload["Ages"]],
    )
