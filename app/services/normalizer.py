"""Extraction of availability and rate from the vendor's rates payload.

The vendor answers with one of three shapes: a primitive (usually an error
string), a keyed object, or a sequence whose last keyed element is the real
record. ``select_candidate`` walks those shapes; the remaining helpers read
availability and price off the chosen candidate.
"""
import json
from typing import Any, Optional

from app.schemas.quote import RateFragment
from app.utils.coercion import as_number

DEFAULT_CURRENCY = "NAD"
MINOR_UNIT_THRESHOLD = 1000

AVAILABILITY_KEYS = ("available", "availability")
CURRENCY_KEYS = ("Currency", "currency")


def decode_vendor_body(content: bytes) -> Any:
    """Decode a vendor body, keeping undecodable text as a primitive."""
    text = content.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


def _is_sequential_mapping(value: dict) -> bool:
    return list(value.keys()) == [str(i) for i in range(len(value))]


def is_keyed(value) -> bool:
    return isinstance(value, dict) and bool(value) and not _is_sequential_mapping(value)


def is_sequence(value) -> bool:
    return isinstance(value, list) or (
        isinstance(value, dict) and bool(value) and _is_sequential_mapping(value)
    )


def select_candidate(body) -> Optional[dict]:
    """Return the keyed record the vendor meant, or ``None``."""
    if is_keyed(body):
        return body
    if is_sequence(body):
        items = list(body.values()) if isinstance(body, dict) else body
        for item in reversed(items):
            if is_keyed(item):
                return item
    return None


def _error_code_ok(record: dict) -> bool:
    code = record.get("Error Code")
    if isinstance(code, bool):
        return False
    return code == 0 or code == "0"


def _has_positive_charge(record: dict) -> bool:
    charge = as_number(record.get("Total Charge"))
    return charge is not None and charge > 0


def resolve_availability(candidate: dict) -> tuple:
    """Return ``(available, known)``; the first applicable rule wins."""
    for key in AVAILABILITY_KEYS:
        if isinstance(candidate.get(key), bool):
            return candidate[key], True

    if "Error Code" in candidate:
        return _error_code_ok(candidate), True

    if _has_positive_charge(candidate):
        return True, True

    legs = candidate.get("Legs")
    if isinstance(legs, list):
        for leg in legs:
            if isinstance(leg, dict) and (_error_code_ok(leg) or _has_positive_charge(leg)):
                return True, True

    return False, False


def to_major_units(value: float) -> float:
    # Values this large are cents; smaller ones are already major units
    if value >= MINOR_UNIT_THRESHOLD:
        return round(value / 100.0, 2)
    return value


def resolve_rate(candidate: dict) -> Optional[float]:
    total = as_number(candidate.get("Total Charge"))
    if total is None:
        total = as_number(candidate.get("Effective Average Daily Rate"))

    legs = candidate.get("Legs")
    if isinstance(legs, list):
        leg_total = 0.0
        for leg in legs:
            if isinstance(leg, dict):
                leg_total += as_number(leg.get("Total Charge")) or 0.0
        if leg_total > 0:
            total = leg_total

    if total is None:
        return None
    return to_major_units(total)


def resolve_currency(candidate: dict, default: str = DEFAULT_CURRENCY) -> str:
    for key in CURRENCY_KEYS:
        value = candidate.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip().upper()
    return default


def extract_rate_payload(raw, default_currency: str = DEFAULT_CURRENCY) -> RateFragment:
    """Normalize a decoded vendor payload into a rate fragment.

    Never raises: unusable payloads degrade to ``rate=None`` and
    ``availability=False`` with a note explaining why.
    """
    if raw is None or isinstance(raw, (str, int, float, bool)):
        return RateFragment(
            currency=default_currency,
            availability=False,
            raw=raw,
            note="Primitive response, no rate",
        )

    candidate = select_candidate(raw)
    if candidate is None:
        return RateFragment(
            currency=default_currency,
            availability=False,
            raw=raw,
            note="No associative rate object found",
        )

    currency = resolve_currency(candidate, default_currency)
    rate = resolve_rate(candidate)
    if rate is None:
        return RateFragment(
            currency=currency,
            availability=False,
            raw=candidate,
            note="No valid rate returned by remote",
        )

    available, known = resolve_availability(candidate)
    return RateFragment(
        rate=rate,
        currency=currency,
        availability=available,
        availability_known=known,
        raw=candidate,
    )
