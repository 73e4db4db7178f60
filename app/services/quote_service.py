import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from app.core.config import Settings
from app.core.enums import QuoteSource
from app.core.metrics import quotes_total
from app.schemas.quote import DateRange, Quote, RateFragment, VendorRequest
from app.services.normalizer import decode_vendor_body, extract_rate_payload
from app.services.transform import transform_payload
from app.services.validation import validate_rate_request
from app.services.vendor import TransportFailure, VendorGateway
from app.utils.dates import calculate_nights

logger = logging.getLogger(__name__)


class AvailabilityPolicy:
    """Caller-side correction for a vendor that under-reports availability.

    Units in ``always_available_units`` are promoted whenever a positive rate
    came back and the vendor said no or nothing. Every other unit is promoted
    only when a positive rate came back and the vendor said nothing.
    """

    def __init__(self, always_available_units: Iterable[str] = ()):
        self.always_available_units = frozenset(always_available_units)

    def apply(self, unit_name: str, fragment: RateFragment) -> bool:
        if fragment.availability:
            return True
        if fragment.rate is None or fragment.rate <= 0:
            return False
        if unit_name in self.always_available_units:
            return True
        return not fragment.availability_known


@dataclass
class QuoteOutcome:
    quotes: List[Quote] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    failure: Optional[TransportFailure] = None
    source: QuoteSource = QuoteSource.REMOTE_API

    @property
    def ok(self) -> bool:
        return not self.errors and self.failure is None


class QuoteService:

    def __init__(
        self,
        config: Settings,
        gateway: VendorGateway,
        policy: Optional[AvailabilityPolicy] = None,
    ):
        self.config = config
        self.gateway = gateway
        self.policy = policy or AvailabilityPolicy(config.ALWAYS_AVAILABLE_UNITS)

    @property
    def unit_catalog(self) -> dict:
        return self.config.UNIT_TYPE_MAPPING

    def validate(self, payload) -> List[str]:
        return validate_rate_request(payload, self.unit_catalog)

    def transform(self, payload: dict) -> VendorRequest:
        return transform_payload(payload, self.unit_catalog)

    async def quote(self, payload) -> QuoteOutcome:
        errors = self.validate(payload)
        if errors:
            logger.info(f"Rates request rejected: {errors}")
            return QuoteOutcome(errors=errors)

        vendor_request = self.transform(payload)
        logger.debug(f"Transformed payload: {vendor_request.to_wire()}")

        if self.config.VENDOR_MOCK:
            quote = self._mock_quote(payload)
            self._count(quote, QuoteSource.MOCK)
            return QuoteOutcome(quotes=[quote], source=QuoteSource.MOCK)

        result = await self.gateway.call(vendor_request)
        if isinstance(result, TransportFailure):
            return QuoteOutcome(failure=result)

        fragment = extract_rate_payload(
            decode_vendor_body(result.content), self.config.DEFAULT_CURRENCY
        )
        if fragment.note:
            logger.info(f"Vendor payload degraded: {fragment.note}")

        quote = self._build_quote(payload, fragment)
        self._count(quote, QuoteSource.REMOTE_API)
        return QuoteOutcome(quotes=[quote])

    def _build_quote(self, payload: dict, fragment: RateFragment) -> Quote:
        unit_name = payload["Unit Name"]
        return Quote(
            unit_name=unit_name,
            rate=fragment.rate,
            currency=fragment.currency,
            availability=self.policy.apply(unit_name, fragment),
            date_range=self._date_range(payload),
            original_response=fragment.raw,
        )

    def _mock_quote(self, payload: dict) -> Quote:
        date_range = self._date_range(payload)
        return Quote(
            unit_name=payload["Unit Name"],
            rate=self.config.MOCK_NIGHTLY_RATE * date_range.nights,
            currency=self.config.DEFAULT_CURRENCY,
            availability=True,
            date_range=date_range,
            original_response={"mock": True},
        )

    @staticmethod
    def _date_range(payload: dict) -> DateRange:
        return DateRange(
            arrival=payload["Arrival"],
            departure=payload["Departure"],
            nights=calculate_nights(payload["Arrival"], payload["Departure"]),
        )

    @staticmethod
    def _count(quote: Quote, source: QuoteSource) -> None:
        quotes_total.labels(
            availability=str(quote.availability).lower(), source=str(source)
        ).inc()
