import httpx
import logging
from dataclasses import dataclass
from typing import Optional, Union

from app.core.enums import VendorOutcome
from app.core.metrics import track_vendor_call
from app.schemas.quote import VendorRequest

logger = logging.getLogger(__name__)


@dataclass
class VendorReply:
    content: bytes
    status_code: int
    outcome: VendorOutcome = VendorOutcome.SUCCESS


@dataclass
class TransportFailure:
    reason: str
    outcome: VendorOutcome
    status_code: Optional[int] = None


VendorResult = Union[VendorReply, TransportFailure]


class VendorGateway:
    """Single-attempt POST to the vendor rates endpoint.

    Transport problems come back as ``TransportFailure`` values instead of
    exceptions; nothing here retries.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        user_agent: str = "Gondwana-Rates-API/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent,
        }
        self.transport = transport

    @track_vendor_call
    async def call(self, request: VendorRequest) -> VendorResult:
        payload = request.to_wire()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.post(self.url, json=payload, headers=self.headers)
        except httpx.TimeoutException as e:
            logger.warning(f"Vendor rates call timed out: {e!r}")
            return TransportFailure(reason="Vendor request timed out", outcome=VendorOutcome.TIMEOUT)
        except httpx.HTTPError as e:
            logger.error(f"Vendor rates call failed: {e!r}")
            return TransportFailure(reason="Vendor unreachable", outcome=VendorOutcome.TRANSPORT_ERROR)

        if not 200 <= response.status_code < 300:
            logger.warning(
                f"Vendor returned HTTP {response.status_code}: {response.text[:200]}"
            )
            return TransportFailure(
                reason=f"Vendor returned HTTP {response.status_code}",
                outcome=VendorOutcome.HTTP_ERROR,
                status_code=response.status_code,
            )

        logger.debug(f"Vendor replied {response.status_code} with {len(response.content)} bytes")
        return VendorReply(content=response.content, status_code=response.status_code)
