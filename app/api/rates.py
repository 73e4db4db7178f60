"""Rates quote endpoints for the booking widget"""
import json
import logging
import uuid
from datetime import datetime, timezone
from functools import lru_cache

from fastapi import APIRouter, Depends, Request

from app.core.config import settings
from app.core.errors import QuoteAPIError
from app.services.quote_service import QuoteService
from app.services.vendor import VendorGateway

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["rates"])


@lru_cache
def get_quote_service() -> QuoteService:
    gateway = VendorGateway(
        url=settings.VENDOR_API_URL,
        timeout=settings.VENDOR_TIMEOUT,
        connect_timeout=settings.VENDOR_CONNECT_TIMEOUT,
        user_agent=f"{settings.API_TITLE.replace(' ', '-')}/{settings.API_VERSION}",
    )
    return QuoteService(settings, gateway)


async def _read_json(request: Request):
    raw = await request.body()
    if not raw.strip():
        raise QuoteAPIError(400, "No input data received")
    try:
        return json.loads(raw)
    except ValueError as e:
        raise QuoteAPIError(400, f"Invalid JSON: {e}")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/rates")
async def get_rates(request: Request, service: QuoteService = Depends(get_quote_service)):

    payload = await _read_json(request)
    if not isinstance(payload, dict):
        raise QuoteAPIError(400, "Input must be a JSON object")

    outcome = await service.quote(payload)

    if outcome.errors:
        raise QuoteAPIError(400, "Validation failed", outcome.errors)
    if outcome.failure is not None:
        logger.warning(f"Rates request failed at vendor: {outcome.failure.reason}")
        raise QuoteAPIError(502, "Failed to get rates from remote API")

    return {
        "success": True,
        "data": [quote.model_dump() for quote in outcome.quotes],
        "meta": {
            "timestamp": _now(),
            "api_version": settings.API_VERSION,
            "request_id": uuid.uuid4().hex,
            "processed_at": _now(),
            "source": str(outcome.source),
        },
    }


@router.post("/test")
async def test_endpoint(request: Request, service: QuoteService = Depends(get_quote_service)):

    try:
        payload = await _read_json(request)
    except QuoteAPIError:
        payload = None

    debug_info = {
        "message": "Test endpoint working",
        "received_data": payload,
        "timestamp": _now(),
        "method": request.method,
        "path": request.url.path,
    }
    if payload is not None:
        errors = service.validate(payload)
        debug_info["validation"] = errors
        if not errors:
            debug_info["transformed_payload"] = service.transform(payload).to_wire()

    return debug_info
