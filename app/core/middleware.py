import logging
from typing import Dict

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.core.client_ip import get_client_ip
from app.core.errors import error_response
from app.core.metrics import rate_limit_exceeded
from app.core.rate_limit import TokenBucketRateLimiter

logger = logging.getLogger(__name__)

RATE_LIMITED_PREFIX = "/api/"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Admits ``/api/*`` requests through the app's token bucket limiter."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path or ""
        if request.method == "OPTIONS" or not path.startswith(RATE_LIMITED_PREFIX):
            return await call_next(request)

        limiter: TokenBucketRateLimiter = request.app.state.rate_limiter
        if not limiter.enabled:
            return await call_next(request)

        identifier = get_client_ip(request)
        admission = await run_in_threadpool(limiter.admit, identifier)
        remaining = admission.remaining

        if not admission.allowed:
            reset_at = admission.reset_at
            retry_after = max(0, reset_at - int(limiter.clock()))
            rate_limit_exceeded.labels(endpoint=path).inc()
            logger.warning(f"Rate limit exceeded for {identifier} on {path}")
            return JSONResponse(
                status_code=429,
                content=error_response(429, "Rate limit exceeded", retry_after=retry_after),
                headers={
                    "X-RateLimit-Limit": str(limiter.capacity),
                    "X-RateLimit-Remaining": str(remaining),
                    "X-RateLimit-Reset": str(reset_at),
                    "Retry-After": str(retry_after),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limiter.capacity)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, headers: Dict[str, str]):
        super().__init__(app)
        self.headers = dict(headers)

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response
