from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
from starlette.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from app.api import rates
from app.core.client_ip import get_client_ip
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging_config import setup_logging
from app.core.metrics import request_count, request_duration, rate_limit_enabled, get_metrics_text
from app.core.middleware import RateLimitMiddleware, SecurityHeadersMiddleware
from app.core.rate_limit import build_rate_limiter
import time
import logging

setup_logging("DEBUG" if settings.DEBUG else settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code
            ).inc()

            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)

            logger.info(
                f"{request.method} {request.url.path} {response.status_code} "
                f"ip={get_client_ip(request)} duration={duration:.3f}s"
            )
            return response
        except Exception:
            duration = time.time() - start_time
            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=500
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)
            raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting...")
    limiter = app.state.rate_limiter
    rate_limit_enabled.set(1 if limiter.enabled else 0)
    if limiter.enabled:
        logger.info(
            f"Rate limiting {limiter.capacity} requests per {limiter.window}s "
            f"(state: {limiter.store.path})"
        )
    else:
        logger.info("Rate limiting disabled")
    if settings.VENDOR_MOCK:
        logger.warning("Vendor mock enabled, rates will not reach the vendor")

    yield

    logger.info("Application shutting down...")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan
)

app.state.rate_limiter = build_rate_limiter(settings)

register_exception_handlers(app)

app.add_middleware(RateLimitMiddleware)
app.add_middleware(SecurityHeadersMiddleware, headers=settings.SECURITY_HEADERS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials="*" not in settings.ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    max_age=86400,
)
app.add_middleware(MetricsMiddleware)

app.include_router(rates.router)


def _service_descriptor() -> dict:
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "endpoints": {
            "POST /api/rates": "Get accommodation rates",
            "POST /api/test": "Test payload echo",
        },
    }


@app.get("/api", tags=["root"])
async def api_root():
    return _service_descriptor()


@app.get("/metrics", tags=["monitoring"])
async def metrics():
    return Response(
        content=get_metrics_text(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@app.get("/health", tags=["monitoring"])
async def health_check():
    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION,
        "environment": settings.APP_ENV,
        "rate_limiting": "enabled" if app.state.rate_limiter.enabled else "disabled",
        "vendor": "mock" if settings.VENDOR_MOCK else "remote",
    }


if settings.FRONTEND_DIR and Path(settings.FRONTEND_DIR).is_dir():
    app.mount("/", StaticFiles(directory=settings.FRONTEND_DIR, html=True), name="frontend")
else:
    @app.get("/", tags=["root"])
    async def root():
        return _service_descriptor()
