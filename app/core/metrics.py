"""Prometheus metrics for monitoring"""
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry
import time
from functools import wraps
from typing import Callable

registry = CollectorRegistry()

request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

rate_limit_exceeded = Counter(
    'rate_limit_exceeded_total',
    'Total rate limit exceeded events',
    ['endpoint'],
    registry=registry
)

vendor_requests = Counter(
    'vendor_requests_total',
    'Total vendor rate requests by outcome',
    ['outcome'],
    registry=registry
)

vendor_duration = Histogram(
    'vendor_request_duration_seconds',
    'Vendor rate request duration in seconds',
    ['outcome'],
    registry=registry
)

quotes_total = Counter(
    'quotes_total',
    'Total quotes returned to callers',
    ['availability', 'source'],
    registry=registry
)

rate_limit_enabled = Gauge(
    'rate_limit_enabled',
    'Rate limiter status (1=enabled, 0=disabled)',
    registry=registry
)


def track_vendor_call(func: Callable) -> Callable:
    """Decorator to record vendor call outcome and latency.

    The wrapped coroutine must return an object exposing an ``outcome``
    attribute; the gateway never raises on transport problems.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        start_time = time.time()
        result = await func(*args, **kwargs)
        duration = time.time() - start_time
        outcome = str(result.outcome)
        vendor_requests.labels(outcome=outcome).inc()
        vendor_duration.labels(outcome=outcome).observe(duration)
        return result
    return wrapper


def get_metrics_text() -> str:
    """Generate Prometheus metrics in text format"""
    from prometheus_client import generate_latest
    return generate_latest(registry).decode('utf-8')
