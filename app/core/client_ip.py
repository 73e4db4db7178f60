from starlette.requests import Request

PROXY_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "x-forwarded",
    "forwarded-for",
    "forwarded",
)


def get_client_ip(request: Request) -> str:
    """Best-effort caller address, preferring proxy headers over the socket peer."""
    for header in PROXY_HEADERS:
        value = request.headers.get(header)
        if value:
            first = value.split(",")[0].strip()
            if first:
                return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
