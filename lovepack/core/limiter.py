"""SlowAPI rate limiter singleton.

There are no user accounts, so limits are keyed on the client address of
the connection. Client-supplied headers such as X-Forwarded-For are not
trusted: a caller could rotate them to escape its bucket. Behind a reverse
proxy, run uvicorn with ``--proxy-headers --forwarded-allow-ips`` so that
``request.client`` already holds the real peer.

Usage in route handlers:
    from lovepack.core.limiter import limiter

    @router.post("/some-endpoint")
    @limiter.limit(settings.compile_rate_limit)
    async def handler(request: Request, ...):
        ...

The `Request` parameter is required by SlowAPI even if the handler doesn't
use it directly - it uses it to extract the key.
"""

from slowapi import Limiter


def client_address(request) -> str:
    """Key function: rate-limit per client address."""
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=client_address, default_limits=[])
