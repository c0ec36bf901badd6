"""Rate limiting singleton using slowapi, keyed on the caller's address."""

from fastapi import Request
from slowapi import Limiter

from .config import settings


def client_ip(request: Request) -> str:
    """Client address, honouring X-Forwarded-For from the reverse proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=client_ip, enabled=settings.rate_limit_enabled)
