"""
Per-client request rate limiting (slowapi).
A first-pass safety net; production deployments should also limit at the edge proxy.
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import Settings
from app.core.logger import get_logger_with_correlation

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


def build_rate_limit(ttl_ms: int, limit: int) -> str:
    """Translates a millisecond window into a limits-library expression, e.g. "100 per 60 second"."""
    window_seconds = max(1, -(-ttl_ms // 1000))
    return f"{limit} per {window_seconds} second"


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=get_remote_address,
        default_limits=[build_rate_limit(settings.THROTTLE_TTL, settings.THROTTLE_LIMIT)],
        headers_enabled=True,
        storage_uri="memory://",
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with the standard rate limit headers of the exhausted window."""
    correlation_id = getattr(request.state, "correlation_id", "N/A")
    get_logger_with_correlation(correlation_id).warning(
        f"Rate limit exceeded: {request.method} {request.url.path} ({exc.detail})"
    )
    response = JSONResponse(status_code=429, content={"error": RATE_LIMIT_MESSAGE})
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)
