"""Rate limiting for public write endpoints using SlowAPI.

Submissions and checkout creation are unauthenticated, so they are limited
per client IP. Read endpoints are not limited.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

SUBMISSION_LIMIT = "10/hour"
CHECKOUT_LIMIT = "20/hour"


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 with the limit that was hit, e.g. "10 per 1 hour"."""
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Too many requests to {request.url.path}. Please try again later.",
            "limit": exc.detail,
        },
    )
