from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Custom rate limit handler"""
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded",
            "kind": "rate_limited",
            "code": "RATE_LIMITED",
        }
    )
