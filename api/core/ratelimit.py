"""Rate limiting configuration using slowapi.

memory:// storage is per-process. Point RATELIMIT_STORAGE_URI at Redis when
running more than one worker.
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)

settings = get_settings()


def _client_key(request: Request) -> str:
    """Rate-limit per streak owner and client address.

    Several local actors can share one host, so the configured user key is
    part of the bucket.
    """
    return f"{settings.checkin_user_key}:{get_remote_address(request)}"


limiter = Limiter(
    key_func=_client_key,
    default_limits=["100/minute"],
    storage_uri=settings.ratelimit_storage_uri,
    key_prefix="checkin:",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Custom handler for rate limit exceeded errors."""
    logger.warning(
        "ratelimit.exceeded",
        client=_client_key(request),
        limit=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please slow down.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


CHECKIN_LIMIT = "30/minute"

READ_LIMIT = "120/minute"
