import asyncio
from typing import Awaitable, TypeVar

from supabase_auth.errors import AuthApiError, AuthError

from admin_gateway.exceptions import ExternalTimeoutError, IdentityProviderError
from admin_gateway.logging_config import logger

T = TypeVar("T")


async def provider_call(awaitable: Awaitable[T], action: str, timeout: float) -> T:
    """Awaits an identity provider call with a deadline and maps its errors."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Identity provider timed out during {action} after {timeout}s")
        raise ExternalTimeoutError(
            f"Identity provider did not respond in time ({action})."
        ) from e
    except AuthApiError as e:
        logger.warning(
            f"Identity provider rejected {action}: {e.message} (Status: {e.status})"
        )
        raise IdentityProviderError(e.message, status=e.status) from e
    except AuthError as e:
        logger.error(f"Identity provider error during {action}: {e.message}")
        raise IdentityProviderError(e.message) from e
