from supabase._async.client import AsyncClient as AsyncSupabaseClient
from supabase._async.client import create_client as create_async_supabase_client

from admin_gateway.config import settings
from admin_gateway.logging_config import logger

# Process-wide identity provider handles, created once in the app lifespan.
# "anon" signs users in; "admin" (service role) manages accounts and claims.
_clients: dict[str, AsyncSupabaseClient | None] = {"anon": None, "admin": None}


async def _create_client(name: str, key: str) -> AsyncSupabaseClient:
    logger.info(f"Initializing Supabase {name} client with URL: {settings.SUPABASE_URL[:20]}...")
    try:
        client = await create_async_supabase_client(settings.SUPABASE_URL, key)
    except Exception as e:
        logger.error(f"Failed to initialize Supabase {name} client: {e}", exc_info=True)
        raise
    logger.info(f"Supabase {name} client initialized successfully.")
    return client


async def init_supabase_clients() -> None:
    """
    Initializes the anon and service-role Supabase clients.
    Called once at application startup.
    """
    if _clients["anon"] and _clients["admin"]:
        logger.info("Supabase clients already initialized.")
        return

    if not all(
        [
            settings.SUPABASE_URL,
            settings.SUPABASE_ANON_KEY,
            settings.SUPABASE_SERVICE_ROLE_KEY,
        ]
    ):
        logger.error("Supabase URL, Anon Key, or Service Role Key is not configured.")
        raise ValueError("Supabase configuration is incomplete.")

    _clients["anon"] = await _create_client("anon", settings.SUPABASE_ANON_KEY)
    _clients["admin"] = await _create_client(
        "admin", settings.SUPABASE_SERVICE_ROLE_KEY
    )


async def close_supabase_clients() -> None:
    """Drops the client references at application shutdown."""
    if any(_clients.values()):
        logger.info("Closing Supabase clients...")
        _clients["anon"] = None
        _clients["admin"] = None
        logger.info("Supabase client references cleared.")


def get_supabase_client() -> AsyncSupabaseClient:
    """FastAPI dependency returning the anon Supabase client."""
    client = _clients["anon"]
    if client is None:
        logger.error("Supabase client accessed before initialization.")
        raise RuntimeError("Supabase client not available. Check application lifespan.")
    return client


def get_supabase_admin_client() -> AsyncSupabaseClient:
    """FastAPI dependency returning the service-role Supabase client."""
    client = _clients["admin"]
    if client is None:
        logger.error("Supabase admin client accessed before initialization.")
        raise RuntimeError(
            "Supabase admin client not available. Check application lifespan."
        )
    return client
