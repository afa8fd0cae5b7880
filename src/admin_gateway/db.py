from typing import Any, AsyncGenerator, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from admin_gateway.config import Environment, settings
from admin_gateway.logging_config import logger

# --- 1. Centralized Configuration Access ---
DATABASE_URL = settings.DATABASE_URL


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool and driver options for the configured backend."""
    if url.startswith("sqlite"):
        # SQLite (local development and tests) manages its own pooling.
        return {}
    return {
        # --- Connection Pool Settings ---
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,  # Recycle connections every 30 minutes
        # Discard dead connections before they are handed out.
        "pool_pre_ping": True,
        # Connection arguments passed directly to the psycopg v3 driver
        "connect_args": {
            "application_name": "admin_gateway",
            "options": "-c timezone=UTC"
            + (
                ""
                if settings.ENVIRONMENT == Environment.TESTING
                else " -c statement_timeout=5000"
            ),
        },
    }


# --- 2. Engine ---
engine: AsyncEngine = create_async_engine(
    DATABASE_URL,
    # Log SQL statements in DEBUG mode only.
    echo=settings.LOGGING_LEVEL.upper() == "DEBUG",
    **_engine_options(DATABASE_URL),
)

# --- 3. Standard Session Factory ---
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

# --- 4. Declarative Base ---
# All SQLAlchemy models will inherit from this Base.
Base = declarative_base()


# --- 5. Session Dependency ---
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a transactional, auto-closing database session.

    The route handler's work is committed when it returns normally and rolled
    back when it raises, so a handler can rely on all of its writes landing
    together or not at all.
    """
    session = AsyncSessionLocal()
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database transaction failed: {e}", exc_info=True)
        await session.rollback()
        raise
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
