"""
Client fixtures for testing.
Provides the HTTP client with the database, identity provider and mail
transport dependencies replaced by test doubles.
"""
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from admin_gateway.db import get_db
from admin_gateway.mail_client import get_mail_transport
from admin_gateway.main import app as fastapi_app
from admin_gateway.supabase_client import get_supabase_admin_client, get_supabase_client

fastapi_app.root_path = ""


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, identity_provider, mail_transport
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    overrides = {
        get_db: override_get_db,
        get_supabase_client: lambda: identity_provider,
        get_supabase_admin_client: lambda: identity_provider,
        get_mail_transport: lambda: mail_transport,
    }
    fastapi_app.dependency_overrides.update(overrides)

    transport = ASGITransport(app=fastapi_app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        for dependency in overrides:
            fastapi_app.dependency_overrides.pop(dependency, None)
