"""
Helper functions for tests that need an identity and its profile row.
"""
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from admin_gateway.crud import user_crud


async def seed_user(
    db_session: AsyncSession,
    provider,
    email: str,
    password: Optional[str] = None,
    app_metadata: Optional[Dict[str, Any]] = None,
    phone: Optional[str] = None,
    confirmed: bool = False,
):
    """Creates an identity in the fake provider plus the matching profile."""
    user = provider.add_user(
        email=email,
        password=password,
        app_metadata=app_metadata,
        phone=phone,
        confirmed=confirmed,
    )
    await user_crud.create_profile(
        db_session, user_id=user.id, email=email, phone_number=phone
    )
    await db_session.commit()
    return user
