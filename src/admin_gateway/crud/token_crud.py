"""Durable store of outstanding email verification codes."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import PersistenceError
from ..models.email_verification_token import EmailVerificationToken

logger = logging.getLogger(__name__)


async def add_token(
    db_session: AsyncSession, email: str, verification_code: str
) -> EmailVerificationToken:
    """Stages a new token row. The caller owns the commit."""
    try:
        token = EmailVerificationToken(email=email, verification_code=verification_code)
        db_session.add(token)
        await db_session.flush()
        return token
    except SQLAlchemyError as e:
        logger.error(f"Database error while storing verification token: {e}", exc_info=True)
        raise PersistenceError("Failed to store verification code.") from e


async def delete_tokens(
    db_session: AsyncSession, email: str, older_than: Optional[datetime] = None
) -> int:
    """Deletes the email's tokens, or only those created before ``older_than``."""
    stmt = delete(EmailVerificationToken).where(EmailVerificationToken.email == email)
    if older_than is not None:
        stmt = stmt.where(EmailVerificationToken.created_at < older_than)
    try:
        result = await db_session.execute(
            stmt.execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
    except SQLAlchemyError as e:
        logger.error(f"Database error while deleting verification tokens: {e}", exc_info=True)
        raise PersistenceError("Failed to delete verification codes.") from e


async def consume_token(
    db_session: AsyncSession,
    email: str,
    verification_code: str,
    not_before: Optional[datetime] = None,
) -> bool:
    """
    Deletes the token matching both email and code, if it exists.

    This is the only match operation the store offers: the row is found and
    removed by one conditional DELETE, so two concurrent redemptions cannot
    both observe it. Returns True when a row was deleted.
    """
    stmt = delete(EmailVerificationToken).where(
        EmailVerificationToken.email == email,
        EmailVerificationToken.verification_code == verification_code,
    )
    if not_before is not None:
        stmt = stmt.where(EmailVerificationToken.created_at >= not_before)
    try:
        result = await db_session.execute(
            stmt.execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as e:
        logger.error(f"Database error while redeeming verification token: {e}", exc_info=True)
        raise PersistenceError("Failed to redeem verification code.") from e
    return (result.rowcount or 0) > 0
