"""Issue and redeem single-use email verification codes."""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from admin_gateway.config import Settings
from admin_gateway.crud import token_crud
from admin_gateway.exceptions import (
    InvalidOrExpiredToken,
    MissingParameter,
    NotFoundError,
    PersistenceError,
)
from admin_gateway.services.claims_manager import ClaimsManager
from admin_gateway.validation import normalize_email

logger = logging.getLogger(__name__)

# 32 random bytes -> 64 hex characters, 256 bits of entropy.
CODE_BYTES = 32


def generate_verification_code() -> str:
    return secrets.token_hex(CODE_BYTES)


def build_verification_link(base_url: str, code: str, email: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'code': code, 'email': email})}"


class TokenIssuer:
    def __init__(self, db_session: AsyncSession, app_settings: Settings):
        self._db = db_session
        self._settings = app_settings

    async def issue_verification_link(self, email: str) -> str:
        """
        Stores a fresh code for ``email`` and returns the link that redeems it.

        The code is committed before the link is returned; a store failure
        raises PersistenceError and no link is produced, so nothing can be
        emailed for a code that does not exist.
        """
        email = normalize_email(email)
        code = generate_verification_code()

        try:
            if self._settings.VERIFICATION_INVALIDATE_PREVIOUS:
                superseded = await token_crud.delete_tokens(self._db, email)
                if superseded:
                    logger.info(f"Invalidated {superseded} outstanding code(s) for {email}")
            else:
                await token_crud.delete_tokens(
                    self._db, email, older_than=self._expiry_cutoff()
                )
            await token_crud.add_token(self._db, email, code)
            await self._db.commit()
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.error(f"Failed to persist verification code for {email}: {e}")
            raise PersistenceError("Failed to store verification code.") from e
        except PersistenceError:
            await self._db.rollback()
            raise

        logger.info(f"Verification code issued for {email}")
        return build_verification_link(
            self._settings.VERIFICATION_REDIRECT_BASE_URL, code, email
        )

    def _expiry_cutoff(self) -> datetime:
        return datetime.now(timezone.utc) - timedelta(
            minutes=self._settings.VERIFICATION_TOKEN_TTL_MINUTES
        )


class TokenRedeemer:
    def __init__(
        self,
        db_session: AsyncSession,
        claims_manager: ClaimsManager,
        app_settings: Settings,
    ):
        self._db = db_session
        self._claims = claims_manager
        self._settings = app_settings

    async def redeem(self, email: str | None, code: str | None) -> str:
        """
        Consumes the (email, code) pair and marks the identity's email verified.

        The token delete and the identity update share one database
        transaction: the delete is committed only after the provider accepted
        the update, and rolled back (leaving the code redeemable) otherwise.
        Returns the uid of the verified identity.
        """
        if not email or not code:
            raise MissingParameter("Verification code or email is missing.")
        email = normalize_email(email)
        not_before = datetime.now(timezone.utc) - timedelta(
            minutes=self._settings.VERIFICATION_TOKEN_TTL_MINUTES
        )

        try:
            if not await token_crud.consume_token(self._db, email, code, not_before):
                raise InvalidOrExpiredToken()

            user = await self._claims.get_user_by_email(email)
            if user is None:
                raise NotFoundError("User not found.")

            await self._claims.mark_email_verified(str(user.id))
            await self._db.commit()
        except SQLAlchemyError as e:
            await self._db.rollback()
            raise PersistenceError("Failed to redeem verification code.") from e
        except Exception:
            await self._db.rollback()
            raise

        logger.info(f"Email verified for {email} (user {user.id})")
        return str(user.id)
