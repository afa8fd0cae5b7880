"""Reads and writes the authorization state attached to an identity.

Claims live in the identity's ``app_metadata``, which only the service-role
client may change. A change is visible to a signed-in client on its next
token refresh; credentials issued before the write keep the old claims until
then.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from supabase._async.client import AsyncClient as AsyncSupabaseClient

from admin_gateway.crud import user_crud
from admin_gateway.exceptions import IdentityProviderError, ValidationError
from admin_gateway.schemas.user_schemas import CLAIM_KEYS, AuthorizationClaims
from admin_gateway.services.provider import provider_call

logger = logging.getLogger(__name__)

LIST_USERS_PAGE_SIZE = 100


class ClaimsManager:
    def __init__(
        self,
        admin_client: AsyncSupabaseClient,
        db_session: AsyncSession,
        timeout: float,
    ):
        self._admin = admin_client.auth.admin
        self._db = db_session
        self._timeout = timeout

    async def _call(self, awaitable, action: str):
        return await provider_call(awaitable, action, self._timeout)

    # --- Identity lookups ---

    async def get_user(self, uid: str) -> Optional[Any]:
        """Returns the provider's user object, or None when the uid is unknown."""
        try:
            response = await self._call(self._admin.get_user_by_id(uid), "get user")
        except IdentityProviderError as e:
            if e.provider_status == 404:
                return None
            raise
        return response.user if response else None

    async def get_user_by_email(self, email: str) -> Optional[Any]:
        """
        Resolves an email to the provider's user object.

        The profile index is tried first. Identities without a profile row
        (self sign-ups, or a create whose profile insert failed) are found by
        scanning the provider's user list.
        """
        profile = await user_crud.get_profile_by_email(self._db, email)
        if profile:
            user = await self.get_user(profile.user_id)
            if user is not None:
                return user
            logger.warning(f"Profile for {email} points at missing identity {profile.user_id}")

        wanted = email.strip().lower()
        async for user in self._iter_users():
            if (user.email or "").lower() == wanted:
                return user
        logger.info(f"No identity found for email {email}")
        return None

    async def _iter_users(self):
        page = 1
        while True:
            batch = await self._call(
                self._admin.list_users(page=page, per_page=LIST_USERS_PAGE_SIZE),
                "list users",
            )
            for user in batch:
                yield user
            if len(batch) < LIST_USERS_PAGE_SIZE:
                return
            page += 1

    async def list_users(self) -> List[Any]:
        return [user async for user in self._iter_users()]

    # --- Claims ---

    async def get_claims(self, uid: str) -> Optional[AuthorizationClaims]:
        user = await self.get_user(uid)
        if user is None:
            return None
        return self.claims_from_user(user)

    @staticmethod
    def claims_from_user(user: Any) -> Optional[AuthorizationClaims]:
        metadata = getattr(user, "app_metadata", None) or {}
        stored = {key: metadata[key] for key in CLAIM_KEYS if key in metadata}
        if not stored:
            return None
        try:
            return AuthorizationClaims.model_validate(stored)
        except PydanticValidationError:
            # e.g. a bare {"admin": true} granted before permissions existed.
            logger.warning(
                f"Identity {user.id} carries malformed claims {stored}; treating as non-admin"
            )
            return AuthorizationClaims(admin=False)

    async def set_admin_claims(
        self, uid: str, claims: AuthorizationClaims | Dict[str, Any]
    ) -> AuthorizationClaims:
        """
        Replaces the identity's claims with ``claims``.

        All three claim keys are always written, so any permission tier the
        identity held before is overwritten rather than merged.
        """
        if not isinstance(claims, AuthorizationClaims):
            try:
                claims = AuthorizationClaims.model_validate(claims)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid claims: {e.errors()[0]['msg']}") from e

        await self._call(
            self._admin.update_user_by_id(uid, {"app_metadata": claims.to_metadata()}),
            "set claims",
        )
        logger.info(f"Claims set for user {uid}: {claims.to_metadata()}")
        return claims

    async def mark_email_verified(self, uid: str) -> None:
        await self._call(
            self._admin.update_user_by_id(uid, {"email_confirm": True}),
            "mark email verified",
        )
        logger.info(f"Email marked verified for user {uid}")

    # --- Account management ---

    async def create_user(
        self,
        email: str,
        password: str,
        display_name: str,
        phone_number: Optional[str],
        claims: AuthorizationClaims,
    ) -> Any:
        attributes: Dict[str, Any] = {
            "email": email,
            "password": password,
            "email_confirm": False,
            "user_metadata": {"display_name": display_name},
            "app_metadata": claims.to_metadata(),
        }
        if phone_number:
            attributes["phone"] = phone_number
        response = await self._call(self._admin.create_user(attributes), "create user")
        logger.info(f"Identity created for {email}: {response.user.id}")
        return response.user

    async def update_phone_number(self, uid: str, phone_number: str) -> Any:
        response = await self._call(
            self._admin.update_user_by_id(uid, {"phone": phone_number}),
            "update phone number",
        )
        return response.user

    async def delete_user(self, uid: str) -> None:
        await self._call(self._admin.delete_user(uid), "delete user")
        logger.info(f"Identity deleted: {uid}")

    async def generate_password_reset_link(self, email: str, redirect_url: str) -> str:
        response = await self._call(
            self._admin.generate_link(
                {
                    "type": "recovery",
                    "email": email,
                    "options": {"redirect_to": redirect_url},
                }
            ),
            "generate password reset link",
        )
        return response.properties.action_link
