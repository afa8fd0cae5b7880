"""Admin login: identity lookup, credential check and claim-based authorization.

States run UNKNOWN -> LOOKED_UP -> one of the terminal states AUTHORIZED,
UNAUTHORIZED or INVALID_CREDENTIALS. Malformed input raises ValidationError
before any lookup happens.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from supabase._async.client import AsyncClient as AsyncSupabaseClient

from admin_gateway.config import Settings
from admin_gateway.exceptions import IdentityProviderError, ValidationError
from admin_gateway.schemas.user_schemas import Permission
from admin_gateway.services.claims_manager import ClaimsManager
from admin_gateway.services.provider import provider_call
from admin_gateway.validation import normalize_email

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 30


class LoginState(str, Enum):
    UNKNOWN = "UNKNOWN"
    LOOKED_UP = "LOOKED_UP"
    AUTHORIZED = "AUTHORIZED"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"


@dataclass
class LoginResult:
    state: LoginState
    user_id: Optional[str] = None
    permissions: Optional[Permission] = None
    force_password_change: bool = False

    @property
    def authorized(self) -> bool:
        return self.state == LoginState.AUTHORIZED


class AuthGateway:
    def __init__(
        self,
        claims_manager: ClaimsManager,
        supabase_client: AsyncSupabaseClient,
        app_settings: Settings,
    ):
        self._claims = claims_manager
        self._supabase = supabase_client
        self._settings = app_settings

    @staticmethod
    def validate_credentials(email: str, password: str) -> str:
        email = normalize_email(email)
        if not password or not (
            PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH
        ):
            raise ValidationError(
                f"Password must be between {PASSWORD_MIN_LENGTH} and "
                f"{PASSWORD_MAX_LENGTH} characters"
            )
        return email

    async def login(self, email: str, password: str) -> LoginResult:
        state = LoginState.UNKNOWN
        email = self.validate_credentials(email, password)

        user = await self._claims.get_user_by_email(email)
        if user is None:
            logger.info(f"Login {state.value} -> INVALID_CREDENTIALS: no identity for {email}")
            return LoginResult(LoginState.INVALID_CREDENTIALS)
        state = LoginState.LOOKED_UP
        user_id = str(user.id)

        if self._settings.LOGIN_VERIFY_PASSWORD and not await self._password_matches(
            email, password
        ):
            logger.info(f"Login {state.value} -> INVALID_CREDENTIALS: bad password for {user_id}")
            return LoginResult(LoginState.INVALID_CREDENTIALS, user_id=user_id)

        claims = self._claims.claims_from_user(user)
        if claims is None or claims.admin is not True:
            logger.info(f"Login {state.value} -> UNAUTHORIZED: {user_id} is not an admin")
            return LoginResult(LoginState.UNAUTHORIZED, user_id=user_id)

        logger.info(f"Login {state.value} -> AUTHORIZED: {user_id}")
        return LoginResult(
            LoginState.AUTHORIZED,
            user_id=user_id,
            permissions=claims.permissions,
            force_password_change=claims.force_password_reset,
        )

    async def _password_matches(self, email: str, password: str) -> bool:
        try:
            response = await provider_call(
                self._supabase.auth.sign_in_with_password(
                    {"email": email, "password": password}
                ),
                "password sign-in",
                self._settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
            )
        except IdentityProviderError as e:
            if e.provider_status is not None and 400 <= e.provider_status < 500:
                return False
            raise
        return bool(response and response.user)
