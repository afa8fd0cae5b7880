import logging
import secrets
import string
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from admin_gateway.config import Settings as AppSettingsType
from admin_gateway.crud import user_crud
from admin_gateway.db import get_db
from admin_gateway.dependencies import (
    get_app_settings,
    get_auth_gateway,
    get_claims_manager,
    get_notification_dispatcher,
)
from admin_gateway.exceptions import (
    InvalidCredentials,
    MissingParameter,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from admin_gateway.rate_limiting import LOGIN_LIMIT, limiter
from admin_gateway.schemas.common_schemas import ErrorResponse, MessageResponse
from admin_gateway.schemas.user_schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminUpdateRequest,
    AuthorizationClaims,
    ClaimsUpdatedResponse,
    CreateUserRequest,
    DeleteUserRequest,
    EmailRequest,
    Permission,
    StatusResponse,
    UserRecord,
    UserRecordResponse,
)
from admin_gateway.security_audit import (
    log_admin_action,
    log_login_attempt,
    log_login_failure,
    log_login_success,
)
from admin_gateway.services import (
    AuthGateway,
    ClaimsManager,
    LoginState,
    NotificationDispatcher,
)
from admin_gateway.validation import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Admin Users"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)

GENERATED_PASSWORD_LENGTH = 12
_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def generate_random_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


async def _require_user_by_email(claims_manager: ClaimsManager, email: str):
    user = await claims_manager.get_user_by_email(email)
    if user is None:
        raise NotFoundError("User not found.")
    return user


@router.post(
    "/create-user", response_model=UserRecordResponse, status_code=status.HTTP_200_OK
)
async def create_admin_user(
    request: Request,
    payload: CreateUserRequest,
    db: AsyncSession = Depends(get_db),
    claims_manager: ClaimsManager = Depends(get_claims_manager),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    settings: AppSettingsType = Depends(get_app_settings),
):
    """
    Creates an admin account with a generated password and emails it to the
    new admin, who must change it on first login.
    """
    email = normalize_email(payload.email)
    if await user_crud.get_profile_by_phone_number(db, payload.phone_number):
        raise ValidationError("Phone number already exists for another user.")

    password = generate_random_password()
    claims = AuthorizationClaims(
        admin=True, permissions=Permission.EDITOR, force_password_reset=True
    )

    user = await claims_manager.create_user(
        email=email,
        password=password,
        display_name=payload.name,
        phone_number=payload.phone_number,
        claims=claims,
    )
    await user_crud.create_profile(
        db,
        user_id=str(user.id),
        email=email,
        display_name=payload.name,
        phone_number=payload.phone_number,
    )
    await db.commit()

    await dispatcher.send_account_created(email, password, settings.ADMIN_LOGIN_URL)
    log_admin_action(request, "create_admin", target_id=str(user.id))

    refreshed = await claims_manager.get_user(str(user.id)) or user
    return UserRecordResponse(
        message="Admin created successfully",
        user_record=UserRecord.from_supabase_user(refreshed),
    )


@router.put(
    "/admin-update", response_model=UserRecordResponse, status_code=status.HTTP_200_OK
)
async def update_admin_phone_number(
    request: Request,
    payload: AdminUpdateRequest,
    db: AsyncSession = Depends(get_db),
    claims_manager: ClaimsManager = Depends(get_claims_manager),
):
    if not payload.uid:
        raise MissingParameter("No user is provided.")
    if not payload.phone_number:
        raise MissingParameter("Phone number is required.")

    holder = await user_crud.get_profile_by_phone_number(db, payload.phone_number)
    if holder and holder.user_id != payload.uid:
        raise ValidationError("Phone number already exists for another user.")

    user = await claims_manager.update_phone_number(payload.uid, payload.phone_number)

    profile = await user_crud.get_profile_by_user_id(db, payload.uid)
    if profile:
        await user_crud.update_profile(db, profile, {"phone_number": payload.phone_number})
        await db.commit()

    log_admin_action(request, "update_phone_number", target_id=payload.uid)
    return UserRecordResponse(
        message="Successfully updated user",
        user_record=UserRecord.from_supabase_user(user),
    )


@router.post(
    "/admin-login", response_model=AdminLoginResponse, status_code=status.HTTP_200_OK
)
@limiter.limit(LOGIN_LIMIT)
async def admin_login(
    request: Request,
    payload: AdminLoginRequest,
    auth_gateway: AuthGateway = Depends(get_auth_gateway),
):
    log_login_attempt(request, payload.email)
    try:
        result = await auth_gateway.login(payload.email, payload.password)
    except ValidationError as e:
        log_login_failure(request, payload.email, e.message)
        raise

    if result.state == LoginState.INVALID_CREDENTIALS:
        log_login_failure(request, payload.email, "Invalid credentials")
        raise InvalidCredentials("Invalid credentials")
    if not result.authorized:
        log_login_failure(request, payload.email, "Not an admin")
        raise UnauthorizedError("Not authorized")

    log_login_success(request, result.user_id, payload.email)
    return AdminLoginResponse(
        message="Authorized",
        force_password_change=result.force_password_change,
        permissions=result.permissions,
    )


@router.put(
    "/update-password-reset",
    response_model=ClaimsUpdatedResponse,
    status_code=status.HTTP_200_OK,
)
async def complete_password_update(
    request: Request,
    payload: EmailRequest,
    claims_manager: ClaimsManager = Depends(get_claims_manager),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Clears the forced password reset once an admin has chosen a password.

    The admin's permission tier is kept; the email counts as verified since
    the admin received the generated password there.
    """
    email = normalize_email(payload.email)
    user = await _require_user_by_email(claims_manager, email)
    uid = str(user.id)

    current = claims_manager.claims_from_user(user)
    claims = await claims_manager.set_admin_claims(
        uid,
        AuthorizationClaims(
            admin=True,
            permissions=(current and current.permissions) or Permission.EDITOR,
            force_password_reset=False,
        ),
    )
    await claims_manager.mark_email_verified(uid)
    await dispatcher.send_password_update_notice(email)

    log_admin_action(request, "complete_password_reset", target_id=uid)
    return ClaimsUpdatedResponse(
        message="Successful",
        admin=claims.admin,
        permissions=claims.permissions,
        force_password_reset=claims.force_password_reset,
    )


@router.post(
    "/change-admin-role", response_model=StatusResponse, status_code=status.HTTP_200_OK
)
async def grant_admin_role(
    request: Request,
    payload: EmailRequest,
    claims_manager: ClaimsManager = Depends(get_claims_manager),
):
    email = normalize_email(payload.email)
    user = await _require_user_by_email(claims_manager, email)
    uid = str(user.id)

    current = claims_manager.claims_from_user(user)
    await claims_manager.set_admin_claims(
        uid,
        AuthorizationClaims(
            admin=True,
            permissions=(current and current.permissions) or Permission.EDITOR,
            force_password_reset=bool(current and current.force_password_reset),
        ),
    )

    log_admin_action(request, "grant_admin", target_id=uid)
    return StatusResponse(status="success")


@router.get(
    "/view-users", response_model=List[UserRecord], status_code=status.HTTP_200_OK
)
async def view_users(claims_manager: ClaimsManager = Depends(get_claims_manager)):
    users = await claims_manager.list_users()
    logger.info(f"Listed {len(users)} users")
    return [UserRecord.from_supabase_user(user) for user in users]


@router.delete(
    "/delete-user", response_model=MessageResponse, status_code=status.HTTP_200_OK
)
async def delete_user(
    request: Request,
    payload: DeleteUserRequest,
    db: AsyncSession = Depends(get_db),
    claims_manager: ClaimsManager = Depends(get_claims_manager),
):
    await claims_manager.delete_user(payload.uid)
    # Profiles are removed after the identity so a provider failure leaves both.
    if await user_crud.delete_profile(db, payload.uid):
        await db.commit()

    log_admin_action(request, "delete_user", target_id=payload.uid)
    return MessageResponse(message="User deleted successfully")
