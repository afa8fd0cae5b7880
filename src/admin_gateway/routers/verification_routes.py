import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from admin_gateway.dependencies import (
    get_claims_manager,
    get_notification_dispatcher,
    get_token_issuer,
    get_token_redeemer,
)
from admin_gateway.exceptions import (
    GatewayError,
    IdentityProviderError,
    MissingParameter,
    NotFoundError,
)
from admin_gateway.rate_limiting import EMAIL_LIMIT, PASSWORD_RESET_LIMIT, limiter
from admin_gateway.schemas.common_schemas import ErrorResponse, MessageResponse
from admin_gateway.schemas.user_schemas import (
    ContactUsRequest,
    EmailRequest,
    EmailVerificationSentResponse,
    EmailVerificationStatusResponse,
    PasswordResetRequest,
    UserRecord,
    VerifyEmailRequest,
)
from admin_gateway.security_audit import (
    log_email_verification,
    log_password_reset_request,
)
from admin_gateway.services import (
    ClaimsManager,
    NotificationDispatcher,
    TokenIssuer,
    TokenRedeemer,
)
from admin_gateway.validation import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Email Verification"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


@router.post(
    "/reset-password", response_model=MessageResponse, status_code=status.HTTP_200_OK
)
@limiter.limit(PASSWORD_RESET_LIMIT)
async def request_password_reset(
    request: Request,
    payload: PasswordResetRequest,
    claims_manager: ClaimsManager = Depends(get_claims_manager),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    email = normalize_email(payload.email)
    log_password_reset_request(request, email)

    try:
        link = await claims_manager.generate_password_reset_link(email, payload.url)
    except IdentityProviderError as e:
        logger.error(f"Error generating password reset link for {email}: {e.message}")
        log_password_reset_request(request, email, status="failure")
        raise IdentityProviderError(
            "Unable to generate password reset link.", e.provider_status
        ) from e

    await dispatcher.send_password_reset_link(email, link)
    log_password_reset_request(request, email, status="success")
    return MessageResponse(message="Password reset email sent.")


@router.post(
    "/email-verification",
    response_model=EmailVerificationSentResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(EMAIL_LIMIT)
async def send_email_verification(
    request: Request,
    payload: EmailRequest,
    issuer: TokenIssuer = Depends(get_token_issuer),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Issues a single-use verification code and emails the link that redeems it.

    The email is sent only once the code is stored.
    """
    email = normalize_email(payload.email)
    link = await issuer.issue_verification_link(email)
    await dispatcher.send_verification_link(email, link)

    log_email_verification(request, email, status="issued")
    return EmailVerificationSentResponse(message="Email sent successfully!", link=link)


@router.post(
    "/verify-email", response_model=MessageResponse, status_code=status.HTTP_200_OK
)
async def verify_email(
    request: Request,
    payload: VerifyEmailRequest,
    redeemer: TokenRedeemer = Depends(get_token_redeemer),
):
    try:
        await redeemer.redeem(payload.email, payload.code)
    except GatewayError as e:
        log_email_verification(
            request, payload.email or "", status="failure", detail=e.message
        )
        raise

    log_email_verification(request, payload.email, status="success")
    return MessageResponse(message="Email verification successful.")


@router.get(
    "/check-email-verification",
    response_model=EmailVerificationStatusResponse,
    status_code=status.HTTP_200_OK,
)
async def check_email_verification(
    email: Optional[str] = Query(None),
    claims_manager: ClaimsManager = Depends(get_claims_manager),
):
    if not email:
        raise MissingParameter("Email is missing.")
    email = normalize_email(email)

    user = await claims_manager.get_user_by_email(email)
    if user is None:
        raise NotFoundError("User not found.")

    record = UserRecord.from_supabase_user(user)
    return EmailVerificationStatusResponse(
        message="Email is verified." if record.email_verified else "Email is not verified.",
        verified=record.email_verified,
        user_record=record,
    )


@router.post(
    "/send-contactus-email",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(EMAIL_LIMIT)
async def send_contact_us_email(
    request: Request,
    payload: ContactUsRequest,
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    await dispatcher.relay_contact_message(
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        subject=payload.subject,
        message=payload.message,
    )
    return MessageResponse(message="Email sent successfully!")
