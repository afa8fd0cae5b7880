from .common_schemas import ErrorResponse, MessageResponse
from .payment_schemas import (
    CallbackAcknowledgement,
    CheckoutRequest,
    CheckoutResponse,
    PayFastNotification,
)
from .user_schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminUpdateRequest,
    AuthorizationClaims,
    ClaimsUpdatedResponse,
    ContactUsRequest,
    CreateUserRequest,
    DeleteUserRequest,
    EmailRequest,
    EmailVerificationSentResponse,
    EmailVerificationStatusResponse,
    PasswordResetRequest,
    Permission,
    StatusResponse,
    UserRecord,
    UserRecordResponse,
    VerifyEmailRequest,
)

__all__ = [
    "AdminLoginRequest",
    "AdminLoginResponse",
    "AdminUpdateRequest",
    "AuthorizationClaims",
    "CallbackAcknowledgement",
    "CheckoutRequest",
    "CheckoutResponse",
    "ClaimsUpdatedResponse",
    "ContactUsRequest",
    "CreateUserRequest",
    "DeleteUserRequest",
    "EmailRequest",
    "EmailVerificationSentResponse",
    "EmailVerificationStatusResponse",
    "ErrorResponse",
    "MessageResponse",
    "PasswordResetRequest",
    "PayFastNotification",
    "Permission",
    "StatusResponse",
    "UserRecord",
    "UserRecordResponse",
    "VerifyEmailRequest",
]
