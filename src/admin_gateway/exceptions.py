"""Error taxonomy for the admin gateway.

Every error carries the HTTP status the boundary should answer with; the
FastAPI handler in ``admin_gateway.main`` turns them into ``{"error": ...}``
responses.
"""

from typing import Optional


class GatewayError(Exception):
    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(GatewayError):
    status_code = 400
    default_message = "Invalid request."


class MissingParameter(ValidationError):
    default_message = "A required parameter is missing."


class NotFoundError(GatewayError):
    status_code = 404
    default_message = "Resource not found."


class InvalidOrExpiredToken(NotFoundError):
    default_message = "Verification code or email is invalid."


class UnauthorizedError(GatewayError):
    status_code = 401
    default_message = "Not authorized"


class InvalidCredentials(UnauthorizedError):
    default_message = "Invalid credentials"


class PersistenceError(GatewayError):
    status_code = 500
    default_message = "The data store is unavailable."


class MailError(GatewayError):
    status_code = 500
    default_message = "Failed to send email"


class SignatureMismatch(GatewayError):
    status_code = 400
    default_message = "Invalid Signature"


class ReconciliationError(GatewayError):
    status_code = 500
    default_message = "Failed to reconcile payment."


class UnknownSubscriber(ReconciliationError, NotFoundError):
    status_code = 404
    default_message = "No subscriber matches the payment notification."


class IdentityProviderError(GatewayError):
    status_code = 502
    default_message = "Identity provider returned an error."

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.provider_status = status
        # Client-side rejections (duplicate email, malformed phone, ...) are the
        # caller's fault and surface as 400.
        if status is not None and 400 <= status < 500:
            self.status_code = 400


class ExternalTimeoutError(GatewayError):
    status_code = 504
    default_message = "An upstream service did not respond in time."
