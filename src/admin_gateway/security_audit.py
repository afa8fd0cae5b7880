import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request

from admin_gateway.logging_config import get_request_id

# Get dedicated security audit logger
logger = logging.getLogger("admin_gateway.security")

SENSITIVE_KEYS = [
    "password",
    "new_password",
    "token",
    "code",
    "verification_code",
    "signature",
    "passphrase",
    "secret",
    "key",
    "authorization",
]


def _sanitize_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove sensitive information from data before logging.
    """
    sanitized = data.copy()
    for key, value in list(sanitized.items()):
        if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = _sanitize_data(value)
    return sanitized


def log_security_event(
    event_type: str,
    user_id: Optional[str] = None,
    additional_data: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
    status: str = "success",
    detail: Optional[str] = None,
) -> None:
    """
    Log a security-related event with structured data.

    Args:
        event_type: Type of security event (e.g., "login", "email_verification")
        user_id: Identity uid associated with the event
        additional_data: Any additional relevant data, redacted before logging
        request: FastAPI request object
        status: Outcome status ("success", "failure", "attempt")
        detail: Optional detailed message
    """
    security_event: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "status": status,
    }

    if user_id:
        security_event["user_id"] = str(user_id)

    request_id = get_request_id()
    if request_id:
        security_event["request_id"] = request_id

    if request is not None:
        if request.client:
            security_event["ip_address"] = request.client.host
        security_event["request"] = {
            "method": request.method,
            "path": request.url.path,
            "user_agent": request.headers.get("user-agent", "unknown"),
        }

    if additional_data:
        security_event["data"] = _sanitize_data(additional_data)

    if detail:
        security_event["detail"] = detail

    logger.info(
        f"Security event: {event_type} - {status}",
        extra={"security_event": security_event},
    )


# Convenience functions for common security events
def log_login_attempt(request: Request, email: str):
    log_security_event(
        event_type="login_attempt",
        additional_data={"email": email},
        request=request,
        status="attempt",
    )


def log_login_success(request: Request, user_id: str, email: str):
    log_security_event(
        event_type="login_success",
        user_id=user_id,
        additional_data={"email": email},
        request=request,
    )


def log_login_failure(request: Request, email: str, reason: str):
    log_security_event(
        event_type="login_failure",
        additional_data={"email": email},
        request=request,
        status="failure",
        detail=reason,
    )


def log_password_reset_request(request: Request, email: str, status: str = "attempt"):
    log_security_event(
        event_type="password_reset_request",
        additional_data={"email": email},
        request=request,
        status=status,
    )


def log_email_verification(
    request: Request, email: str, status: str, detail: Optional[str] = None
):
    """
    Log issuance or redemption of an email verification code.
    """
    log_security_event(
        event_type="email_verification",
        additional_data={"email": email},
        request=request,
        status=status,
        detail=detail,
    )


def log_admin_action(
    request: Request,
    action: str,
    target_id: Optional[str] = None,
    additional_data: Optional[Dict[str, Any]] = None,
):
    """
    Log an administrative action on an identity.
    """
    data = dict(additional_data or {})
    data["action"] = action
    if target_id:
        data["target_id"] = target_id

    log_security_event(
        event_type="admin_action",
        additional_data=data,
        request=request,
    )


def log_payment_event(
    request: Request,
    status: str,
    payment_id: Optional[str] = None,
    detail: Optional[str] = None,
):
    """
    Log receipt and outcome of a payment gateway callback.
    """
    log_security_event(
        event_type="payment_callback",
        additional_data={"pf_payment_id": payment_id} if payment_id else None,
        request=request,
        status=status,
        detail=detail,
    )
