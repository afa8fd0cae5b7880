from .auth_gateway import AuthGateway, LoginResult, LoginState
from .claims_manager import ClaimsManager
from .notification_dispatcher import NotificationDispatcher
from .subscription_reconciler import (
    PaymentOutcome,
    SubscriptionReconciler,
    SubscriptionWindow,
    compute_subscription_window,
    generate_api_signature,
    verify_callback_signature,
)
from .token_service import TokenIssuer, TokenRedeemer

__all__ = [
    "AuthGateway",
    "ClaimsManager",
    "LoginResult",
    "LoginState",
    "NotificationDispatcher",
    "PaymentOutcome",
    "SubscriptionReconciler",
    "SubscriptionWindow",
    "TokenIssuer",
    "TokenRedeemer",
    "compute_subscription_window",
    "generate_api_signature",
    "verify_callback_signature",
]
