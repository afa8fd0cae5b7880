from .app_deps import get_app_settings
from .service_deps import (
    get_auth_gateway,
    get_claims_manager,
    get_notification_dispatcher,
    get_subscription_reconciler,
    get_token_issuer,
    get_token_redeemer,
)

__all__ = [
    "get_app_settings",
    "get_auth_gateway",
    "get_claims_manager",
    "get_notification_dispatcher",
    "get_subscription_reconciler",
    "get_token_issuer",
    "get_token_redeemer",
]
