from .email_verification_token import EmailVerificationToken
from .processed_payment import ProcessedPayment
from .profile import Profile, SubscriptionStatus

# This file will serve as the central point for importing all models
# within the admin_gateway.models package.

__all__ = [
    "EmailVerificationToken",
    "ProcessedPayment",
    "Profile",
    "SubscriptionStatus",
]
