"""PayFast payment notifications -> subscription state on the user profile."""

import calendar
import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from admin_gateway.config import Settings
from admin_gateway.crud import payment_crud, user_crud
from admin_gateway.exceptions import PersistenceError, UnknownSubscriber, ValidationError
from admin_gateway.models.profile import SubscriptionStatus
from admin_gateway.schemas.payment_schemas import PayFastNotification
from admin_gateway.validation import normalize_email

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone; PayFast signs with those rules.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def verify_callback_signature(
    raw_body: bytes,
    provided_signature: Optional[str],
    secret: str,
    algorithm: str = "md5",
) -> bool:
    """True only if ``provided_signature`` is the hex HMAC of exactly ``raw_body``."""
    if not provided_signature:
        return False
    expected = hmac.new(secret.encode("utf-8"), raw_body, algorithm).hexdigest()
    return hmac.compare_digest(
        expected.encode("ascii"), provided_signature.encode("utf-8")
    )


def _encode(value: Any) -> str:
    return quote(str(value), safe=_URI_COMPONENT_SAFE).replace("%20", "+")


def generate_api_signature(data: Dict[str, Any], passphrase: Optional[str] = None) -> str:
    """PayFast request signature: MD5 of the key-sorted, URL-encoded field string."""
    param_string = "&".join(f"{key}={_encode(data[key])}" for key in sorted(data))
    if passphrase is not None:
        param_string += f"&passphrase={_encode(passphrase.strip())}"
    return hashlib.md5(param_string.encode("utf-8")).hexdigest()


def add_months(start: date, months: int) -> date:
    """Calendar-month addition, clamped to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@dataclass(frozen=True)
class SubscriptionWindow:
    start: date
    end: date


def compute_subscription_window(billing_date: date | datetime, months: int = 3) -> SubscriptionWindow:
    if isinstance(billing_date, datetime):
        billing_date = billing_date.date()
    return SubscriptionWindow(start=billing_date, end=add_months(billing_date, months))


class PaymentOutcome(str, Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    DUPLICATE = "duplicate"


class SubscriptionReconciler:
    def __init__(self, db_session: AsyncSession, app_settings: Settings):
        self._db = db_session
        self._settings = app_settings

    def verify_signature(self, raw_body: bytes, provided_signature: Optional[str]) -> bool:
        return verify_callback_signature(
            raw_body,
            provided_signature,
            self._settings.PAYFAST_SIGNATURE_SECRET,
            self._settings.PAYFAST_SIGNATURE_ALGORITHM,
        )

    async def apply_payment(self, notification: PayFastNotification) -> PaymentOutcome:
        """
        Applies a COMPLETE payment to the subscriber's profile.

        Other statuses are acknowledged without changes. A payment id already
        in the ledger is a redelivery and changes nothing.
        """
        if not notification.is_complete:
            logger.info(
                f"Payment {notification.pf_payment_id} has status "
                f"{notification.payment_status}; no subscription change"
            )
            return PaymentOutcome.IGNORED

        try:
            email = normalize_email(notification.email_address)
        except ValidationError as e:
            raise UnknownSubscriber(
                f"No subscriber found for payment {notification.pf_payment_id}."
            ) from e
        payment_id = notification.pf_payment_id

        if payment_id:
            if await payment_crud.is_payment_processed(self._db, payment_id):
                logger.info(f"Payment {payment_id} already applied; ignoring redelivery")
                return PaymentOutcome.DUPLICATE
        else:
            logger.warning(f"COMPLETE payment for {email} has no pf_payment_id; cannot dedupe")

        profile = await user_crud.get_profile_by_email(self._db, email)
        if profile is None:
            raise UnknownSubscriber(f"No subscriber found for {email}.")

        window = compute_subscription_window(
            notification.billing_date or datetime.now(timezone.utc).date(),
            self._settings.SUBSCRIPTION_PERIOD_MONTHS,
        )

        try:
            if payment_id:
                await payment_crud.record_payment(
                    self._db,
                    pf_payment_id=payment_id,
                    email=email,
                    payment_status=notification.payment_status,
                    amount_gross=notification.amount_gross,
                )
            await user_crud.update_profile(
                self._db,
                profile,
                {
                    "subscription_status": SubscriptionStatus.SUBSCRIBED,
                    "subscription_start_date": window.start,
                    "subscription_end_date": window.end,
                },
            )
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            logger.info(f"Payment {payment_id} recorded concurrently; treating as redelivery")
            return PaymentOutcome.DUPLICATE
        except SQLAlchemyError as e:
            await self._db.rollback()
            raise PersistenceError("Failed to update subscription.") from e
        except PersistenceError:
            await self._db.rollback()
            raise

        logger.info(
            f"Subscription for {email} set to {window.start.isoformat()} - {window.end.isoformat()}",
            extra={"pf_payment_id": payment_id, "outcome": PaymentOutcome.APPLIED.value},
        )
        return PaymentOutcome.APPLIED
