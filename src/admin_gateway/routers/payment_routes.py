import json
import logging
from typing import Any, Dict
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError as PydanticValidationError

from admin_gateway.config import Settings as AppSettingsType
from admin_gateway.dependencies import get_app_settings, get_subscription_reconciler
from admin_gateway.exceptions import GatewayError, SignatureMismatch, ValidationError
from admin_gateway.schemas.common_schemas import ErrorResponse
from admin_gateway.schemas.payment_schemas import (
    CallbackAcknowledgement,
    CheckoutRequest,
    CheckoutResponse,
    PayFastNotification,
)
from admin_gateway.security_audit import log_payment_event
from admin_gateway.services import SubscriptionReconciler, generate_api_signature

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Payments"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)

SIGNATURE_HEADER = "pf_signature"


@router.post("/payment", response_model=CheckoutResponse, status_code=status.HTTP_200_OK)
async def create_checkout(
    payload: CheckoutRequest,
    settings: AppSettingsType = Depends(get_app_settings),
):
    """
    Returns the signed field set the client posts to PayFast's hosted checkout.
    """
    fields: Dict[str, str] = {
        "merchant_id": settings.PAYFAST_MERCHANT_ID,
        "merchant_key": settings.PAYFAST_MERCHANT_KEY,
        "return_url": settings.PAYFAST_RETURN_URL,
        "cancel_url": settings.PAYFAST_CANCEL_URL,
        "notify_url": settings.PAYFAST_NOTIFY_URL,
        "amount": settings.PAYFAST_AMOUNT,
        "item_name": settings.PAYFAST_ITEM_NAME,
    }
    fields.update(payload.model_dump(exclude_none=True))
    fields = {key: str(value).strip() for key, value in fields.items() if value}

    fields["signature"] = generate_api_signature(fields, settings.PAYFAST_PASSPHRASE)
    return CheckoutResponse(action=settings.PAYFAST_PROCESS_URL, fields=fields)


def _parse_notification(raw_body: bytes, content_type: str) -> PayFastNotification:
    try:
        if "application/json" in content_type:
            data: Dict[str, Any] = json.loads(raw_body or b"{}")
            if not isinstance(data, dict):
                raise ValidationError("Payment notification must be an object.")
        else:
            data = dict(parse_qsl(raw_body.decode("utf-8"), keep_blank_values=True))
        return PayFastNotification.model_validate(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError("Payment notification body could not be parsed.") from e
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid payment notification: {e.errors()[0]['msg']}"
        ) from e


async def _handle_payment_notification(
    request: Request, reconciler: SubscriptionReconciler
) -> CallbackAcknowledgement:
    # The signature covers the exact bytes received, so read before parsing.
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    if not reconciler.verify_signature(raw_body, signature):
        log_payment_event(request, status="failure", detail="Invalid signature")
        raise SignatureMismatch()

    notification = _parse_notification(
        raw_body, request.headers.get("content-type", "")
    )
    try:
        outcome = await reconciler.apply_payment(notification)
    except GatewayError as e:
        log_payment_event(
            request,
            status="failure",
            payment_id=notification.pf_payment_id,
            detail=e.message,
        )
        raise

    log_payment_event(
        request,
        status="success",
        payment_id=notification.pf_payment_id,
        detail=outcome.value,
    )
    return CallbackAcknowledgement(status="OK", outcome=outcome.value)


@router.post(
    "/payfast/callback",
    response_model=CallbackAcknowledgement,
    status_code=status.HTTP_200_OK,
)
async def payfast_callback(
    request: Request,
    reconciler: SubscriptionReconciler = Depends(get_subscription_reconciler),
):
    return await _handle_payment_notification(request, reconciler)


@router.post(
    "/notify_url",
    response_model=CallbackAcknowledgement,
    status_code=status.HTTP_200_OK,
)
async def payfast_notify(
    request: Request,
    reconciler: SubscriptionReconciler = Depends(get_subscription_reconciler),
):
    """PayFast ITN endpoint; handled exactly like the subscription callback."""
    return await _handle_payment_notification(request, reconciler)
