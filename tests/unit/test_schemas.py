from datetime import date
from types import SimpleNamespace

import pytest
from pydantic import ValidationError as PydanticValidationError

from admin_gateway.exceptions import MissingParameter, ValidationError
from admin_gateway.schemas.payment_schemas import PayFastNotification
from admin_gateway.schemas.user_schemas import AuthorizationClaims, Permission, UserRecord
from admin_gateway.security_audit import _sanitize_data
from admin_gateway.validation import normalize_email


def test_claims_serialize_with_dashboard_keys():
    claims = AuthorizationClaims(admin=True, permissions=Permission.OWNER)

    assert claims.to_metadata() == {
        "admin": True,
        "permissions": "owner",
        "forcePasswordReset": False,
    }


def test_admin_claims_require_permissions():
    with pytest.raises(PydanticValidationError):
        AuthorizationClaims(admin=True)


def test_non_admin_claims_may_omit_permissions():
    assert AuthorizationClaims(admin=False).permissions is None


def test_user_record_from_provider_user():
    user = SimpleNamespace(
        id="uid-1",
        email="a@example.com",
        app_metadata={"provider": "email", "admin": True, "permissions": "editor"},
        user_metadata={"display_name": "Ada"},
        phone="",
        email_confirmed_at="2026-01-01T00:00:00Z",
        created_at=None,
        last_sign_in_at=None,
    )

    record = UserRecord.from_supabase_user(user).model_dump(by_alias=True)

    assert record["displayName"] == "Ada"
    assert record["phoneNumber"] is None
    assert record["emailVerified"] is True
    assert record["customClaims"] == {"admin": True, "permissions": "editor"}


def test_notification_coerces_numeric_ids_and_blank_dates():
    notification = PayFastNotification.model_validate(
        {"pf_payment_id": 1089250, "payment_status": "complete", "billing_date": "", "token": "x"}
    )

    assert notification.pf_payment_id == "1089250"
    assert notification.billing_date is None
    assert notification.is_complete


def test_notification_parses_billing_date():
    notification = PayFastNotification.model_validate(
        {"payment_status": "COMPLETE", "billing_date": "2024-02-29"}
    )

    assert notification.billing_date == date(2024, 2, 29)


def test_normalize_email_lowercases():
    assert normalize_email("  Admin@Example.COM ") == "admin@example.com"


@pytest.mark.parametrize("value,error", [("", MissingParameter), (None, MissingParameter), ("a@", ValidationError)])
def test_normalize_email_rejects_bad_input(value, error):
    with pytest.raises(error):
        normalize_email(value)


def test_sanitize_redacts_nested_secrets():
    data = {"email": "a@example.com", "password": "p", "nested": {"verification_code": "c"}}

    assert _sanitize_data(data) == {
        "email": "a@example.com",
        "password": "[REDACTED]",
        "nested": {"verification_code": "[REDACTED]"},
    }
