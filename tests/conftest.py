"""
Main conftest file that imports and re-exports all fixtures from modular files.
"""

import os

from dotenv import load_dotenv

# Test settings must be in the environment before any app module is imported.
dotenv_path = os.path.join(os.path.dirname(__file__), "..", ".env.test")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path, override=True)

_TEST_ENV = {
    "ADMIN_GATEWAY_ENVIRONMENT": "testing",
    "ADMIN_GATEWAY_DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "ADMIN_GATEWAY_SUPABASE_URL": "http://localhost:54321",
    "ADMIN_GATEWAY_SUPABASE_ANON_KEY": "test-anon-key",
    "ADMIN_GATEWAY_SUPABASE_SERVICE_ROLE_KEY": "test-service-role-key",
    "ADMIN_GATEWAY_MAIL_USERNAME": "no-reply@example.com",
    "ADMIN_GATEWAY_MAIL_CONTACT_INBOX": "contact@example.com",
    "ADMIN_GATEWAY_VERIFICATION_REDIRECT_BASE_URL": "https://app.example.com/verify-email/",
    "ADMIN_GATEWAY_ADMIN_LOGIN_URL": "https://cms.example.com/",
    "ADMIN_GATEWAY_PAYFAST_SIGNATURE_SECRET": "test-signature-secret",
    "ADMIN_GATEWAY_PAYFAST_MERCHANT_ID": "10000100",
    "ADMIN_GATEWAY_PAYFAST_MERCHANT_KEY": "46f0cd694581a",
    "ADMIN_GATEWAY_PAYFAST_RETURN_URL": "https://app.example.com/user",
    "ADMIN_GATEWAY_PAYFAST_CANCEL_URL": "https://app.example.com/user",
    "ADMIN_GATEWAY_PAYFAST_NOTIFY_URL": "https://api.example.com/notify_url",
}
for _key, _value in _TEST_ENV.items():
    os.environ.setdefault(_key, _value)

import pytest

from tests.fixtures.client import client
from tests.fixtures.db import db_engine, db_session, file_db_engine
from tests.fixtures.helpers import seed_user
from tests.fixtures.mocks import (
    FakeMailTransport,
    FakeSupabase,
    identity_provider,
    mail_transport,
)


@pytest.fixture
def test_settings():
    from admin_gateway.dependencies import get_app_settings

    return get_app_settings()


@pytest.fixture
def user_seeder():
    """Return the seed_user helper directly as a fixture."""
    return seed_user
