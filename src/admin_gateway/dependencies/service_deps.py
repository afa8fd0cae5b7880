"""Per-request service construction from the process-wide clients."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from supabase._async.client import AsyncClient as AsyncSupabaseClient

from admin_gateway.config import Settings
from admin_gateway.db import get_db
from admin_gateway.dependencies.app_deps import get_app_settings
from admin_gateway.mail_client import MailTransport, get_mail_transport
from admin_gateway.services import (
    AuthGateway,
    ClaimsManager,
    NotificationDispatcher,
    SubscriptionReconciler,
    TokenIssuer,
    TokenRedeemer,
)
from admin_gateway.supabase_client import get_supabase_admin_client, get_supabase_client


def get_claims_manager(
    admin_client: AsyncSupabaseClient = Depends(get_supabase_admin_client),
    db_session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ClaimsManager:
    return ClaimsManager(admin_client, db_session, settings.EXTERNAL_CALL_TIMEOUT_SECONDS)


def get_notification_dispatcher(
    transport: MailTransport = Depends(get_mail_transport),
) -> NotificationDispatcher:
    return NotificationDispatcher(transport)


def get_token_issuer(
    db_session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> TokenIssuer:
    return TokenIssuer(db_session, settings)


def get_token_redeemer(
    db_session: AsyncSession = Depends(get_db),
    claims_manager: ClaimsManager = Depends(get_claims_manager),
    settings: Settings = Depends(get_app_settings),
) -> TokenRedeemer:
    return TokenRedeemer(db_session, claims_manager, settings)


def get_auth_gateway(
    claims_manager: ClaimsManager = Depends(get_claims_manager),
    supabase: AsyncSupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_app_settings),
) -> AuthGateway:
    return AuthGateway(claims_manager, supabase, settings)


def get_subscription_reconciler(
    db_session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> SubscriptionReconciler:
    return SubscriptionReconciler(db_session, settings)
