import asyncio
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from supabase_auth.errors import AuthApiError

from admin_gateway.crud import token_crud
from admin_gateway.exceptions import (
    IdentityProviderError,
    InvalidOrExpiredToken,
    MissingParameter,
    NotFoundError,
    ValidationError,
)
from admin_gateway.models import EmailVerificationToken
from admin_gateway.services import ClaimsManager, TokenIssuer, TokenRedeemer
from admin_gateway.services.token_service import build_verification_link
from tests.fixtures.helpers import seed_user as _seed


async def _token_count(db_session, email=None) -> int:
    stmt = select(func.count()).select_from(EmailVerificationToken)
    if email:
        stmt = stmt.where(EmailVerificationToken.email == email)
    return (await db_session.execute(stmt)).scalar_one()


def _code_from(link: str) -> str:
    return parse_qs(urlparse(link).query)["code"][0]


@pytest.fixture
def redeemer_factory(db_session, identity_provider, test_settings):
    def factory(settings=None):
        claims = ClaimsManager(identity_provider, db_session, 5.0)
        return TokenRedeemer(db_session, claims, settings or test_settings)

    return factory


@pytest.mark.asyncio
async def test_issue_persists_code_before_returning_link(db_session, test_settings):
    issuer = TokenIssuer(db_session, test_settings)

    link = await issuer.issue_verification_link("New.User@Example.com")

    query = parse_qs(urlparse(link).query)
    assert link.startswith(test_settings.VERIFICATION_REDIRECT_BASE_URL)
    assert query["email"] == ["new.user@example.com"]
    assert len(query["code"][0]) == 64
    row = (await db_session.execute(select(EmailVerificationToken))).scalar_one()
    assert row.verification_code == query["code"][0]


@pytest.mark.asyncio
async def test_issue_rejects_malformed_email_without_touching_store(db_session, test_settings):
    issuer = TokenIssuer(db_session, test_settings)

    with pytest.raises(ValidationError):
        await issuer.issue_verification_link("not-an-email")

    assert await _token_count(db_session) == 0


@pytest.mark.asyncio
async def test_codes_are_unique_per_issue(db_session, test_settings):
    settings = test_settings.model_copy(update={"VERIFICATION_INVALIDATE_PREVIOUS": False})
    issuer = TokenIssuer(db_session, settings)

    codes = {_code_from(await issuer.issue_verification_link("a@example.com")) for _ in range(5)}

    assert len(codes) == 5


@pytest.mark.asyncio
async def test_reissue_invalidates_previous_code(
    db_session, identity_provider, test_settings, redeemer_factory
):
    await _seed(db_session, identity_provider, "reissue@example.com")
    issuer = TokenIssuer(db_session, test_settings)
    first = _code_from(await issuer.issue_verification_link("reissue@example.com"))
    second = _code_from(await issuer.issue_verification_link("reissue@example.com"))

    redeemer = redeemer_factory()
    with pytest.raises(InvalidOrExpiredToken):
        await redeemer.redeem("reissue@example.com", first)
    await redeemer.redeem("reissue@example.com", second)


@pytest.mark.asyncio
async def test_reissue_keeps_previous_code_when_invalidation_disabled(db_session, test_settings):
    settings = test_settings.model_copy(update={"VERIFICATION_INVALIDATE_PREVIOUS": False})
    issuer = TokenIssuer(db_session, settings)

    await issuer.issue_verification_link("keep@example.com")
    await issuer.issue_verification_link("keep@example.com")

    assert await _token_count(db_session, "keep@example.com") == 2


@pytest.mark.asyncio
async def test_redeem_succeeds_exactly_once(
    db_session, identity_provider, test_settings, redeemer_factory
):
    user = await _seed(db_session, identity_provider, "once@example.com")
    link = await TokenIssuer(db_session, test_settings).issue_verification_link("once@example.com")
    code = _code_from(link)
    redeemer = redeemer_factory()

    uid = await redeemer.redeem("once@example.com", code)

    assert uid == user.id
    assert identity_provider.users[user.id].email_confirmed_at is not None
    with pytest.raises(InvalidOrExpiredToken):
        await redeemer.redeem("once@example.com", code)


@pytest.mark.asyncio
async def test_code_issued_for_one_email_does_not_verify_another(
    db_session, identity_provider, test_settings, redeemer_factory
):
    await _seed(db_session, identity_provider, "owner@example.com")
    other = await _seed(db_session, identity_provider, "other@example.com")
    link = await TokenIssuer(db_session, test_settings).issue_verification_link("owner@example.com")

    with pytest.raises(InvalidOrExpiredToken):
        await redeemer_factory().redeem("other@example.com", _code_from(link))

    assert identity_provider.users[other.id].email_confirmed_at is None
    assert await _token_count(db_session, "owner@example.com") == 1


@pytest.mark.asyncio
async def test_expired_code_is_rejected(db_session, identity_provider, redeemer_factory):
    await _seed(db_session, identity_provider, "late@example.com")
    token = await token_crud.add_token(db_session, "late@example.com", "ab" * 32)
    token.created_at = datetime.now(timezone.utc) - timedelta(days=2)
    await db_session.commit()

    with pytest.raises(InvalidOrExpiredToken):
        await redeemer_factory().redeem("late@example.com", "ab" * 32)


@pytest.mark.asyncio
@pytest.mark.parametrize("email,code", [("", "abc"), ("a@example.com", ""), (None, None)])
async def test_redeem_requires_email_and_code(redeemer_factory, email, code):
    with pytest.raises(MissingParameter):
        await redeemer_factory().redeem(email, code)


@pytest.mark.asyncio
async def test_provider_failure_leaves_code_redeemable(
    db_session, identity_provider, test_settings, redeemer_factory
):
    user = await _seed(db_session, identity_provider, "flaky@example.com")
    link = await TokenIssuer(db_session, test_settings).issue_verification_link("flaky@example.com")
    identity_provider.auth.admin.update_user_by_id.side_effect = AuthApiError(
        "upstream unavailable", 503, None
    )

    with pytest.raises(IdentityProviderError):
        await redeemer_factory().redeem("flaky@example.com", _code_from(link))

    assert await _token_count(db_session, "flaky@example.com") == 1
    assert identity_provider.users[user.id].email_confirmed_at is None


@pytest.mark.asyncio
async def test_code_without_identity_is_not_consumed(db_session, test_settings, redeemer_factory):
    link = await TokenIssuer(db_session, test_settings).issue_verification_link("ghost@example.com")

    with pytest.raises(NotFoundError):
        await redeemer_factory().redeem("ghost@example.com", _code_from(link))

    assert await _token_count(db_session, "ghost@example.com") == 1


@pytest.mark.asyncio
async def test_concurrent_redemptions_verify_exactly_once(
    file_db_engine, identity_provider, test_settings
):
    sessions = async_sessionmaker(
        bind=file_db_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with sessions() as setup:
        user = await _seed(setup, identity_provider, "race@example.com")
        link = await TokenIssuer(setup, test_settings).issue_verification_link("race@example.com")
    code = _code_from(link)

    admin = identity_provider.auth.admin
    update_user = admin.update_user_by_id.side_effect

    async def slow_update(uid, attributes):
        # Hold the winner's transaction open while the other redemption runs.
        await asyncio.sleep(0.05)
        return await update_user(uid, attributes)

    admin.update_user_by_id.side_effect = slow_update

    async def redeem():
        async with sessions() as session:
            claims = ClaimsManager(identity_provider, session, 5.0)
            return await TokenRedeemer(session, claims, test_settings).redeem(
                "race@example.com", code
            )

    results = await asyncio.gather(redeem(), redeem(), return_exceptions=True)

    assert results.count(user.id) == 1
    assert sum(isinstance(r, InvalidOrExpiredToken) for r in results) == 1
    admin.update_user_by_id.assert_awaited_once_with(user.id, {"email_confirm": True})
    async with sessions() as check:
        assert await _token_count(check, "race@example.com") == 0


def test_verification_link_encodes_query_values():
    link = build_verification_link("https://app.example.com/verify", "abc", "a+b@example.com")

    assert link == "https://app.example.com/verify?code=abc&email=a%2Bb%40example.com"
