import smtplib
from unittest.mock import MagicMock, patch

import httpx
import pytest

from admin_gateway.exceptions import MailError
from admin_gateway.mail_client import MailTransport
from admin_gateway.services import NotificationDispatcher


@pytest.mark.asyncio
async def test_account_created_email_carries_password_and_login_url(mail_transport):
    dispatcher = NotificationDispatcher(mail_transport)

    await dispatcher.send_account_created("new@example.com", "Abc123def456", "https://cms.example.com/")

    message = mail_transport.sent[0]
    assert message["to"] == "new@example.com"
    assert message["subject"] == "Your Account Information"
    assert "Abc123def456" in message["body"]
    assert "https://cms.example.com/" in message["body"]


@pytest.mark.asyncio
async def test_contact_message_is_relayed_to_service_inbox(mail_transport):
    dispatcher = NotificationDispatcher(mail_transport)

    await dispatcher.relay_contact_message(
        "visitor@example.com", "Ada", "Lovelace", "Pricing", "How much is premium?"
    )

    message = mail_transport.sent[0]
    assert message["to"] == "contact@example.com"
    assert message["subject"] == "Pricing"
    assert "Ada Lovelace" in message["body"]
    assert "visitor@example.com" in message["body"]


@pytest.mark.asyncio
async def test_transport_rejection_raises_mail_error(mail_transport):
    mail_transport.fail = True
    dispatcher = NotificationDispatcher(mail_transport)

    with pytest.raises(MailError):
        await dispatcher.send_password_update_notice("admin@example.com")


# --- SMTP transport ---


@pytest.fixture
def smtp_settings(test_settings):
    return test_settings.model_copy(
        update={
            "MAIL_SMTP_HOST": "smtp.example.com",
            "MAIL_SMTP_PORT": 465,
            "MAIL_PASSWORD": "app-password",
            "OAUTH_CLIENT_ID": None,
            "OAUTH_CLIENT_SECRET": None,
            "OAUTH_REFRESH_TOKEN": None,
        }
    )


@pytest.mark.asyncio
async def test_password_auth_sends_over_ssl(smtp_settings):
    server = MagicMock()
    server.__enter__.return_value = server
    server.__exit__.return_value = False

    with patch("admin_gateway.mail_client.smtplib.SMTP_SSL", return_value=server) as smtp_ssl:
        await MailTransport(smtp_settings).send("to@example.com", "Subject", "Body")

    smtp_ssl.assert_called_once()
    server.login.assert_called_once_with("no-reply@example.com", "app-password")
    sent = server.send_message.call_args.args[0]
    assert sent["To"] == "to@example.com"
    assert sent["From"] == "no-reply@example.com"


@pytest.mark.asyncio
async def test_smtp_failure_maps_to_mail_error(smtp_settings):
    server = MagicMock()
    server.__enter__.return_value = server
    server.__exit__.return_value = False
    server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})

    with patch("admin_gateway.mail_client.smtplib.SMTP_SSL", return_value=server):
        with pytest.raises(MailError):
            await MailTransport(smtp_settings).send("to@example.com", "Subject", "Body")


@pytest.mark.asyncio
async def test_oauth2_token_is_fetched_once_and_used_for_xoauth2(smtp_settings):
    settings = smtp_settings.model_copy(
        update={
            "OAUTH_CLIENT_ID": "client-id",
            "OAUTH_CLIENT_SECRET": "client-secret",
            "OAUTH_REFRESH_TOKEN": "refresh-token",
        }
    )
    server = MagicMock()
    server.__enter__.return_value = server
    server.__exit__.return_value = False
    server.docmd.return_value = (235, b"Accepted")
    token_response = httpx.Response(
        200,
        json={"access_token": "access-token", "expires_in": 3600},
        request=httpx.Request("POST", settings.OAUTH_TOKEN_URI),
    )
    transport = MailTransport(settings)

    with patch("admin_gateway.mail_client.smtplib.SMTP_SSL", return_value=server), patch(
        "admin_gateway.mail_client.httpx.AsyncClient.post", return_value=token_response
    ) as post:
        await transport.send("to@example.com", "One", "Body")
        await transport.send("to@example.com", "Two", "Body")

    assert post.await_count == 1
    assert server.docmd.call_args.args[0] == "AUTH"
    assert server.docmd.call_args.args[1].startswith("XOAUTH2 ")
    server.login.assert_not_called()
