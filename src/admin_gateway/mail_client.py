import asyncio
import base64
import smtplib
import ssl
import time
from email.message import EmailMessage
from typing import Optional

import httpx

from admin_gateway.config import Settings, settings
from admin_gateway.exceptions import ExternalTimeoutError, MailError
from admin_gateway.logging_config import logger

# Refresh the OAuth2 access token this many seconds before it expires.
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class MailTransport:
    """
    SMTP relay connection settings plus Gmail OAuth2 credentials.

    A single instance is shared by every request. ``send`` opens a fresh SMTP
    connection per message, so concurrent sends do not share socket state;
    only the cached OAuth2 access token is shared, guarded by a lock.
    """

    def __init__(self, app_settings: Settings):
        self.sender = app_settings.MAIL_USERNAME
        self.contact_inbox = app_settings.MAIL_CONTACT_INBOX or app_settings.MAIL_USERNAME
        self._host = app_settings.MAIL_SMTP_HOST
        self._port = app_settings.MAIL_SMTP_PORT
        self._password = app_settings.MAIL_PASSWORD
        self._timeout = app_settings.EXTERNAL_CALL_TIMEOUT_SECONDS
        self._use_oauth2 = app_settings.mail_uses_oauth2
        self._client_id = app_settings.OAUTH_CLIENT_ID
        self._client_secret = app_settings.OAUTH_CLIENT_SECRET
        self._refresh_token = app_settings.OAUTH_REFRESH_TOKEN
        self._token_uri = app_settings.OAUTH_TOKEN_URI
        self._access_token: Optional[str] = None
        self._access_token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    async def _get_access_token(self) -> str:
        async with self._token_lock:
            if self._access_token and time.time() < self._access_token_expires_at:
                return self._access_token

            logger.debug("Refreshing mail relay OAuth2 access token")
            try:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        self._token_uri,
                        data={
                            "client_id": self._client_id,
                            "client_secret": self._client_secret,
                            "refresh_token": self._refresh_token,
                            "grant_type": "refresh_token",
                        },
                    )
                    response.raise_for_status()
                    payload = response.json()
            except httpx.TimeoutException as e:
                raise ExternalTimeoutError("Mail relay token endpoint timed out.") from e
            except httpx.HTTPError as e:
                logger.error(f"Failed to refresh mail OAuth2 token: {e}")
                raise MailError("Unable to authenticate with the mail relay.") from e

            self._access_token = payload["access_token"]
            self._access_token_expires_at = (
                time.time()
                + int(payload.get("expires_in", 3600))
                - TOKEN_EXPIRY_MARGIN_SECONDS
            )
            return self._access_token

    def _deliver(self, message: EmailMessage, access_token: Optional[str]) -> None:
        context = ssl.create_default_context()
        if self._port == 465:
            server = smtplib.SMTP_SSL(
                self._host, self._port, timeout=self._timeout, context=context
            )
        else:
            server = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
        with server:
            server.ehlo()
            if self._port != 465:
                server.starttls(context=context)
                server.ehlo()
            if access_token:
                auth_string = f"user={self.sender}\x01auth=Bearer {access_token}\x01\x01"
                code, response = server.docmd(
                    "AUTH",
                    "XOAUTH2 " + base64.b64encode(auth_string.encode()).decode(),
                )
                if code != 235:
                    raise smtplib.SMTPAuthenticationError(code, response)
            elif self._password:
                server.login(self.sender, self._password)
            server.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        access_token = await self._get_access_token() if self._use_oauth2 else None
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._deliver, message, access_token),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExternalTimeoutError("Mail relay did not respond in time.") from e
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Mail relay rejected message to {to}: {e}")
            raise MailError(f"Unable to send email: {e}") from e


_mail_transport: Optional[MailTransport] = None


def init_mail_transport(app_settings: Settings = settings) -> MailTransport:
    """Creates the process-wide transport. Safe to call more than once."""
    global _mail_transport
    if _mail_transport is None:
        _mail_transport = MailTransport(app_settings)
        logger.info(
            f"Mail transport configured for {app_settings.MAIL_SMTP_HOST}:{app_settings.MAIL_SMTP_PORT} "
            f"({'OAuth2' if app_settings.mail_uses_oauth2 else 'password'} auth)"
        )
    return _mail_transport


def get_mail_transport() -> MailTransport:
    """FastAPI dependency for the shared mail transport, created on first use."""
    return _mail_transport or init_mail_transport()
