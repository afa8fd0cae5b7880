import logging

from admin_gateway.mail_client import MailTransport

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Transactional emails sent through the shared mail transport."""

    def __init__(self, transport: MailTransport):
        self._transport = transport

    async def send(self, to: str, subject: str, body: str) -> None:
        """Sends one message. Raises MailError when the relay rejects it."""
        await self._transport.send(to, subject, body)
        logger.info(f"Email '{subject}' sent to {to}")

    async def send_account_created(self, email: str, password: str, login_url: str) -> None:
        await self.send(
            email,
            "Your Account Information",
            f"Your account has been created. Your random password is: {password} "
            f"and follow this link {login_url} to login.",
        )

    async def send_password_update_notice(self, email: str) -> None:
        await self.send(
            email, "Password Update", "You are about to update your admin password."
        )

    async def send_password_reset_link(self, email: str, link: str) -> None:
        await self.send(
            email, "Password Reset", f"Click this link to reset your password: {link}"
        )

    async def send_verification_link(self, email: str, link: str) -> None:
        await self.send(
            email,
            "Email Verification",
            f"Please click the link to verify your email. {link}",
        )

    async def relay_contact_message(
        self, email: str, first_name: str, last_name: str, subject: str, message: str
    ) -> None:
        await self.send(
            self._transport.contact_inbox,
            subject,
            f"Hi, \nNames: {first_name} {last_name}. \nEmail: {email} \nMessage: {message}",
        )
