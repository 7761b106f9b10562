from __future__ import annotations

import smtplib
from email.message import EmailMessage

from app.core.config import Settings
from app.core.logging import LogContext, get_logger

logger = get_logger("gigben.services.email")


class EmailService:
    """Sends plain-text mail over SMTP.

    Methods are synchronous; the HTTP layer schedules them with
    ``BackgroundTasks`` so a slow mail server never delays a response.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def send_verification_code(self, to_email: str, code: str) -> None:
        ttl = self.settings.verification_code_ttl_minutes
        self.send(
            to=[to_email],
            subject="Your Gigben verification code",
            body=(
                f"Your verification code is {code}.\n\n"
                f"The code expires in {ttl} minutes. "
                "If you did not request it, you can ignore this email."
            ),
        )

    def send_early_access_notification(self, early_access_email: str) -> None:
        recipients = self.settings.early_access_notify
        if not recipients:
            logger.debug("No early access notification recipients configured")
            return
        self.send(
            to=recipients,
            subject="New early access user signed up!",
            body=f"New user {early_access_email} signed up",
        )

    def send(self, to: list[str], subject: str, body: str) -> None:
        if not self.settings.smtp_configured:
            logger.warning(f"SMTP is not configured, skipping email '{subject}' to {len(to)} recipient(s)")
            return

        message = EmailMessage()
        message["From"] = self.settings.email_from
        message["To"] = ", ".join(to)
        message["Subject"] = subject
        message.set_content(body)

        with LogContext(logger, "send email", subject=subject):
            with self._connect() as server:
                if self.settings.smtp_user:
                    server.login(self.settings.smtp_user, self.settings.smtp_password)
                server.send_message(message)

    def _connect(self) -> smtplib.SMTP:
        host, port = self.settings.smtp_host, self.settings.smtp_port
        if self.settings.smtp_use_ssl:
            return smtplib.SMTP_SSL(host, port, timeout=20)
        server = smtplib.SMTP(host, port, timeout=20)
        server.ehlo()
        server.starttls()
        return server
