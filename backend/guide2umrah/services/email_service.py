"""
Guide2Umrah Backend: Transactional Email Service
==================================================

What:  Sends the subscription confirmation mail.
How:   Builds an EmailMessage (plain text + HTML alternative) and hands it
       to an SMTP server (Gmail by default) with STARTTLS and login.
       smtplib is blocking, so the send runs in Starlette's threadpool.
Who:   The subscriptions router, as a FastAPI background task.

Transient SMTP/network errors are retried with tenacity; after the last
attempt an EmailDeliveryError is raised. There is no queue or delivery
tracking.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from starlette.concurrency import run_in_threadpool
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from guide2umrah.config import settings
from guide2umrah.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

CONFIRMATION_SUBJECT = "Bedankt voor je interesse in Guide2Umrah"

CONFIRMATION_TEXT = """Bedankt voor je interesse in Guide2Umrah!

We sturen je bericht zodra de site online is.

Met vriendelijke groet,
Het Guide2Umrah Team
"""

CONFIRMATION_HTML = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #10B981;">Bedankt voor je interesse in Guide2Umrah!</h2>
  <p style="font-size: 16px; line-height: 1.5; color: #4B5563;">
    We sturen je bericht zodra de site online is.
  </p>
  <p style="font-size: 16px; line-height: 1.5; color: #4B5563;">
    Met vriendelijke groet,<br>
    Het Guide2Umrah Team
  </p>
</div>
"""


def is_transient_smtp_error(exc: BaseException) -> bool:
    """
    True for failures worth another attempt.

    Retried:  dropped or refused connections, DNS and socket errors, timeouts
              and 4xx SMTP replies (421 service not available, 451 ...).
    Final:    5xx replies such as 535 bad credentials, refused recipients.
    """
    if isinstance(exc, (smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError)):
        return True
    if isinstance(exc, smtplib.SMTPResponseException):
        return 400 <= exc.smtp_code < 500
    if isinstance(exc, smtplib.SMTPException):
        return False
    return isinstance(exc, OSError)


class EmailService:
    """SMTP sender for the site's transactional mails."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.user = user if user is not None else settings.smtp_user
        self.password = password if password is not None else settings.smtp_password
        self.sender = sender or settings.mail_sender

    def build_confirmation_email(self, recipient: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = CONFIRMATION_SUBJECT
        message["From"] = self.sender
        message["To"] = recipient
        message.set_content(CONFIRMATION_TEXT)
        message.add_alternative(CONFIRMATION_HTML, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        """Blocking SMTP conversation; runs in a worker thread."""
        with smtplib.SMTP(self.host, self.port, timeout=settings.smtp_timeout) as smtp:
            if settings.smtp_starttls:
                smtp.starttls()
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(message)

    @retry(
        retry=retry_if_exception(is_transient_smtp_error),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _send_with_retry(self, message: EmailMessage) -> None:
        await run_in_threadpool(self._deliver, message)

    async def send(self, message: EmailMessage) -> None:
        """
        Raises:
            EmailDeliveryError: SMTP failed after all retry attempts
        """
        try:
            await self._send_with_retry(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Sending '%s' failed: %s", message["Subject"], str(e))
            raise EmailDeliveryError(context={"error_type": type(e).__name__})
        logger.info("Mail '%s' sent", message["Subject"])

    async def send_confirmation_email(self, recipient: str) -> None:
        await self.send(self.build_confirmation_email(recipient))


email_service = EmailService()
