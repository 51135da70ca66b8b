"""Email delivery client: Resend HTTP API with SMTP fallback"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage

import httpx

from lumabank.config import settings
from lumabank.infrastructure.observability.metrics import email_failure_counter, email_latency_histogram

logger = logging.getLogger(__name__)


class EmailClient:
    """Best-effort email sender used from background tasks"""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        sender: str | None = None,
        smtp_host: str | None = None,
    ):
        self.api_key = api_key or settings.resend_api_key
        self.api_url = api_url or settings.resend_api_url
        self.sender = sender or settings.email_from
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.email_max_retries
        self.backoff_base = settings.email_backoff_base

    async def send(self, to: str, subject: str, body: str) -> bool:
        """
        Deliver one plain-text email.

        Tries Resend first (when an API key is configured), then SMTP. Never
        raises: a failed notification must not affect the operation that
        triggered it.

        Returns:
            True if a provider accepted the message
        """
        if self.api_key:
            try:
                await self._send_resend(to, subject, body)
                return True
            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                logger.warning("Resend delivery failed, falling back to SMTP: %s", e)

        if self.smtp_host:
            try:
                await asyncio.to_thread(self._send_smtp, to, subject, body)
                return True
            except (smtplib.SMTPException, OSError) as e:
                email_failure_counter.labels(provider="smtp").inc()
                logger.error("SMTP delivery failed: %s", e)
                return False

        logger.warning("No email provider delivered message", extra={"subject": subject})
        return False

    async def _send_resend(self, to: str, subject: str, body: str) -> None:
        """
        Post to the Resend API with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s (base^attempt)
        - Retries on 5xx errors and network failures
        - 4xx responses are raised at once; resending the same request cannot succeed
        - Tracks latency histogram and failure counter
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with email_latency_histogram.time():
                        response = await client.post(
                            self.api_url,
                            headers={"Authorization": f"Bearer {self.api_key}"},
                            json={"from": self.sender, "to": [to], "subject": subject, "text": body},
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    email_failure_counter.labels(provider="resend").inc()

                    if isinstance(e, httpx.HTTPStatusError) and 400 <= e.response.status_code < 500:
                        raise
                    if attempt >= self.max_retries:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)

    def _send_smtp(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.smtp_user and self.smtp_password:
                smtp.login(self.smtp_user, self.smtp_password)
            smtp.send_message(message)
