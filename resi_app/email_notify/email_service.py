import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

import aiosmtplib

from resi_app.core.breaker import CircuitBreaker
from resi_app.core.settings import settings

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, breaker: CircuitBreaker | None = None):
        self.breaker = breaker or CircuitBreaker(name="smtp")

    @property
    def configured(self) -> bool:
        return bool(settings.EMAIL_SERVER and settings.EMAIL_USER)

    async def send(self, email: str, subject: str, html_content: str):
        if not self.configured:
            logger.info("SMTP not configured, skipping email '%s' to %s", subject, email)
            return

        async def handler():
            message = MIMEMultipart("alternative")
            message["Subject"] = subject
            message["From"] = formataddr((settings.EMAIL_FROM_NAME, settings.EMAIL_USER))
            message["To"] = email
            message.attach(MIMEText(html_content, "html"))

            await aiosmtplib.send(
                message,
                hostname=settings.EMAIL_SERVER,
                port=settings.EMAIL_PORT,
                username=settings.EMAIL_USER,
                password=settings.EMAIL_PASSWORD,
                start_tls=settings.EMAIL_USE_TLS,
            )
            logger.info("Email '%s' sent to %s", subject, email)

        await self.breaker.call(handler)
