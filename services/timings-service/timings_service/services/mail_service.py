"""
Outbound email over SMTP.

``SmtpMailer`` is built once at start-up and stored on ``app.state``; the
blocking ``smtplib`` session runs in a worker thread so the event loop keeps
serving requests. Bulk sends go through ``deliver`` which spaces messages with
a ``Throttle`` and records one ``DeliveryResult`` per recipient.
"""

import smtplib
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

import structlog
from fastapi.concurrency import run_in_threadpool

from ..config import Settings
from ..metrics import EMAILS_SENT_TOTAL
from ..throttle import Throttle

logger = structlog.get_logger(__name__)


class MailDeliveryError(Exception):
    """Raised when the relay refuses or cannot take a message."""


class Mailer(Protocol):
    async def send(self, to: str, subject: str, html: str) -> str: ...


@dataclass
class DeliveryResult:
    email: str
    success: bool
    message_id: str | None = None
    error: str | None = None


class SmtpMailer:
    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        from_name: str = "DVS Daily Newsletter",
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_name = from_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpMailer":
        return cls(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            use_tls=settings.SMTP_USE_TLS,
            from_name=settings.MAIL_FROM_NAME,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )

    @property
    def sender_address(self) -> str:
        return self.username or f"no-reply@{self.host}"

    @property
    def from_header(self) -> str:
        return f'"{self.from_name}" <{self.sender_address}>'

    def _build_message(self, to: str, subject: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.from_header
        msg["To"] = to
        msg["Subject"] = subject
        domain = self.sender_address.rsplit("@", 1)[-1]
        msg["Message-ID"] = f"<{uuid.uuid4().hex}@{domain}>"
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def _send_sync(self, to: str, subject: str, html: str) -> str:
        msg = self._build_message(to, subject, html)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.sendmail(self.sender_address, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(str(exc) or exc.__class__.__name__) from exc
        return msg["Message-ID"]

    async def send(self, to: str, subject: str, html: str) -> str:
        return await run_in_threadpool(self._send_sync, to, subject, html)


async def send_one(mailer: Mailer, to: str, subject: str, html: str, *, kind: str) -> DeliveryResult:
    try:
        message_id = await mailer.send(to, subject, html)
    except Exception as exc:
        EMAILS_SENT_TOTAL.labels(kind=kind, outcome="failed").inc()
        logger.warning("email_send_failed", kind=kind, recipient=to, error=str(exc))
        return DeliveryResult(email=to, success=False, error=str(exc) or exc.__class__.__name__)
    EMAILS_SENT_TOTAL.labels(kind=kind, outcome="sent").inc()
    logger.info("email_sent", kind=kind, recipient=to, message_id=message_id)
    return DeliveryResult(email=to, success=True, message_id=message_id)


async def deliver(
    mailer: Mailer,
    recipients: Iterable[str],
    subject: str,
    html: str,
    throttle: Throttle,
    *,
    kind: str = "daily",
) -> list[DeliveryResult]:
    """Send the same message to each recipient in turn; a failure never stops the loop."""
    results: list[DeliveryResult] = []
    for recipient in recipients:
        await throttle.wait()
        results.append(await send_one(mailer, recipient, subject, html, kind=kind))
    return results
