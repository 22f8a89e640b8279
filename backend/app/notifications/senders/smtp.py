from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import settings


logger = logging.getLogger(__name__)


class SmtpTransport:
    """Delivers one rendered message over SMTP with STARTTLS."""

    def __init__(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        user: str | None = None,
        password: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        timeout: float = 10.0,
    ):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port if port is not None else settings.SMTP_PORT
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.from_email = from_email or settings.EMAIL_FROM
        self.from_name = from_name or settings.EMAIL_FROM_NAME
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def deliver(self, *, to_email: str, subject: str, body: str) -> None:
        if not self.configured:
            logger.info("Email stub: to=%s subject=%s", to_email, subject)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(body, "plain"))

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.sendmail(self.from_email, [to_email], msg.as_string())
        logger.info("Email sent: to=%s subject=%s", to_email, subject)
