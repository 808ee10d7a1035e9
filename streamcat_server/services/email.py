# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Notification senders for recovery codes. Logs to console when SMTP not configured."""

import asyncio
import logging
import smtplib
import uuid
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Protocol

from streamcat_server.config import Settings
from streamcat_server.errors import NotificationError

logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    """Delivers a recovery code to an address. Returns a message id or raises NotificationError."""

    async def send(self, address: str, code: str) -> str: ...


def code_message_body(app_name: str, code: str, ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return (
        f"Tu código de verificación de {app_name} es: {code}\n\n"
        f"Ingresa este código en la app junto con tu nueva contraseña.\n\n"
        f"El código expira en {minutes} minutos. Si no solicitaste este cambio, ignora este correo."
    )


def wrap_body_html(plain_body: str) -> str:
    """Wrap plain text body in minimal HTML."""
    body_escaped = plain_body.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace("\n", "<br>\n")
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: system-ui, sans-serif; color: #333; max-width: 560px;">
<div style="white-space: pre-wrap;">{body_escaped}</div>
</body>
</html>"""


class SmtpNotificationSender:
    """Send codes over SMTP with STARTTLS. One attempt, bounded by a timeout."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        sender: str,
        app_name: str = "StreamCat",
        ttl_seconds: int = 600,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.app_name = app_name
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout

    def build_message(self, address: str, code: str) -> MIMEMultipart:
        body = code_message_body(self.app_name, code, self.ttl_seconds)
        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"Recupera tu contraseña de {self.app_name}"
        msg["From"] = self.sender
        msg["To"] = address
        msg["Message-ID"] = make_msgid()
        msg.attach(MIMEText(body, "plain", "utf-8"))
        msg.attach(MIMEText(wrap_body_html(body), "html", "utf-8"))
        return msg

    def _deliver(self, address: str, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.user, self.password)
            server.sendmail(self.sender, [address], msg.as_string())

    async def send(self, address: str, code: str) -> str:
        msg = self.build_message(address, code)
        try:
            await asyncio.to_thread(self._deliver, address, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.exception("Failed to send recovery code to %s", address)
            raise NotificationError("No se pudo enviar el correo") from e
        logger.info("Recovery code sent to %s", address)
        return msg["Message-ID"]


class LogNotificationSender:
    """Development sender: writes the code to the log instead of mailing it."""

    def __init__(self, app_name: str = "StreamCat") -> None:
        self.app_name = app_name

    async def send(self, address: str, code: str) -> str:
        message_id = uuid.uuid4().hex
        logger.info("Email (SMTP not configured): To=%s Code=%s Id=%s", address, code, message_id)
        return message_id


def build_sender(settings: Settings) -> NotificationSender:
    """SMTP sender when host and user are configured, otherwise the log sender."""
    if settings.smtp_host and settings.smtp_user:
        return SmtpNotificationSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password or "",
            sender=settings.smtp_from,
            app_name=settings.app_name,
            ttl_seconds=settings.reset_code_ttl_seconds,
            timeout=settings.smtp_timeout_seconds,
        )
    return LogNotificationSender(app_name=settings.app_name)
