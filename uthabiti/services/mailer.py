from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from email.message import EmailMessage

from uthabiti.core.settings import settings

logger = logging.getLogger(__name__)

_CODE_TEMPLATE = """\
<html>
  <body style="font-family: Arial, sans-serif;">
    <p>Hello {name},</p>
    <p>{intro}</p>
    <p style="font-size: 24px; font-weight: bold; letter-spacing: 4px;">{code}</p>
    <p>This code expires in {ttl} minutes. If you did not request it, ignore this email.</p>
    <p>Uthabiti Africa</p>
  </body>
</html>
"""


def _build_message(to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = settings.mail_from
    message["To"] = to
    message["Subject"] = f"{settings.mail_subject_prefix} {subject}".strip()
    message.set_content("Please view this message in an HTML capable mail client.")
    message.add_alternative(body, subtype="html")
    return message


def _deliver(message: EmailMessage) -> None:
    smtp_cls = smtplib.SMTP_SSL if settings.smtp_use_tls else smtplib.SMTP
    with smtp_cls(settings.smtp_host, settings.smtp_port, timeout=30) as client:
        if settings.smtp_username:
            client.login(settings.smtp_username, settings.smtp_password or "")
        client.send_message(message)


async def send_mail(to: str, subject: str, body: str) -> bool:
    if not settings.smtp_host:
        logger.info("SMTP not configured; skipping mail %r to %s", subject, to)
        return False
    message = _build_message(to, subject, body)
    try:
        await asyncio.to_thread(_deliver, message)
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send mail %r to %s", subject, to)
        return False
    return True


def render_code_email(name: str, intro: str, code: str) -> str:
    return _CODE_TEMPLATE.format(
        name=html.escape(name or "there"),
        intro=intro,
        code=code,
        ttl=settings.verification_code_ttl_minutes,
    )


async def send_verification_code(to: str, name: str, code: str, *, purpose: str) -> bool:
    if purpose == "password_reset":
        subject = "Password reset code"
        intro = "Use the code below to reset your password."
    else:
        subject = "Verify your email"
        intro = "Use the code below to verify your email address."
    return await send_mail(to, subject, render_code_email(name, intro, code))
