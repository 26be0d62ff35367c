from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage

import structlog

from drc_loyalty.core.config import Settings, get_settings

logger = structlog.get_logger(__name__)


def _build_message(*, settings: Settings, to_email: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = settings.smtp_from
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(body)
    return message


def _send_sync(*, settings: Settings, message: EmailMessage) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as client:
        if settings.smtp_use_tls:
            client.starttls()
        if settings.smtp_username:
            client.login(settings.smtp_username, settings.smtp_password)
        client.send_message(message)


async def send_email(*, to_email: str, subject: str, body: str, event: str) -> bool:
    """Sends one email without raising; delivery is never on the critical path."""
    settings = get_settings()
    if not settings.smtp_host:
        logger.warning("email_delivery_skipped", reason="smtp_not_configured", email_event=event)
        return False

    message = _build_message(settings=settings, to_email=to_email, subject=subject, body=body)
    try:
        await asyncio.to_thread(_send_sync, settings=settings, message=message)
    except (smtplib.SMTPException, OSError):
        logger.exception("email_delivery_failed", email_event=event)
        return False

    logger.info("email_delivered", email_event=event)
    return True


async def send_otp_email(*, to_email: str, code: str, ttl_minutes: int) -> bool:
    body = (
        f"Your verification code is {code}.\n"
        f"It expires in {ttl_minutes} minutes. If you did not request it, ignore this email."
    )
    return await send_email(
        to_email=to_email,
        subject="Your DRC Loyalty verification code",
        body=body,
        event="otp",
    )


async def send_welcome_email(*, to_email: str, first_name: str, bonus_points: int) -> bool:
    body = (
        f"Hello {first_name},\n\n"
        f"Welcome to DRC Loyalty! We added {bonus_points} bonus points to your account.\n"
        "Scan your receipts at partner supermarkets to earn more points."
    )
    return await send_email(
        to_email=to_email,
        subject="Welcome to DRC Loyalty",
        body=body,
        event="welcome",
    )


async def send_partner_welcome_email(*, to_email: str, name: str, company_name: str) -> bool:
    body = (
        f"Hello {name},\n\n"
        f"Thanks for registering {company_name} as a DRC Loyalty partner.\n"
        "Your account is pending approval. We will email you once it is active."
    )
    return await send_email(
        to_email=to_email,
        subject="Your DRC Loyalty partner account",
        body=body,
        event="partner_welcome",
    )
