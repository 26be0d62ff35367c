from __future__ import annotations

import smtplib
from types import SimpleNamespace

from drc_loyalty.services import email_delivery


def _settings(*, smtp_host: str) -> SimpleNamespace:
    return SimpleNamespace(
        smtp_host=smtp_host,
        smtp_port=587,
        smtp_username="",
        smtp_password="",
        smtp_use_tls=False,
        smtp_from="DRC Loyalty <no-reply@drcloyalty.com>",
    )


async def test_send_email_skips_without_smtp_host(monkeypatch) -> None:
    monkeypatch.setattr(email_delivery, "get_settings", lambda: _settings(smtp_host=""))

    delivered = await email_delivery.send_otp_email(to_email="a@example.com", code="123456", ttl_minutes=10)

    assert delivered is False


async def test_send_email_reports_smtp_failure(monkeypatch) -> None:
    def fake_send_sync(*, settings, message) -> None:
        raise smtplib.SMTPServerDisconnected("gone")

    monkeypatch.setattr(email_delivery, "get_settings", lambda: _settings(smtp_host="smtp.example.com"))
    monkeypatch.setattr(email_delivery, "_send_sync", fake_send_sync)

    delivered = await email_delivery.send_welcome_email(
        to_email="a@example.com",
        first_name="Amani",
        bonus_points=50,
    )

    assert delivered is False


async def test_send_email_builds_message(monkeypatch) -> None:
    sent: list = []

    def fake_send_sync(*, settings, message) -> None:
        sent.append(message)

    monkeypatch.setattr(email_delivery, "get_settings", lambda: _settings(smtp_host="smtp.example.com"))
    monkeypatch.setattr(email_delivery, "_send_sync", fake_send_sync)

    delivered = await email_delivery.send_otp_email(to_email="a@example.com", code="654321", ttl_minutes=10)

    assert delivered is True
    assert sent[0]["To"] == "a@example.com"
    assert "654321" in sent[0].get_content()


async def test_partner_welcome_mentions_pending_approval(monkeypatch) -> None:
    sent: list = []

    def fake_send_sync(*, settings, message) -> None:
        sent.append(message)

    monkeypatch.setattr(email_delivery, "get_settings", lambda: _settings(smtp_host="smtp.example.com"))
    monkeypatch.setattr(email_delivery, "_send_sync", fake_send_sync)

    delivered = await email_delivery.send_partner_welcome_email(
        to_email="ops@kinmart.cd",
        name="Grace",
        company_name="KinMart SARL",
    )

    assert delivered is True
    assert "KinMart SARL" in sent[0].get_content()
    assert "pending approval" in sent[0].get_content()
