from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from drc_loyalty.economy.points.segments import audience_includes, classify_segment
from drc_loyalty.economy.points.types import UserSegment

NOW_UTC = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_high_spender_is_vip_even_when_new() -> None:
    segment = classify_segment(
        total_spent=Decimal("100000.01"),
        joined_at=NOW_UTC - timedelta(days=3),
        last_receipt_at=NOW_UTC,
        now_utc=NOW_UTC,
    )
    assert segment == UserSegment.VIP


def test_recent_signup_is_new() -> None:
    segment = classify_segment(
        total_spent=Decimal("0"),
        joined_at=NOW_UTC - timedelta(days=29),
        last_receipt_at=None,
        now_utc=NOW_UTC,
    )
    assert segment == UserSegment.NEW


def test_long_inactive_user_is_churn_risk() -> None:
    segment = classify_segment(
        total_spent=Decimal("5000"),
        joined_at=NOW_UTC - timedelta(days=200),
        last_receipt_at=NOW_UTC - timedelta(days=61),
        now_utc=NOW_UTC,
    )
    assert segment == UserSegment.CHURN_RISK


def test_active_user_is_regular() -> None:
    segment = classify_segment(
        total_spent=Decimal("5000"),
        joined_at=NOW_UTC - timedelta(days=200),
        last_receipt_at=NOW_UTC - timedelta(days=10),
        now_utc=NOW_UTC,
    )
    assert segment == UserSegment.REGULAR


def test_audience_includes() -> None:
    assert audience_includes("all", UserSegment.REGULAR) is True
    assert audience_includes("vip", UserSegment.VIP) is True
    assert audience_includes("vip", UserSegment.REGULAR) is False
    assert audience_includes("churn_risk", UserSegment.CHURN_RISK) is True
    assert audience_includes("unknown", UserSegment.REGULAR) is False
