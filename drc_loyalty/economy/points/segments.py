from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from drc_loyalty.economy.points.constants import (
    CHURN_RISK_INACTIVITY_WINDOW,
    NEW_USER_WINDOW,
    VIP_TOTAL_SPENT_THRESHOLD,
)
from drc_loyalty.economy.points.types import UserSegment

AUDIENCE_SEGMENTS: dict[str, UserSegment | None] = {
    "all": None,
    "vip": UserSegment.VIP,
    "new": UserSegment.NEW,
    "churn_risk": UserSegment.CHURN_RISK,
}


def classify_segment(
    *,
    total_spent: Decimal,
    joined_at: datetime,
    last_receipt_at: datetime | None,
    now_utc: datetime,
) -> UserSegment:
    if total_spent > VIP_TOTAL_SPENT_THRESHOLD:
        return UserSegment.VIP
    if now_utc - joined_at < NEW_USER_WINDOW:
        return UserSegment.NEW

    last_activity_at = last_receipt_at or joined_at
    if now_utc - last_activity_at > CHURN_RISK_INACTIVITY_WINDOW:
        return UserSegment.CHURN_RISK
    return UserSegment.REGULAR


def audience_includes(target_audience: str, segment: UserSegment) -> bool:
    if target_audience not in AUDIENCE_SEGMENTS:
        return False
    required = AUDIENCE_SEGMENTS[target_audience]
    return required is None or required == segment
