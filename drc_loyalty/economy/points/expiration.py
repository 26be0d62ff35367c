from __future__ import annotations

from datetime import date

from drc_loyalty.economy.points.constants import EXPIRATION_WARNING_WINDOW
from drc_loyalty.economy.points.types import (
    ExpirationAction,
    ExpirationDecision,
    PointsTrancheSnapshot,
)


def is_in_warning_window(expires_at: date, *, today: date) -> bool:
    return expires_at - EXPIRATION_WARNING_WINDOW <= today < expires_at


def evaluate_expiration(snapshot: PointsTrancheSnapshot, *, today: date) -> ExpirationDecision:
    """Single authoritative transition for the user's expiring tranche.

    Active -> WarningIssued once inside the 7-day window, Expired the day after
    the expiry date. Day-of-expiry is neither warned again nor debited.
    """
    expires_at = snapshot.points_expires_at
    if snapshot.points_expiring <= 0 or expires_at is None:
        return ExpirationDecision(action=ExpirationAction.NONE)

    if today > expires_at:
        return ExpirationDecision(
            action=ExpirationAction.EXPIRE,
            points_to_debit=max(0, min(snapshot.points_expiring, snapshot.points_balance)),
            expires_at=expires_at,
        )

    if is_in_warning_window(expires_at, today=today) and not snapshot.warning_already_sent:
        return ExpirationDecision(action=ExpirationAction.WARN, expires_at=expires_at)

    return ExpirationDecision(action=ExpirationAction.NONE, expires_at=expires_at)
