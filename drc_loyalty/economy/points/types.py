from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class UserSegment(str, Enum):
    VIP = "VIP"
    NEW = "New"
    CHURN_RISK = "ChurnRisk"
    REGULAR = "Regular"


class ExpirationAction(str, Enum):
    NONE = "NONE"
    WARN = "WARN"
    EXPIRE = "EXPIRE"


@dataclass(slots=True)
class PointsTrancheSnapshot:
    points_balance: int
    points_expiring: int
    points_expires_at: date | None
    warning_already_sent: bool = False


@dataclass(frozen=True, slots=True)
class ExpirationDecision:
    action: ExpirationAction
    points_to_debit: int = 0
    expires_at: date | None = None


@dataclass(frozen=True, slots=True)
class ExpirationSweepBatchResult:
    examined: int
    warned: int
    expired: int
    points_expired: int
    last_user_id: int | None


@dataclass(frozen=True, slots=True)
class PointsAdjustmentResult:
    user_id: int
    delta: int
    balance_after: int
