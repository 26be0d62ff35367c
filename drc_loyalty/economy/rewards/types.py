from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

REWARD_TYPES = ("airtime", "voucher", "product")


@dataclass(slots=True)
class RewardRedeemResult:
    redemption_id: UUID
    reward_id: int
    title: str
    cost: int
    balance_after: int
