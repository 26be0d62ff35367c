from __future__ import annotations

from datetime import datetime
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.notifications import Notification
from drc_loyalty.db.models.reward_redemptions import RewardRedemption
from drc_loyalty.db.models.rewards import Reward
from drc_loyalty.db.repo.notifications_repo import NotificationsRepo
from drc_loyalty.db.repo.rewards_repo import RewardsRepo
from drc_loyalty.db.repo.users_repo import UsersRepo
from drc_loyalty.economy.points.constants import LEDGER_ENTRY_REWARD_REDEMPTION
from drc_loyalty.economy.points.errors import PointsInsufficientBalanceError
from drc_loyalty.economy.points.service import PointsService
from drc_loyalty.economy.rewards.errors import (
    RewardInsufficientPointsError,
    RewardNotFoundError,
    RewardUserInactiveError,
    RewardUserNotFoundError,
)
from drc_loyalty.economy.rewards.types import RewardRedeemResult

logger = structlog.get_logger(__name__)

REWARD_UPDATABLE_FIELDS = ("title", "cost", "reward_type", "brand", "image_url", "partner_name", "active")


class RewardsService:
    @staticmethod
    async def redeem(
        session: AsyncSession,
        *,
        user_id: int,
        reward_id: int,
        now_utc: datetime,
    ) -> RewardRedeemResult:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise RewardUserNotFoundError
        if user.status != "ACTIVE":
            raise RewardUserInactiveError

        reward = await RewardsRepo.get_by_id(session, reward_id)
        if reward is None or not reward.active:
            raise RewardNotFoundError

        redemption = await RewardsRepo.create_redemption(
            session,
            redemption=RewardRedemption(
                id=uuid4(),
                user_id=user_id,
                reward_id=reward.id,
                cost=reward.cost,
                created_at=now_utc,
            ),
        )
        try:
            balance_after = await PointsService.debit(
                session,
                user_id=user_id,
                points=reward.cost,
                entry_type=LEDGER_ENTRY_REWARD_REDEMPTION,
                source="REWARD",
                idempotency_key=f"reward:redeem:{redemption.id}",
                now_utc=now_utc,
                metadata={"reward_id": reward.id, "redemption_id": str(redemption.id)},
            )
        except PointsInsufficientBalanceError as exc:
            raise RewardInsufficientPointsError from exc

        await NotificationsRepo.create(
            session,
            notification=Notification(
                user_id=user_id,
                title="Reward Redeemed",
                message=f"You redeemed {reward.title} for {reward.cost} points.",
                notification_type="reward",
                kind="REWARD_REDEMPTION",
                created_at=now_utc,
            ),
        )
        logger.info(
            "reward_redeemed",
            user_id=user_id,
            reward_id=reward.id,
            cost=reward.cost,
            balance_after=balance_after,
        )
        return RewardRedeemResult(
            redemption_id=redemption.id,
            reward_id=reward.id,
            title=reward.title,
            cost=reward.cost,
            balance_after=balance_after,
        )

    @staticmethod
    async def create_reward(
        session: AsyncSession,
        *,
        title: str,
        cost: int,
        reward_type: str,
        brand: str | None,
        image_url: str | None,
        partner_name: str | None,
        now_utc: datetime,
    ) -> Reward:
        return await RewardsRepo.create(
            session,
            reward=Reward(
                title=title,
                cost=cost,
                reward_type=reward_type,
                brand=brand,
                image_url=image_url,
                partner_name=partner_name,
                active=True,
                created_at=now_utc,
                updated_at=now_utc,
            ),
        )

    @staticmethod
    async def update_reward(
        session: AsyncSession,
        *,
        reward_id: int,
        changes: dict[str, object],
        now_utc: datetime,
    ) -> Reward:
        reward = await RewardsRepo.get_by_id(session, reward_id)
        if reward is None:
            raise RewardNotFoundError
        for field_name in REWARD_UPDATABLE_FIELDS:
            if field_name in changes:
                setattr(reward, field_name, changes[field_name])
        reward.updated_at = now_utc
        await session.flush()
        return reward
