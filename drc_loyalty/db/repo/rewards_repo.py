from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.reward_redemptions import RewardRedemption
from drc_loyalty.db.models.rewards import Reward


class RewardsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, reward_id: int) -> Reward | None:
        return await session.get(Reward, reward_id)

    @staticmethod
    async def list_active(session: AsyncSession) -> list[Reward]:
        stmt = select(Reward).where(Reward.active.is_(True)).order_by(Reward.cost.asc(), Reward.id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, reward: Reward) -> Reward:
        session.add(reward)
        await session.flush()
        return reward

    @staticmethod
    async def create_redemption(
        session: AsyncSession,
        *,
        redemption: RewardRedemption,
    ) -> RewardRedemption:
        session.add(redemption)
        await session.flush()
        return redemption
