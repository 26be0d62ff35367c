from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.campaign_supermarkets import CampaignSupermarket
from drc_loyalty.db.models.campaigns import Campaign


class CampaignsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, campaign_id: int) -> Campaign | None:
        return await session.get(Campaign, campaign_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, campaign_id: int) -> Campaign | None:
        stmt = select(Campaign).where(Campaign.id == campaign_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_campaigns(
        session: AsyncSession,
        *,
        status: str | None = None,
        limit: int = 100,
    ) -> list[Campaign]:
        stmt = select(Campaign).order_by(Campaign.id.desc()).limit(limit)
        if status is not None:
            stmt = stmt.where(Campaign.status == status)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_candidates_for_update(
        session: AsyncSession,
        *,
        supermarket_id: UUID,
        receipt_date: date,
    ) -> list[Campaign]:
        stmt = (
            select(Campaign)
            .join(CampaignSupermarket, CampaignSupermarket.campaign_id == Campaign.id)
            .where(
                CampaignSupermarket.supermarket_id == supermarket_id,
                Campaign.status == "active",
                Campaign.start_date <= receipt_date,
                Campaign.end_date >= receipt_date,
            )
            .order_by(Campaign.id.asc())
            .with_for_update(of=Campaign)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def increment_conversions(
        session: AsyncSession,
        *,
        campaign_id: int,
        now_utc: datetime,
    ) -> int | None:
        stmt = (
            update(Campaign)
            .where(
                Campaign.id == campaign_id,
                (Campaign.max_redemptions.is_(None))
                | (Campaign.conversions < Campaign.max_redemptions),
            )
            .values(conversions=Campaign.conversions + 1, updated_at=now_utc)
            .returning(Campaign.conversions)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        campaign: Campaign,
        supermarket_ids: Iterable[UUID],
    ) -> Campaign:
        session.add(campaign)
        await session.flush()
        await CampaignsRepo.replace_scope(
            session,
            campaign_id=campaign.id,
            supermarket_ids=supermarket_ids,
        )
        return campaign

    @staticmethod
    async def replace_scope(
        session: AsyncSession,
        *,
        campaign_id: int,
        supermarket_ids: Iterable[UUID],
    ) -> None:
        await session.execute(
            delete(CampaignSupermarket).where(CampaignSupermarket.campaign_id == campaign_id)
        )
        for supermarket_id in dict.fromkeys(supermarket_ids):
            session.add(CampaignSupermarket(campaign_id=campaign_id, supermarket_id=supermarket_id))
        await session.flush()

    @staticmethod
    async def list_scope_by_campaign_ids(
        session: AsyncSession,
        campaign_ids: Iterable[int],
    ) -> dict[int, list[UUID]]:
        ids = tuple(set(campaign_ids))
        if not ids:
            return {}
        stmt = select(CampaignSupermarket.campaign_id, CampaignSupermarket.supermarket_id).where(
            CampaignSupermarket.campaign_id.in_(ids)
        )
        result = await session.execute(stmt)
        scope: dict[int, list[UUID]] = {campaign_id: [] for campaign_id in ids}
        for campaign_id, supermarket_id in result.all():
            scope[int(campaign_id)].append(supermarket_id)
        return scope

    @staticmethod
    async def end_past_campaigns(session: AsyncSession, *, today: date, now_utc: datetime) -> int:
        stmt = (
            update(Campaign)
            .where(Campaign.status == "active", Campaign.end_date < today)
            .values(status="ended", updated_at=now_utc)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)
