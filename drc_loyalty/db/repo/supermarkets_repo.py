from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.supermarkets import Supermarket


class SupermarketsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, supermarket_id: UUID) -> Supermarket | None:
        return await session.get(Supermarket, supermarket_id)

    @staticmethod
    async def list_active(session: AsyncSession) -> list[Supermarket]:
        stmt = select(Supermarket).where(Supermarket.active.is_(True)).order_by(Supermarket.name)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_all(session: AsyncSession) -> list[Supermarket]:
        stmt = select(Supermarket).order_by(Supermarket.name)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, supermarket: Supermarket) -> Supermarket:
        session.add(supermarket)
        await session.flush()
        return supermarket
