from __future__ import annotations

from datetime import date

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.notifications import Notification


class NotificationsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, notification: Notification) -> Notification:
        session.add(notification)
        await session.flush()
        return notification

    @staticmethod
    async def list_by_user(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 50,
    ) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def mark_read(session: AsyncSession, *, user_id: int, notification_id: int) -> int:
        stmt = (
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(read=True)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def has_expiration_warning(
        session: AsyncSession,
        *,
        user_id: int,
        expires_for_date: date,
    ) -> bool:
        stmt = select(
            exists().where(
                Notification.user_id == user_id,
                Notification.kind == "EXPIRATION_WARNING",
                Notification.expires_for_date == expires_for_date,
            )
        )
        result = await session.execute(stmt)
        return bool(result.scalar_one())
