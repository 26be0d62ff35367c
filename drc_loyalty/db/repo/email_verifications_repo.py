from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.email_verifications import EmailVerification


class EmailVerificationsRepo:
    @staticmethod
    async def get_for_update(session: AsyncSession, email: str) -> EmailVerification | None:
        return await session.get(EmailVerification, email, with_for_update=True)

    @staticmethod
    async def upsert(
        session: AsyncSession,
        *,
        email: str,
        code_hash: str,
        expires_at: datetime,
        now_utc: datetime,
    ) -> None:
        stmt = insert(EmailVerification).values(
            email=email,
            code_hash=code_hash,
            expires_at=expires_at,
            attempts=0,
            created_at=now_utc,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[EmailVerification.email],
            set_={
                "code_hash": code_hash,
                "expires_at": expires_at,
                "attempts": 0,
                "created_at": now_utc,
            },
        )
        await session.execute(stmt)

    @staticmethod
    async def delete(session: AsyncSession, email: str) -> int:
        result = await session.execute(
            delete(EmailVerification).where(EmailVerification.email == email)
        )
        return int(result.rowcount or 0)

    @staticmethod
    async def register_failed_attempt(session: AsyncSession, email: str) -> int | None:
        stmt = (
            update(EmailVerification)
            .where(EmailVerification.email == email)
            .values(attempts=EmailVerification.attempts + 1)
            .returning(EmailVerification.attempts)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
