from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: int) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, user_id: int) -> User | None:
        stmt = select(User).where(User.id == user_id).with_for_update(key_share=True)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_phone_number(session: AsyncSession, phone_number: str) -> User | None:
        stmt = select(User).where(User.phone_number == phone_number)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_phone_number_for_update(session: AsyncSession, phone_number: str) -> User | None:
        stmt = select(User).where(User.phone_number == phone_number).with_for_update(key_share=True)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def search(
        session: AsyncSession,
        *,
        query: str | None,
        status: str | None,
        limit: int,
        offset: int = 0,
    ) -> list[User]:
        """Newest members first; `query` matches name, phone or email fragments."""
        stmt = select(User)
        if query:
            escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            stmt = stmt.where(
                or_(
                    User.first_name.ilike(pattern, escape="\\"),
                    User.last_name.ilike(pattern, escape="\\"),
                    User.phone_number.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
        if status:
            stmt = stmt.where(User.status == status)
        stmt = stmt.order_by(User.joined_at.desc(), User.id.desc()).limit(limit).offset(offset)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        first_name: str,
        last_name: str,
        phone_number: str,
        pin_hash: str,
        email: str | None,
        gender: str | None,
        birthdate: date | None,
        joined_at: datetime,
    ) -> User:
        user = User(
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
            pin_hash=pin_hash,
            email=email,
            gender=gender,
            birthdate=birthdate,
            status="ACTIVE",
            points_balance=0,
            points_expiring=0,
            points_expires_at=None,
            total_spent=Decimal("0"),
            joined_at=joined_at,
            failed_login_attempts=0,
        )
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def set_status(session: AsyncSession, *, user_id: int, status: str) -> int:
        stmt = update(User).where(User.id == user_id).values(status=status)
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def credit_points(
        session: AsyncSession,
        *,
        user_id: int,
        points: int,
        expires_at: date | None,
        spent: Decimal = Decimal("0"),
        receipt_at: datetime | None = None,
    ) -> int | None:
        values: dict[str, object] = {"total_spent": User.total_spent + spent}
        if points > 0:
            values["points_balance"] = User.points_balance + points
            values["points_expiring"] = User.points_expiring + points
            values["points_expires_at"] = expires_at
        if receipt_at is not None:
            values["last_receipt_at"] = receipt_at

        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .returning(User.points_balance)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def adjust_points(session: AsyncSession, *, user_id: int, delta: int) -> int | None:
        """Applies a signed delta unless the balance would drop below zero.

        The expiring tranche is clamped to the new balance so spent points are
        taken from the oldest tranche first.
        """
        new_balance = User.points_balance + delta
        stmt = (
            update(User)
            .where(User.id == user_id, new_balance >= 0)
            .values(
                points_balance=new_balance,
                points_expiring=func.least(User.points_expiring, new_balance),
            )
            .returning(User.points_balance)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_expiration_candidates_for_update(
        session: AsyncSession,
        *,
        horizon_date: date,
        limit: int,
        after_user_id: int = 0,
    ) -> list[User]:
        stmt = (
            select(User)
            .where(
                User.id > after_user_id,
                User.points_expiring > 0,
                User.points_expires_at.is_not(None),
                User.points_expires_at <= horizon_date,
            )
            .order_by(User.id.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def expire_points(session: AsyncSession, *, user_id: int, points: int) -> int | None:
        new_balance = func.greatest(User.points_balance - points, 0)
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(points_balance=new_balance, points_expiring=0, points_expires_at=None)
            .returning(User.points_balance)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
