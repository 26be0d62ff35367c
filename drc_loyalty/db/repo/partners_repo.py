from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, delete, distinct, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.partner_supermarkets import PartnerSupermarket
from drc_loyalty.db.models.partners import Partner
from drc_loyalty.db.models.receipts import Receipt
from drc_loyalty.db.models.supermarkets import Supermarket


@dataclass(frozen=True, slots=True)
class StorePerformanceRow:
    supermarket_id: UUID
    name: str
    active: bool
    receipts_total: int
    receipts_verified: int
    receipts_pending: int
    verified_amount: Decimal
    points_awarded: int
    shoppers: int


class PartnersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, partner_id: int) -> Partner | None:
        return await session.get(Partner, partner_id)

    @staticmethod
    async def get_by_email(session: AsyncSession, email: str) -> Partner | None:
        result = await session.execute(select(Partner).where(Partner.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email_for_update(session: AsyncSession, email: str) -> Partner | None:
        stmt = select(Partner).where(Partner.email == email).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, partner: Partner) -> Partner:
        session.add(partner)
        await session.flush()
        return partner

    @staticmethod
    async def list_all(
        session: AsyncSession,
        *,
        status: str | None,
        limit: int,
    ) -> list[Partner]:
        stmt = select(Partner)
        if status is not None:
            stmt = stmt.where(Partner.status == status)
        stmt = stmt.order_by(Partner.created_at.desc(), Partner.id.desc()).limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def set_status(
        session: AsyncSession,
        *,
        partner_id: int,
        status: str,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(Partner)
            .where(Partner.id == partner_id)
            .values(status=status, updated_at=now_utc)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def list_supermarket_ids(
        session: AsyncSession,
        partner_ids: Sequence[int],
    ) -> dict[int, list[UUID]]:
        if not partner_ids:
            return {}
        stmt = (
            select(PartnerSupermarket.partner_id, PartnerSupermarket.supermarket_id)
            .where(PartnerSupermarket.partner_id.in_(partner_ids))
            .order_by(PartnerSupermarket.partner_id.asc(), PartnerSupermarket.supermarket_id.asc())
        )
        result = await session.execute(stmt)
        assigned: dict[int, list[UUID]] = defaultdict(list)
        for partner_id, supermarket_id in result.all():
            assigned[partner_id].append(supermarket_id)
        return dict(assigned)

    @staticmethod
    async def replace_supermarkets(
        session: AsyncSession,
        *,
        partner_id: int,
        supermarket_ids: Sequence[UUID],
    ) -> None:
        await session.execute(
            delete(PartnerSupermarket).where(PartnerSupermarket.partner_id == partner_id)
        )
        if not supermarket_ids:
            return
        stmt = insert(PartnerSupermarket).values(
            [
                {"partner_id": partner_id, "supermarket_id": supermarket_id}
                for supermarket_id in supermarket_ids
            ]
        )
        await session.execute(stmt.on_conflict_do_nothing())

    @staticmethod
    async def store_performance(
        session: AsyncSession,
        *,
        partner_id: int,
        since_date: date,
    ) -> list[StorePerformanceRow]:
        """Receipt totals per assigned store for receipts dated on or after `since_date`."""
        verified = Receipt.status == "VERIFIED"
        stmt = (
            select(
                Supermarket.id,
                Supermarket.name,
                Supermarket.active,
                func.count(Receipt.id),
                func.count(Receipt.id).filter(verified),
                func.count(Receipt.id).filter(Receipt.status == "PENDING"),
                func.coalesce(func.sum(Receipt.amount).filter(verified), 0),
                func.coalesce(func.sum(Receipt.points_awarded), 0),
                func.count(distinct(Receipt.user_id)).filter(verified),
            )
            .select_from(PartnerSupermarket)
            .join(Supermarket, Supermarket.id == PartnerSupermarket.supermarket_id)
            .outerjoin(
                Receipt,
                and_(
                    Receipt.supermarket_id == Supermarket.id,
                    Receipt.receipt_date >= since_date,
                ),
            )
            .where(PartnerSupermarket.partner_id == partner_id)
            .group_by(Supermarket.id, Supermarket.name, Supermarket.active)
            .order_by(Supermarket.name.asc())
        )
        result = await session.execute(stmt)
        return [
            StorePerformanceRow(
                supermarket_id=row[0],
                name=row[1],
                active=bool(row[2]),
                receipts_total=int(row[3] or 0),
                receipts_verified=int(row[4] or 0),
                receipts_pending=int(row[5] or 0),
                verified_amount=Decimal(row[6] or 0),
                points_awarded=int(row[7] or 0),
                shoppers=int(row[8] or 0),
            )
            for row in result.all()
        ]
