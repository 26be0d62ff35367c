from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from drc_loyalty.db.models.partners import Partner
from drc_loyalty.db.repo.partners_repo import StorePerformanceRow


class PartnerResponse(BaseModel):
    id: int
    name: str
    email: str
    company_name: str
    phone: str | None = None
    status: str
    created_at: datetime
    supermarket_ids: list[UUID]


class StorePerformanceResponse(BaseModel):
    supermarket_id: UUID
    name: str
    active: bool
    receipts_total: int
    receipts_verified: int
    receipts_pending: int
    verified_amount: Decimal
    points_awarded: int
    shoppers: int


def partner_as_response(partner: Partner, supermarket_ids: list[UUID]) -> PartnerResponse:
    return PartnerResponse(
        id=partner.id,
        name=partner.name,
        email=partner.email,
        company_name=partner.company_name,
        phone=partner.phone,
        status=partner.status,
        created_at=partner.created_at,
        supermarket_ids=supermarket_ids,
    )


def performance_as_response(row: StorePerformanceRow) -> StorePerformanceResponse:
    return StorePerformanceResponse(
        supermarket_id=row.supermarket_id,
        name=row.name,
        active=row.active,
        receipts_total=row.receipts_total,
        receipts_verified=row.receipts_verified,
        receipts_pending=row.receipts_pending,
        verified_amount=row.verified_amount,
        points_awarded=row.points_awarded,
        shoppers=row.shoppers,
    )
