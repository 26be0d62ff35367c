from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.partners import Partner
from drc_loyalty.db.repo.partners_repo import PartnersRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.time import kinshasa_local_date

from .deps import require_partner_id, utc_now
from .partners_models import (
    PartnerResponse,
    StorePerformanceResponse,
    partner_as_response,
    performance_as_response,
)

router = APIRouter(prefix="/partner", tags=["partner"])


async def _load_active_partner(session: AsyncSession, partner_id: int) -> Partner:
    partner = await PartnersRepo.get_by_id(session, partner_id)
    if partner is None:
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHORIZED"})
    if partner.status != "active":
        raise HTTPException(status_code=403, detail={"code": "E_PARTNER_SUSPENDED"})
    return partner


@router.get("/me", response_model=PartnerResponse)
async def get_partner_profile(request: Request) -> PartnerResponse:
    partner_id = require_partner_id(request)
    async with SessionLocal.begin() as session:
        partner = await _load_active_partner(session, partner_id)
        assigned = await PartnersRepo.list_supermarket_ids(session, [partner.id])
    return partner_as_response(partner, assigned.get(partner.id, []))


@router.get("/stores/performance", response_model=list[StorePerformanceResponse])
async def get_store_performance(
    request: Request,
    days: int = Query(default=30, ge=1, le=366),
) -> list[StorePerformanceResponse]:
    partner_id = require_partner_id(request)
    since_date = kinshasa_local_date(utc_now()) - timedelta(days=days - 1)
    async with SessionLocal.begin() as session:
        partner = await _load_active_partner(session, partner_id)
        rows = await PartnersRepo.store_performance(
            session,
            partner_id=partner.id,
            since_date=since_date,
        )
    return [performance_as_response(row) for row in rows]
