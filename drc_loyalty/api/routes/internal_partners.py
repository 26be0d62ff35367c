from __future__ import annotations

from datetime import date
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from drc_loyalty.db.repo.partners_repo import PartnersRepo
from drc_loyalty.db.repo.supermarkets_repo import SupermarketsRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.services.partner_auth import PARTNER_STATUSES

from .deps import require_internal_actor, utc_now
from .partners_models import (
    PartnerResponse,
    StorePerformanceResponse,
    partner_as_response,
    performance_as_response,
)

router = APIRouter(prefix="/internal/partners", tags=["internal", "partners"])
logger = structlog.get_logger(__name__)


class PartnerStatusUpdateRequest(BaseModel):
    status: str = Field(min_length=1, max_length=16)


class PartnerSupermarketsUpdateRequest(BaseModel):
    supermarket_ids: list[UUID] = Field(max_length=500)


def _normalize_status(raw_status: str) -> str:
    status = raw_status.strip().lower()
    if status not in PARTNER_STATUSES:
        raise HTTPException(status_code=422, detail={"code": "E_PARTNER_STATUS_INVALID"})
    return status


@router.get("", response_model=list[PartnerResponse])
async def list_partners(
    request: Request,
    status: str | None = Query(default=None, max_length=16),
    limit: int = Query(default=100, ge=1, le=500),
) -> list[PartnerResponse]:
    require_internal_actor(request)
    normalized_status = _normalize_status(status) if status else None
    async with SessionLocal.begin() as session:
        partners = await PartnersRepo.list_all(session, status=normalized_status, limit=limit)
        assigned = await PartnersRepo.list_supermarket_ids(session, [item.id for item in partners])
    return [partner_as_response(item, assigned.get(item.id, [])) for item in partners]


@router.put("/{partner_id}/status", response_model=PartnerResponse)
async def update_partner_status(
    partner_id: int,
    payload: PartnerStatusUpdateRequest,
    request: Request,
) -> PartnerResponse:
    actor = require_internal_actor(request)
    desired_status = _normalize_status(payload.status)
    async with SessionLocal.begin() as session:
        updated = await PartnersRepo.set_status(
            session,
            partner_id=partner_id,
            status=desired_status,
            now_utc=utc_now(),
        )
        if updated == 0:
            raise HTTPException(status_code=404, detail={"code": "E_PARTNER_NOT_FOUND"})
        partner = await PartnersRepo.get_by_id(session, partner_id)
        assigned = await PartnersRepo.list_supermarket_ids(session, [partner_id])

    logger.info(
        "internal_partner_status_changed",
        partner_id=partner_id,
        next_status=desired_status,
        actor=actor,
    )
    return partner_as_response(partner, assigned.get(partner_id, []))


@router.put("/{partner_id}/supermarkets", response_model=PartnerResponse)
async def assign_partner_supermarkets(
    partner_id: int,
    payload: PartnerSupermarketsUpdateRequest,
    request: Request,
) -> PartnerResponse:
    """Replaces the partner's store assignment with exactly the given stores."""
    actor = require_internal_actor(request)
    supermarket_ids = list(dict.fromkeys(payload.supermarket_ids))
    async with SessionLocal.begin() as session:
        partner = await PartnersRepo.get_by_id(session, partner_id)
        if partner is None:
            raise HTTPException(status_code=404, detail={"code": "E_PARTNER_NOT_FOUND"})
        for supermarket_id in supermarket_ids:
            if await SupermarketsRepo.get_by_id(session, supermarket_id) is None:
                raise HTTPException(status_code=422, detail={"code": "E_SUPERMARKET_NOT_FOUND"})

        await PartnersRepo.replace_supermarkets(
            session,
            partner_id=partner_id,
            supermarket_ids=supermarket_ids,
        )

    logger.info(
        "internal_partner_supermarkets_assigned",
        partner_id=partner_id,
        supermarkets=len(supermarket_ids),
        actor=actor,
    )
    return partner_as_response(partner, supermarket_ids)


@router.get("/{partner_id}/performance", response_model=list[StorePerformanceResponse])
async def get_partner_performance(
    partner_id: int,
    request: Request,
    since: date | None = None,
) -> list[StorePerformanceResponse]:
    require_internal_actor(request)
    from_date = since or date.min
    async with SessionLocal.begin() as session:
        if await PartnersRepo.get_by_id(session, partner_id) is None:
            raise HTTPException(status_code=404, detail={"code": "E_PARTNER_NOT_FOUND"})
        rows = await PartnersRepo.store_performance(
            session,
            partner_id=partner_id,
            since_date=from_date,
        )
    return [performance_as_response(row) for row in rows]
