from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from drc_loyalty.db.models.campaigns import Campaign
from drc_loyalty.db.repo.campaigns_repo import CampaignsRepo
from drc_loyalty.db.repo.supermarkets_repo import SupermarketsRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.segments import AUDIENCE_SEGMENTS
from drc_loyalty.economy.receipts.eligibility import parse_points_value

from .deps import require_internal_actor, utc_now

router = APIRouter(prefix="/internal/campaigns", tags=["internal", "campaigns"])
logger = structlog.get_logger(__name__)

CAMPAIGN_STATUSES = {"draft", "active", "ended"}
CAMPAIGN_CREATE_STATUSES = {"draft", "active"}
CAMPAIGN_REWARD_TYPES = {"points", "voucher", "giveaway"}
CAMPAIGN_ALLOWED_STATUS_TRANSITIONS = {
    ("draft", "active"),
    ("draft", "ended"),
    ("active", "ended"),
}


class CampaignCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    brand: str = Field(min_length=1, max_length=128)
    start_date: date
    end_date: date
    mechanic: str = Field(default="", max_length=2000)
    min_spend: Decimal | None = Field(default=None, ge=0)
    max_redemptions: int | None = Field(default=None, gt=0)
    target_audience: str = Field(default="all", max_length=16)
    reward_type: str = Field(max_length=16)
    reward_value: str = Field(min_length=1, max_length=64)
    supermarket_ids: list[UUID] = Field(min_length=1)
    status: str = Field(default="draft", max_length=16)


class CampaignStatusUpdateRequest(BaseModel):
    status: str = Field(min_length=1, max_length=16)


class CampaignResponse(BaseModel):
    id: int
    name: str
    brand: str
    status: str
    start_date: date
    end_date: date
    mechanic: str
    min_spend: Decimal | None = None
    max_redemptions: int | None = None
    conversions: int
    target_audience: str
    reward_type: str
    reward_value: str
    supermarket_ids: list[UUID]
    updated_at: datetime


def _campaign_as_response(campaign: Campaign, supermarket_ids: list[UUID]) -> CampaignResponse:
    return CampaignResponse(
        id=campaign.id,
        name=campaign.name,
        brand=campaign.brand,
        status=campaign.status,
        start_date=campaign.start_date,
        end_date=campaign.end_date,
        mechanic=campaign.mechanic,
        min_spend=campaign.min_spend,
        max_redemptions=campaign.max_redemptions,
        conversions=campaign.conversions,
        target_audience=campaign.target_audience,
        reward_type=campaign.reward_type,
        reward_value=campaign.reward_value,
        supermarket_ids=sorted(supermarket_ids, key=str),
        updated_at=campaign.updated_at,
    )


def _validate_create_payload(payload: CampaignCreateRequest) -> None:
    if payload.end_date < payload.start_date:
        raise HTTPException(status_code=422, detail={"code": "E_CAMPAIGN_DATES_INVALID"})
    if payload.status.strip().lower() not in CAMPAIGN_CREATE_STATUSES:
        raise HTTPException(status_code=422, detail={"code": "E_CAMPAIGN_STATUS_INVALID"})
    if payload.target_audience.strip().lower() not in AUDIENCE_SEGMENTS:
        raise HTTPException(status_code=422, detail={"code": "E_CAMPAIGN_AUDIENCE_INVALID"})

    reward_type = payload.reward_type.strip().lower()
    if reward_type not in CAMPAIGN_REWARD_TYPES:
        raise HTTPException(status_code=422, detail={"code": "E_CAMPAIGN_REWARD_TYPE_INVALID"})
    if reward_type == "points" and not parse_points_value(payload.reward_value):
        raise HTTPException(status_code=422, detail={"code": "E_CAMPAIGN_REWARD_VALUE_INVALID"})


@router.get("", response_model=list[CampaignResponse])
async def list_campaigns(
    request: Request,
    status: str | None = Query(default=None, max_length=16),
    limit: int = Query(default=100, ge=1, le=500),
) -> list[CampaignResponse]:
    require_internal_actor(request)
    normalized_status = status.strip().lower() if status else None
    if normalized_status is not None and normalized_status not in CAMPAIGN_STATUSES:
        raise HTTPException(status_code=422, detail={"code": "E_CAMPAIGN_STATUS_INVALID"})

    async with SessionLocal.begin() as session:
        campaigns = await CampaignsRepo.list_campaigns(session, status=normalized_status, limit=limit)
        scope = await CampaignsRepo.list_scope_by_campaign_ids(
            session,
            [campaign.id for campaign in campaigns],
        )
    return [_campaign_as_response(campaign, scope.get(campaign.id, [])) for campaign in campaigns]


@router.post("", response_model=CampaignResponse, status_code=201)
async def create_campaign(payload: CampaignCreateRequest, request: Request) -> CampaignResponse:
    actor = require_internal_actor(request)
    _validate_create_payload(payload)

    now_utc = utc_now()
    supermarket_ids = list(dict.fromkeys(payload.supermarket_ids))
    async with SessionLocal.begin() as session:
        for supermarket_id in supermarket_ids:
            if await SupermarketsRepo.get_by_id(session, supermarket_id) is None:
                raise HTTPException(status_code=422, detail={"code": "E_SUPERMARKET_NOT_FOUND"})

        campaign = await CampaignsRepo.create(
            session,
            campaign=Campaign(
                name=payload.name.strip(),
                brand=payload.brand.strip(),
                status=payload.status.strip().lower(),
                start_date=payload.start_date,
                end_date=payload.end_date,
                mechanic=payload.mechanic,
                min_spend=payload.min_spend,
                max_redemptions=payload.max_redemptions,
                conversions=0,
                target_audience=payload.target_audience.strip().lower(),
                reward_type=payload.reward_type.strip().lower(),
                reward_value=payload.reward_value.strip(),
                created_at=now_utc,
                updated_at=now_utc,
            ),
            supermarket_ids=supermarket_ids,
        )
        logger.info(
            "internal_campaign_created",
            campaign_id=campaign.id,
            status=campaign.status,
            actor=actor,
        )
        return _campaign_as_response(campaign, supermarket_ids)


@router.post("/{campaign_id}/status", response_model=CampaignResponse)
async def update_campaign_status(
    campaign_id: int,
    payload: CampaignStatusUpdateRequest,
    request: Request,
) -> CampaignResponse:
    actor = require_internal_actor(request)
    desired_status = payload.status.strip().lower()
    if desired_status not in CAMPAIGN_STATUSES:
        raise HTTPException(status_code=422, detail={"code": "E_CAMPAIGN_STATUS_INVALID"})

    now_utc = utc_now()
    async with SessionLocal.begin() as session:
        campaign = await CampaignsRepo.get_by_id_for_update(session, campaign_id)
        if campaign is None:
            raise HTTPException(status_code=404, detail={"code": "E_CAMPAIGN_NOT_FOUND"})
        if (
            campaign.status != desired_status
            and (campaign.status, desired_status) not in CAMPAIGN_ALLOWED_STATUS_TRANSITIONS
        ):
            raise HTTPException(status_code=409, detail={"code": "E_CAMPAIGN_STATUS_CONFLICT"})

        if campaign.status != desired_status:
            previous_status = campaign.status
            campaign.status = desired_status
            campaign.updated_at = now_utc
            logger.info(
                "internal_campaign_status_changed",
                campaign_id=campaign_id,
                previous_status=previous_status,
                next_status=desired_status,
                actor=actor,
            )
        scope = await CampaignsRepo.list_scope_by_campaign_ids(session, [campaign_id])
        return _campaign_as_response(campaign, scope.get(campaign_id, []))
