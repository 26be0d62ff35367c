from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from drc_loyalty.db.models.supermarkets import Supermarket
from drc_loyalty.db.repo.supermarkets_repo import SupermarketsRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.rewards.errors import RewardNotFoundError
from drc_loyalty.economy.rewards.service import RewardsService
from drc_loyalty.economy.rewards.types import REWARD_TYPES

from .deps import require_internal_actor, utc_now
from .rewards import RewardResponse, reward_as_response
from .supermarkets import SupermarketResponse, supermarket_as_response

router = APIRouter(prefix="/internal", tags=["internal", "catalog"])
logger = structlog.get_logger(__name__)

SUPERMARKET_UPDATABLE_FIELDS = (
    "name",
    "address",
    "active",
    "logo_url",
    "business_hours",
    "latitude",
    "longitude",
)
SUPERMARKET_REQUIRED_FIELDS = {"name", "address", "active"}


class SupermarketCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    address: str = Field(default="", max_length=1000)
    logo_url: str | None = Field(default=None, max_length=1000)
    business_hours: str | None = Field(default=None, max_length=255)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class SupermarketUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    address: str | None = Field(default=None, max_length=1000)
    active: bool | None = None
    logo_url: str | None = Field(default=None, max_length=1000)
    business_hours: str | None = Field(default=None, max_length=255)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class RewardCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    cost: int = Field(gt=0)
    reward_type: str = Field(max_length=32)
    brand: str | None = Field(default=None, max_length=128)
    image_url: str | None = Field(default=None, max_length=1000)
    partner_name: str | None = Field(default=None, max_length=255)


class RewardUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    cost: int | None = Field(default=None, gt=0)
    reward_type: str | None = Field(default=None, max_length=32)
    brand: str | None = Field(default=None, max_length=128)
    image_url: str | None = Field(default=None, max_length=1000)
    partner_name: str | None = Field(default=None, max_length=255)
    active: bool | None = None


def _normalize_reward_type(raw_type: str) -> str:
    reward_type = raw_type.strip().lower()
    if reward_type not in REWARD_TYPES:
        raise HTTPException(status_code=422, detail={"code": "E_REWARD_TYPE_INVALID"})
    return reward_type


@router.get("/supermarkets", response_model=list[SupermarketResponse])
async def list_all_supermarkets(request: Request) -> list[SupermarketResponse]:
    require_internal_actor(request)
    async with SessionLocal.begin() as session:
        supermarkets = await SupermarketsRepo.list_all(session)
    return [supermarket_as_response(supermarket) for supermarket in supermarkets]


@router.post("/supermarkets", response_model=SupermarketResponse, status_code=201)
async def create_supermarket(
    payload: SupermarketCreateRequest,
    request: Request,
) -> SupermarketResponse:
    actor = require_internal_actor(request)
    now_utc = utc_now()
    async with SessionLocal.begin() as session:
        supermarket = await SupermarketsRepo.create(
            session,
            supermarket=Supermarket(
                id=uuid4(),
                name=payload.name.strip(),
                address=payload.address.strip(),
                active=True,
                logo_url=payload.logo_url,
                business_hours=payload.business_hours,
                latitude=payload.latitude,
                longitude=payload.longitude,
                avg_basket=Decimal("0"),
                created_at=now_utc,
                updated_at=now_utc,
            ),
        )
        logger.info("internal_supermarket_created", supermarket_id=str(supermarket.id), actor=actor)
        return supermarket_as_response(supermarket)


@router.patch("/supermarkets/{supermarket_id}", response_model=SupermarketResponse)
async def update_supermarket(
    supermarket_id: UUID,
    payload: SupermarketUpdateRequest,
    request: Request,
) -> SupermarketResponse:
    actor = require_internal_actor(request)
    changes = payload.model_dump(exclude_unset=True)
    async with SessionLocal.begin() as session:
        supermarket = await SupermarketsRepo.get_by_id(session, supermarket_id)
        if supermarket is None:
            raise HTTPException(status_code=404, detail={"code": "E_SUPERMARKET_NOT_FOUND"})
        for field_name in SUPERMARKET_UPDATABLE_FIELDS:
            if field_name not in changes:
                continue
            if changes[field_name] is None and field_name in SUPERMARKET_REQUIRED_FIELDS:
                continue
            setattr(supermarket, field_name, changes[field_name])
        supermarket.updated_at = utc_now()
        await session.flush()
        logger.info(
            "internal_supermarket_updated",
            supermarket_id=str(supermarket_id),
            fields=sorted(changes),
            actor=actor,
        )
        return supermarket_as_response(supermarket)


@router.delete("/supermarkets/{supermarket_id}", response_model=SupermarketResponse)
async def deactivate_supermarket(supermarket_id: UUID, request: Request) -> SupermarketResponse:
    actor = require_internal_actor(request)
    async with SessionLocal.begin() as session:
        supermarket = await SupermarketsRepo.get_by_id(session, supermarket_id)
        if supermarket is None:
            raise HTTPException(status_code=404, detail={"code": "E_SUPERMARKET_NOT_FOUND"})
        supermarket.active = False
        supermarket.updated_at = utc_now()
        await session.flush()
        logger.info("internal_supermarket_deactivated", supermarket_id=str(supermarket_id), actor=actor)
        return supermarket_as_response(supermarket)


@router.post("/rewards", response_model=RewardResponse, status_code=201)
async def create_reward(payload: RewardCreateRequest, request: Request) -> RewardResponse:
    actor = require_internal_actor(request)
    reward_type = _normalize_reward_type(payload.reward_type)
    async with SessionLocal.begin() as session:
        reward = await RewardsService.create_reward(
            session,
            title=payload.title.strip(),
            cost=payload.cost,
            reward_type=reward_type,
            brand=payload.brand,
            image_url=payload.image_url,
            partner_name=payload.partner_name,
            now_utc=utc_now(),
        )
        logger.info("internal_reward_created", reward_id=reward.id, actor=actor)
        return reward_as_response(reward)


@router.patch("/rewards/{reward_id}", response_model=RewardResponse)
async def update_reward(
    reward_id: int,
    payload: RewardUpdateRequest,
    request: Request,
) -> RewardResponse:
    actor = require_internal_actor(request)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("reward_type") is not None:
        changes["reward_type"] = _normalize_reward_type(changes["reward_type"])
    for required_field in ("title", "cost", "reward_type", "active"):
        if required_field in changes and changes[required_field] is None:
            changes.pop(required_field)

    try:
        async with SessionLocal.begin() as session:
            reward = await RewardsService.update_reward(
                session,
                reward_id=reward_id,
                changes=changes,
                now_utc=utc_now(),
            )
            response = reward_as_response(reward)
    except RewardNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_REWARD_NOT_FOUND"}) from exc

    logger.info("internal_reward_updated", reward_id=reward_id, fields=sorted(changes), actor=actor)
    return response


@router.delete("/rewards/{reward_id}", response_model=RewardResponse)
async def deactivate_reward(reward_id: int, request: Request) -> RewardResponse:
    actor = require_internal_actor(request)
    try:
        async with SessionLocal.begin() as session:
            reward = await RewardsService.update_reward(
                session,
                reward_id=reward_id,
                changes={"active": False},
                now_utc=utc_now(),
            )
            response = reward_as_response(reward)
    except RewardNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_REWARD_NOT_FOUND"}) from exc

    logger.info("internal_reward_deactivated", reward_id=reward_id, actor=actor)
    return response
