from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from drc_loyalty.db.models.rewards import Reward
from drc_loyalty.db.repo.rewards_repo import RewardsRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.rewards.errors import (
    RewardInsufficientPointsError,
    RewardNotFoundError,
    RewardUserInactiveError,
    RewardUserNotFoundError,
)
from drc_loyalty.economy.rewards.service import RewardsService

from .deps import require_shopper_user_id, utc_now

router = APIRouter(prefix="/rewards", tags=["rewards"])


class RewardResponse(BaseModel):
    id: int
    title: str
    cost: int
    reward_type: str
    brand: str | None = None
    image_url: str | None = None
    partner_name: str | None = None
    active: bool


class RewardRedeemRequest(BaseModel):
    reward_id: int = Field(gt=0)


class RewardRedeemResponse(BaseModel):
    redemption_id: UUID
    reward_id: int
    title: str
    cost: int
    points_balance: int


def reward_as_response(reward: Reward) -> RewardResponse:
    return RewardResponse(
        id=reward.id,
        title=reward.title,
        cost=reward.cost,
        reward_type=reward.reward_type,
        brand=reward.brand,
        image_url=reward.image_url,
        partner_name=reward.partner_name,
        active=reward.active,
    )


@router.get("", response_model=list[RewardResponse])
async def list_rewards() -> list[RewardResponse]:
    async with SessionLocal.begin() as session:
        rewards = await RewardsRepo.list_active(session)
    return [reward_as_response(reward) for reward in rewards]


@router.post("/redeem", response_model=RewardRedeemResponse)
async def redeem_reward(payload: RewardRedeemRequest, request: Request) -> RewardRedeemResponse:
    user_id = require_shopper_user_id(request)
    try:
        async with SessionLocal.begin() as session:
            result = await RewardsService.redeem(
                session,
                user_id=user_id,
                reward_id=payload.reward_id,
                now_utc=utc_now(),
            )
    except RewardUserNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc
    except RewardUserInactiveError as exc:
        raise HTTPException(status_code=403, detail={"code": "E_USER_INACTIVE"}) from exc
    except RewardNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_REWARD_NOT_FOUND"}) from exc
    except RewardInsufficientPointsError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_INSUFFICIENT_POINTS"}) from exc

    return RewardRedeemResponse(
        redemption_id=result.redemption_id,
        reward_id=result.reward_id,
        title=result.title,
        cost=result.cost,
        points_balance=result.balance_after,
    )
